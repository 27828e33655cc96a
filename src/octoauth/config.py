"""Client configuration with XDG paths, atomic writes, and precedence resolution.

This module handles the OAuth application credentials the sign-in flows
need:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.octoauth/`` on macOS and Windows. See :func:`get_config_dir`.
* **Client config** -- A single :class:`~octoauth.models.ClientConfig`
  JSON file holding the client id, client secret and HTTP settings.
  Managed via :func:`load_client_config` and :func:`save_client_config`.
* **Precedence resolution** -- :func:`resolve_client_config` merges explicit
  arguments, environment variables and the config file.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import stat
import tempfile
from pathlib import Path
from typing import Optional

from octoauth.exceptions import ConfigError
from octoauth.models import ClientConfig

_APP_NAME = "octoauth"
_CONFIG_FILENAME = "config.json"

ENV_CLIENT_ID = "OCTOAUTH_CLIENT_ID"
ENV_CLIENT_SECRET = "OCTOAUTH_CLIENT_SECRET"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/octoauth/`` (default ``~/.config/octoauth/``).
    On macOS/Windows: ``~/.octoauth/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    The file is readable by its owner only, since it holds the client
    secret.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        os.chmod(tmp_path, stat.S_IRUSR | stat.S_IWUSR)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Client config ---


def _client_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


def load_client_config() -> ClientConfig:
    """Load the client configuration from disk.

    Returns:
        The stored :class:`~octoauth.models.ClientConfig`, or one with
        empty credentials if no file exists yet.

    Raises:
        ConfigError: If the file contains invalid JSON or fails validation.
    """
    path = _client_config_path()
    if not path.is_file():
        return ClientConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return ClientConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid client config at {path}: {exc}") from exc


def save_client_config(config: ClientConfig) -> None:
    """Persist the client configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json")
    _atomic_write(_client_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_client_config(
    client_id: Optional[str] = None,
    client_secret: Optional[str] = None,
) -> ClientConfig:
    """Resolve the client configuration with full precedence chain.

    Precedence (high to low):
        1. Explicit arguments
        2. Environment variables (``OCTOAUTH_CLIENT_ID``, ``OCTOAUTH_CLIENT_SECRET``)
        3. Config file (``~/.config/octoauth/config.json``)
        4. Defaults (empty credentials)

    Empty credentials are not an error here; the sign-in flows reject them
    at call time.
    """
    config = load_client_config()

    env_id = os.environ.get(ENV_CLIENT_ID)
    env_secret = os.environ.get(ENV_CLIENT_SECRET)

    updates: dict[str, str] = {}
    if client_id is not None:
        updates["client_id"] = client_id
    elif env_id:
        updates["client_id"] = env_id
    if client_secret is not None:
        updates["client_secret"] = client_secret
    elif env_secret:
        updates["client_secret"] = env_secret

    if updates:
        config = config.model_copy(update=updates)
    return config


def require_client_id(config: ClientConfig) -> str:
    """Return the configured client id, failing fast when it is empty."""
    if not config.client_id:
        raise ConfigError(
            f"OAuth client id is not configured (set {ENV_CLIENT_ID} or "
            f"save it with save_client_config())"
        )
    return config.client_id


def require_client_secret(config: ClientConfig) -> str:
    """Return the configured client secret, failing fast when it is empty."""
    if not config.client_secret:
        raise ConfigError(
            f"OAuth client secret is not configured (set {ENV_CLIENT_SECRET} or "
            f"save it with save_client_config())"
        )
    return config.client_secret

