"""Canonical Pydantic models shared across all octoauth modules.

This is the single source of truth for data shapes in the project.  The
models fall into two groups:

**Domain models** -- immutable values describing who signs in where:
    :class:`Server`, :class:`User`, :class:`Scope`,
    :class:`AuthorizationScopes` and the server-returned
    :class:`Authorization`.

**Configuration models** -- serialised as JSON in the user's config
directory: :class:`ClientConfig`.

All models use Pydantic v2.  Value types are declared ``frozen=True``;
deriving a variant (e.g. :meth:`User.with_server`) always returns a new
instance.
"""

from __future__ import annotations

import enum
from typing import Any, Iterable, Optional, Union
from urllib.parse import urlsplit, urlunsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

DOTCOM_API_ENDPOINT = "https://api.github.com"
DOTCOM_WEB_URL = "https://github.com"
ENTERPRISE_API_PATH = "api/v3"


# --- Server / User ---


class Server(BaseModel):
    """An API endpoint together with the website it belongs to.

    A ``base_url`` of ``None`` denotes github.com; any other value is the
    root URL of an Enterprise install (e.g. ``http://ghe.example.com``).

    Example::

        server = Server.enterprise("http://ghe.example.com/")
        server.api_endpoint      # "http://ghe.example.com/api/v3"
        server.secure().base_url  # "https://ghe.example.com/"
    """

    model_config = ConfigDict(frozen=True)

    base_url: Optional[str] = None

    @classmethod
    def dotcom(cls) -> Server:
        """Return the github.com server."""
        return cls()

    @classmethod
    def enterprise(cls, base_url: str) -> Server:
        """Return an Enterprise server rooted at *base_url*."""
        return cls(base_url=base_url)

    @property
    def is_enterprise(self) -> bool:
        return self.base_url is not None

    @property
    def api_endpoint(self) -> str:
        """Root URL of the REST API."""
        if self.base_url is None:
            return DOTCOM_API_ENDPOINT
        return f"{self.base_url.rstrip('/')}/{ENTERPRISE_API_PATH}"

    @property
    def base_web_url(self) -> str:
        """Root URL of the website (where ``/login/oauth/...`` lives)."""
        if self.base_url is None:
            return DOTCOM_WEB_URL
        return self.base_url

    def secure(self) -> Server:
        """Return the HTTPS variant of this server.

        github.com is always served over HTTPS and is returned unchanged.
        """
        if self.base_url is None:
            return self
        parts = urlsplit(self.base_url)
        return Server(base_url=urlunsplit(parts._replace(scheme="https")))


class User(BaseModel):
    """Identity that signs in: a raw login on a specific server."""

    model_config = ConfigDict(frozen=True)

    raw_login: str
    server: Server = Field(default_factory=Server)

    def with_server(self, server: Server) -> User:
        """Return a copy of this user bound to *server*."""
        return User(raw_login=self.raw_login, server=server)


# --- Scopes ---


class Scope(str, enum.Enum):
    """Commonly requested OAuth scopes.

    :class:`AuthorizationScopes` accepts any string; these members only
    save callers from typos.
    """

    REPO = "repo"
    REPO_STATUS = "repo:status"
    REPO_DEPLOYMENT = "repo_deployment"
    PUBLIC_REPO = "public_repo"
    USER = "user"
    USER_EMAIL = "user:email"
    USER_FOLLOW = "user:follow"
    READ_ORG = "read:org"
    WRITE_ORG = "write:org"
    ADMIN_ORG = "admin:org"
    NOTIFICATIONS = "notifications"
    GIST = "gist"
    DELETE_REPO = "delete_repo"
    WORKFLOW = "workflow"


class AuthorizationScopes(BaseModel):
    """Ordered set of scope tokens requested for an authorization.

    Duplicates are dropped, keeping the first occurrence.

    Example::

        scopes = AuthorizationScopes.of(Scope.REPO, "user", "repo")
        scopes.joined()  # "repo,user"
    """

    model_config = ConfigDict(frozen=True)

    values: tuple[str, ...] = ()

    @field_validator("values", mode="before")
    @classmethod
    def _dedupe(cls, value: Any) -> tuple[str, ...]:
        if isinstance(value, str):
            value = [value]
        seen: dict[str, None] = {}
        for item in value:
            token = item.value if isinstance(item, Scope) else str(item)
            seen.setdefault(token, None)
        return tuple(seen)

    @classmethod
    def of(cls, *scopes: Union[str, Scope]) -> AuthorizationScopes:
        return cls(values=scopes)

    @classmethod
    def coerce(
        cls, scopes: Union[AuthorizationScopes, Iterable[Union[str, Scope]], str]
    ) -> AuthorizationScopes:
        """Accept an existing instance, a single scope, or any iterable of scopes."""
        if isinstance(scopes, AuthorizationScopes):
            return scopes
        return cls(values=scopes)

    def joined(self) -> str:
        """Serialise for request parameters (comma-joined)."""
        return ",".join(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, Scope):
            item = item.value
        return item in self.values


# --- Authorization ---


class Authorization(BaseModel):
    """Authorization record returned by ``PUT authorizations/clients/{id}``.

    An empty ``token`` means the authorization already existed and the
    server withheld its token; the native sign-in then deletes and
    recreates it.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    token: str = ""
    scopes: list[str] = Field(default_factory=list)
    note: Optional[str] = None
    note_url: Optional[str] = None
    fingerprint: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("token", mode="before")
    @classmethod
    def _null_token(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def has_token(self) -> bool:
        return self.token != ""


# --- Client configuration ---


class ClientConfig(BaseModel):
    """OAuth application credentials and HTTP settings.

    Persisted at ``~/.config/octoauth/config.json`` by
    :func:`~octoauth.config.save_client_config` and resolved with
    environment overrides by :func:`~octoauth.config.resolve_client_config`.
    """

    client_id: str = Field(default="", description="OAuth application client id")
    client_secret: str = Field(default="", description="OAuth application client secret")
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
