"""Shared test fixtures for octoauth.

Provides reusable fixtures for isolated config environments, output state,
OAuth client credentials, users, and scripted HTTP transports.  These
fixtures are automatically discovered by pytest and available to all test
modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Union

import httpx
import pytest

from octoauth.models import ClientConfig, Server, User
from octoauth.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME at tmp_path, forces XDG path resolution and clears
    the OCTOAUTH_* environment variables so tests never touch real user
    config.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    config_dir = tmp_path / "config"
    monkeypatch.setattr("octoauth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_dir))
    for var in ["OCTOAUTH_CLIENT_ID", "OCTOAUTH_CLIENT_SECRET"]:
        monkeypatch.delenv(var, raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Domain fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(client_id="test-client-id", client_secret="test-client-secret")


@pytest.fixture
def dotcom_user() -> User:
    return User(raw_login="octocat", server=Server.dotcom())


@pytest.fixture
def enterprise_user() -> User:
    return User(raw_login="octocat", server=Server.enterprise("http://ghe.example.com"))


# ---------------------------------------------------------------------------
# Scripted HTTP transport
# ---------------------------------------------------------------------------


Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response], Exception]


class ScriptedTransport:
    """Answer requests from a fixed script, recording every request.

    Each script entry is an :class:`httpx.Response`, a callable taking the
    request, or an exception to raise.  Use :attr:`transport` wherever an
    ``httpx.AsyncBaseTransport`` is accepted.
    """

    def __init__(self, *replies: Reply) -> None:
        self._replies = list(replies)
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._replies:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(request)
        return reply

    @property
    def methods(self) -> list[str]:
        return [r.method for r in self.requests]

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]


def json_response(data: Any, status_code: int = 200, headers: dict[str, str] | None = None) -> httpx.Response:
    """Build an httpx.Response with JSON content."""
    return httpx.Response(status_code=status_code, json=data, headers=headers)


def request_json(request: httpx.Request) -> Any:
    """Decode the JSON body of a recorded request."""
    return json.loads(request.content)
