"""Request descriptors and the fixed headers of the GitHub authorizations API.

A :class:`RequestDescriptor` is a mutable description of one outbound call:
method, path relative to the API endpoint, string parameters and string
headers.  It is built once per call attempt and handed to
:meth:`~octoauth.client.async_client.Client.enqueue`.  A follow-up request
(e.g. the ``DELETE`` issued when an authorization must be recreated) is made
by :meth:`~RequestDescriptor.copy`-ing the base descriptor and mutating the
clone, so the base stays reusable.
"""

from __future__ import annotations

import base64
import enum
from dataclasses import dataclass, field

ONE_TIME_PASSWORD_HEADER = "X-GitHub-OTP"
"""Request header carrying a one-time password; also the 401 challenge header."""

OAUTH_SCOPES_HEADER = "X-OAuth-Scopes"
"""Response header listing the scopes of the token used for the request."""

MIRAGE_PREVIEW_API_VERSION = "mirage-preview"
"""API preview that returns tokens from ``PUT authorizations/clients/{id}``."""


class HTTPMethod(str, enum.Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"


@dataclass
class RequestDescriptor:
    """Mutable description of a single API request.

    Attributes:
        method: HTTP method.
        path: Path relative to the server's API endpoint, without a leading
            slash (e.g. ``"authorizations/clients/abc"``).
        parameters: Request parameters.  Sent in the query string for
            ``GET``/``DELETE`` and as a JSON body otherwise.
        headers: Extra request headers.
    """

    method: HTTPMethod = HTTPMethod.GET
    path: str = ""
    parameters: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)

    def copy(self) -> RequestDescriptor:
        """Return an independent clone; mutating it leaves ``self`` untouched."""
        return RequestDescriptor(
            method=self.method,
            path=self.path,
            parameters=dict(self.parameters),
            headers=dict(self.headers),
        )

    @property
    def sends_query(self) -> bool:
        """Whether parameters belong in the query string rather than the body."""
        return self.method in (HTTPMethod.GET, HTTPMethod.DELETE)


def basic_authorization_header(login: str, password: str) -> tuple[str, str]:
    """Build an HTTP Basic ``Authorization`` header per :rfc:`7617`.

    Returns:
        A ``(name, value)`` pair.
    """
    raw = f"{login}:{password}"
    encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
    return "Authorization", f"Basic {encoded}"


def preview_accept_header(version: str = MIRAGE_PREVIEW_API_VERSION) -> tuple[str, str]:
    """Build the ``Accept`` header opting into an API preview."""
    return "Accept", f"application/vnd.github.{version}+json"
