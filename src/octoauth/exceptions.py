"""Exception hierarchy for octoauth.

All exceptions inherit from :class:`OctoauthError`, which carries a ``code``
attribute mapped to a constant from :mod:`octoauth.error_codes` plus the
transport context the sign-in workflows branch on: the HTTP status, the
request URL and the ``X-OAuth-Scopes`` header of the failed response.

Subclass hierarchy::

    OctoauthError                          (1)
    +-- ConfigError                        (600)
    +-- ServerVersionUnsupportedError      (666)
    +-- TokenUnsupportedError              (671)
    +-- BrowserOpenFailedError             (667)
    +-- TransportError                     (1)
        +-- BadRequestError                (400)
        +-- AuthenticationRequiredError    (401)
        |   +-- TwoFactorRequiredError     (469)
        +-- RequestForbiddenError          (403)
        +-- NotFoundError                  (404)
        +-- ServiceRequestFailedError      (422)
        +-- ServerError                    (500)
        +-- ConnectionError_               (668)
        +-- ParsingError                   (669)
        +-- UnsupportedServerSchemeError   (670)
"""

from __future__ import annotations

from typing import Optional

from octoauth.error_codes import (
    ERROR_AUTHENTICATION_FAILED,
    ERROR_BAD_REQUEST,
    ERROR_BROWSER_OPEN_FAILED,
    ERROR_CONFIGURATION,
    ERROR_CONNECTION_FAILED,
    ERROR_NOT_FOUND,
    ERROR_PARSING_FAILED,
    ERROR_REQUEST_FORBIDDEN,
    ERROR_SERVER_FAILURE,
    ERROR_SERVER_VERSION_UNSUPPORTED,
    ERROR_SERVICE_REQUEST_FAILED,
    ERROR_TOKEN_UNSUPPORTED,
    ERROR_TWO_FACTOR_REQUIRED,
    ERROR_UNKNOWN,
    ERROR_UNSUPPORTED_SERVER_SCHEME,
)


class OctoauthError(Exception):
    """Base exception for all octoauth errors.

    Every subclass sets a class-level ``code`` corresponding to one of the
    constants in :mod:`octoauth.error_codes`.  Errors raised by the HTTP
    layer additionally record where and how the request failed.

    Args:
        message: Human-readable error description.
        code: Optional override for the class-level code.
        http_status: Status code of the failed response, if any.
        request_url: URL of the failed request, if any.
        oauth_scopes: Value of the ``X-OAuth-Scopes`` response header when
            the server sent one.  ``None`` means the header was absent.
    """

    code: int = ERROR_UNKNOWN

    def __init__(
        self,
        message: str,
        code: int | None = None,
        http_status: Optional[int] = None,
        request_url: Optional[str] = None,
        oauth_scopes: Optional[str] = None,
    ):
        super().__init__(message)
        if code is not None:
            self.code = code
        self.http_status = http_status
        self.request_url = request_url
        self.oauth_scopes = oauth_scopes


class ConfigError(OctoauthError):
    """Raised when the client id/secret are missing or the config file is invalid."""

    code = ERROR_CONFIGURATION


class ServerVersionUnsupportedError(OctoauthError):
    """Raised when the server is too old to support the sign-in request."""

    code = ERROR_SERVER_VERSION_UNSUPPORTED

    def __init__(self, message: str = "The server does not support this API version", **kwargs):
        super().__init__(message, **kwargs)


class TokenUnsupportedError(OctoauthError):
    """Raised when the server does not support the token or scopes requested."""

    code = ERROR_TOKEN_UNSUPPORTED

    def __init__(self, message: str = "The server does not support the requested token or scopes", **kwargs):
        super().__init__(message, **kwargs)


class BrowserOpenFailedError(OctoauthError):
    """Raised when the external browser could not be opened.

    Args:
        url: The authorization URL that could not be opened.
    """

    code = ERROR_BROWSER_OPEN_FAILED

    def __init__(self, url: str):
        super().__init__(f"Could not open web browser at {url}")
        self.url = url


class TransportError(OctoauthError):
    """Raised by the HTTP layer for any failure it cannot classify further."""


class BadRequestError(TransportError):
    """Raised when the API returns HTTP 400."""

    code = ERROR_BAD_REQUEST


class AuthenticationRequiredError(TransportError):
    """Raised when the API rejects the credentials (HTTP 401)."""

    code = ERROR_AUTHENTICATION_FAILED


class TwoFactorRequiredError(AuthenticationRequiredError):
    """Raised when the account needs a one-time password to authorize.

    Callers should collect a one-time password from the user and call
    :func:`~octoauth.signin.native.sign_in` again with it.

    Args:
        medium: How the user receives one-time passwords (``"sms"`` or
            ``"app"``), when the server said so.
    """

    code = ERROR_TWO_FACTOR_REQUIRED

    def __init__(self, message: str, medium: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.medium = medium


class RequestForbiddenError(TransportError):
    """Raised when the API returns HTTP 403."""

    code = ERROR_REQUEST_FORBIDDEN


class NotFoundError(TransportError):
    """Raised when the API returns HTTP 404 (resource not found)."""

    code = ERROR_NOT_FOUND


class ServiceRequestFailedError(TransportError):
    """Raised when the API returns HTTP 422."""

    code = ERROR_SERVICE_REQUEST_FAILED


class ServerError(TransportError):
    """Raised when the API returns an HTTP 5xx server error."""

    code = ERROR_SERVER_FAILURE


class ConnectionError_(TransportError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    code = ERROR_CONNECTION_FAILED


class ParsingError(TransportError):
    """Raised when a response body cannot be decoded into the expected entity."""

    code = ERROR_PARSING_FAILED


class UnsupportedServerSchemeError(TransportError):
    """Raised when the server refuses plain ``http`` and requires ``https``."""

    code = ERROR_UNSUPPORTED_SERVER_SCHEME
