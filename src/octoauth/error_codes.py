"""Numeric error codes carried by every :class:`~octoauth.exceptions.OctoauthError`.

Each constant maps to one failure category and is referenced by the
corresponding exception subclass.  HTTP-derived categories reuse the status
code they are classified from; the remaining values sit outside the HTTP
range so they can never collide with a status.

Example::

    try:
        client = await sign_in(user, password, scopes)
    except OctoauthError as exc:
        if exc.code == ERROR_TWO_FACTOR_REQUIRED:
            ...  # ask the user for a one-time password
"""

ERROR_UNKNOWN = 1
"""An unclassified error occurred."""

ERROR_BAD_REQUEST = 400
"""The server rejected the request as malformed (HTTP 400)."""

ERROR_AUTHENTICATION_FAILED = 401
"""The credentials were rejected (HTTP 401)."""

ERROR_REQUEST_FORBIDDEN = 403
"""The server refused the request (HTTP 403)."""

ERROR_NOT_FOUND = 404
"""The requested resource was not found (HTTP 404)."""

ERROR_SERVICE_REQUEST_FAILED = 422
"""The server could not process the request (HTTP 422)."""

ERROR_TWO_FACTOR_REQUIRED = 469
"""The account has two-factor authentication on and a one-time password is needed."""

ERROR_SERVER_FAILURE = 500
"""The remote API returned an HTTP 5xx error."""

ERROR_CONFIGURATION = 600
"""The client id or client secret has not been configured."""

ERROR_SERVER_VERSION_UNSUPPORTED = 666
"""The server is too old to support the request."""

ERROR_BROWSER_OPEN_FAILED = 667
"""The external web browser could not be opened."""

ERROR_CONNECTION_FAILED = 668
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

ERROR_PARSING_FAILED = 669
"""The response body could not be decoded into the expected entity."""

ERROR_UNSUPPORTED_SERVER_SCHEME = 670
"""The server requires a secure scheme and refused a plain ``http`` request."""

ERROR_TOKEN_UNSUPPORTED = 671
"""The server does not support the token or scopes requested."""
