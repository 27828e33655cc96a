"""Asynchronous API client -- the session object returned by the sign-in flows.

This module provides :class:`Client`, which pairs a :class:`~octoauth.models.User`
with an optional OAuth token and executes
:class:`~octoauth.client.request.RequestDescriptor` objects against the
user's server through :class:`httpx.AsyncClient`.

Every HTTP failure is classified into a typed
:class:`~octoauth.exceptions.TransportError` carrying the status code, the
request URL and the ``X-OAuth-Scopes`` response header, which is what the
sign-in workflows branch on.  No retries are performed here.
"""

from __future__ import annotations

from typing import Any, Optional

import httpx

from octoauth.client.request import (
    OAUTH_SCOPES_HEADER,
    ONE_TIME_PASSWORD_HEADER,
    RequestDescriptor,
)
from octoauth.exceptions import (
    AuthenticationRequiredError,
    BadRequestError,
    ConnectionError_,
    NotFoundError,
    ParsingError,
    RequestForbiddenError,
    ServerError,
    ServiceRequestFailedError,
    TransportError,
    TwoFactorRequiredError,
    UnsupportedServerSchemeError,
)
from octoauth.models import ClientConfig, Server, User
from octoauth.output import get_output


class Client:
    """A session against one server, authenticated or not.

    A client is created unauthenticated at the start of a sign-in attempt
    and receives its token exactly once, when the attempt succeeds.  Each
    attempt owns its own instances.

    Args:
        user: The user this client acts as.
        token: OAuth token; empty for an unauthenticated client.
        config: HTTP settings (timeout, SSL verification).  Defaults to
            :class:`~octoauth.models.ClientConfig` defaults.
        transport: Optional :mod:`httpx` transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        client = Client.authenticated(user, "gho_...")
        me = await client.enqueue(RequestDescriptor(path="user"))
    """

    def __init__(
        self,
        user: User,
        token: str = "",
        config: Optional[ClientConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.user = user
        self.token = token
        self._config = config or ClientConfig()
        self._transport = transport

    @classmethod
    def unauthenticated(cls, user: User, **kwargs: Any) -> Client:
        return cls(user, **kwargs)

    @classmethod
    def authenticated(cls, user: User, token: str, **kwargs: Any) -> Client:
        return cls(user, token=token, **kwargs)

    @property
    def server(self) -> Server:
        return self.user.server

    @property
    def is_authenticated(self) -> bool:
        return self.token != ""

    def __repr__(self) -> str:
        state = "authenticated" if self.is_authenticated else "unauthenticated"
        return f"Client(user={self.user.raw_login!r}, server={self.server.api_endpoint!r}, {state})"

    # ------------------------------------------------------------------ #
    # Request execution
    # ------------------------------------------------------------------ #

    async def enqueue(self, descriptor: RequestDescriptor) -> Any:
        """Execute *descriptor* and return the decoded JSON body.

        Args:
            descriptor: The request to send.  Its ``path`` is resolved
                against the server's API endpoint.

        Returns:
            The decoded JSON payload, or ``None`` for an empty body
            (e.g. ``204 No Content``).

        Raises:
            TwoFactorRequiredError: On 401 with a one-time password challenge.
            AuthenticationRequiredError: On any other 401.
            UnsupportedServerSchemeError: When an ``http`` request is
                redirected to ``https`` or the scheme is refused.
            NotFoundError: On 404.
            ConnectionError_: On network / timeout errors.
            ParsingError: If the body is not valid JSON.
            TransportError: On any other failure status.
        """
        headers: dict[str, str] = {}
        if self.is_authenticated:
            headers["Authorization"] = f"token {self.token}"
        headers.update(descriptor.headers)

        kwargs: dict[str, Any] = {
            "method": descriptor.method.value,
            "url": descriptor.path,
            "headers": headers,
        }
        if descriptor.parameters:
            if descriptor.sends_query:
                kwargs["params"] = descriptor.parameters
            else:
                kwargs["json"] = descriptor.parameters

        get_output().debug(f"{descriptor.method.value} {self.server.api_endpoint}/{descriptor.path}")

        async with httpx.AsyncClient(
            base_url=self.server.api_endpoint,
            timeout=self._config.timeout,
            verify=self._config.verify_ssl,
            follow_redirects=False,
            transport=self._transport,
        ) as http:
            try:
                response = await http.request(**kwargs)
            except httpx.UnsupportedProtocol as exc:
                raise UnsupportedServerSchemeError(
                    f"Unsupported URL scheme for {self.server.api_endpoint}: {exc}"
                ) from exc
            except httpx.TransportError as exc:
                raise ConnectionError_(f"Connection failed: {exc}") from exc

        self._map_response_error(response)
        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ParsingError(
                f"Could not parse response from {response.request.url}: {exc}",
                http_status=response.status_code,
                request_url=str(response.request.url),
            ) from exc

    def _map_response_error(self, response: httpx.Response) -> None:
        """Raise a typed exception for error and redirect responses."""
        status = response.status_code
        request_url = str(response.request.url)
        context: dict[str, Any] = {
            "http_status": status,
            "request_url": request_url,
            "oauth_scopes": response.headers.get(OAUTH_SCOPES_HEADER),
        }

        if response.is_redirect:
            location = response.headers.get("location", "")
            if response.request.url.scheme == "http" and location.startswith("https:"):
                raise UnsupportedServerSchemeError(
                    f"Server at {request_url} requires https", **context
                )
            raise TransportError(f"Unexpected redirect to {location}", **context)

        if status < 400:
            return

        try:
            detail = response.json()
            if isinstance(detail, dict):
                msg = detail.get("message") or detail.get("error") or ""
            else:
                msg = str(detail)
        except ValueError:
            msg = response.text[:200] if response.text else ""

        prefix = f"HTTP {status}"
        full_msg = f"{prefix}: {msg}" if msg else prefix

        if status == 401:
            otp = response.headers.get(ONE_TIME_PASSWORD_HEADER, "")
            if otp.lower().startswith("required"):
                _, _, medium = otp.partition(";")
                raise TwoFactorRequiredError(
                    full_msg, medium=medium.strip() or None, **context
                )
            raise AuthenticationRequiredError(full_msg, **context)
        if status == 400:
            raise BadRequestError(full_msg, **context)
        if status == 403:
            raise RequestForbiddenError(full_msg, **context)
        if status == 404:
            raise NotFoundError(full_msg, **context)
        if status == 422:
            raise ServiceRequestFailedError(full_msg, **context)
        if status >= 500:
            raise ServerError(full_msg, **context)
        raise TransportError(full_msg, **context)
