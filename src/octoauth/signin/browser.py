"""Browser-delegated OAuth sign-in.

The user enters their credentials on the server's own web page instead of
in the app:

1. A random ``state`` token is minted and a subscription for it is opened
   on the :class:`~octoauth.signin.callback.CallbackChannel` *before* the
   browser is launched, so an unusually fast callback is not missed.
2. The browser is opened at ``{web}/login/oauth/authorize?client_id=...``.
3. The server redirects to the app's callback URL with ``state`` and
   ``code``; the platform hands that URL to
   :meth:`CallbackChannel.publish <octoauth.signin.callback.CallbackChannel.publish>`
   and the waiting sign-in resolves with the code.

:func:`sign_in_using_web_browser` additionally exchanges the code for an
access token and returns an authenticated client.
"""

from __future__ import annotations

import asyncio
import uuid
import webbrowser
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from octoauth.client.async_client import Client
from octoauth.client.request import HTTPMethod, RequestDescriptor
from octoauth.config import require_client_id, require_client_secret, resolve_client_config
from octoauth.exceptions import (
    AuthenticationRequiredError,
    BrowserOpenFailedError,
    ConnectionError_,
    ParsingError,
    TransportError,
)
from octoauth.models import AuthorizationScopes, ClientConfig, Server, User
from octoauth.output import get_output
from octoauth.signin.callback import CallbackChannel
from octoauth.signin.native import ScopesLike


class URLOpener(ABC):
    """Opens a URL in an external browser."""

    @abstractmethod
    def open_url(self, url: str) -> bool:
        """Open *url*; return ``False`` if no browser could be launched.

        Runs on a worker thread, so it may block.
        """
        ...


class WebBrowserOpener(URLOpener):
    """:class:`URLOpener` backed by the standard :mod:`webbrowser` module."""

    def open_url(self, url: str) -> bool:
        try:
            return webbrowser.open(url)
        except webbrowser.Error:
            return False


def build_authorize_url(
    server: Server, client_id: str, scopes: AuthorizationScopes, state: str
) -> str:
    """Build the web authorization URL for *server*.

    Slashes are trimmed from the base web URL so a user-entered
    ``https://ghe.example.com/`` does not yield an empty path component.
    """
    base = server.base_web_url.strip("/")
    return (
        f"{base}/login/oauth/authorize"
        f"?client_id={client_id}&scope={scopes.joined()}&state={state}"
    )


async def authorize_using_web_browser(
    server: Server,
    scopes: ScopesLike,
    *,
    channel: CallbackChannel,
    config: Optional[ClientConfig] = None,
    opener: Optional[URLOpener] = None,
) -> str:
    """Authorize through the user's web browser and return the OAuth code.

    Waits until a callback URL carrying this call's ``state`` is published
    on *channel*.  There is no built-in timeout; wrap the call in
    :func:`asyncio.wait_for` to impose one.  The channel subscription is
    released on every exit path, including cancellation.

    Args:
        server: The server to authorize against.
        scopes: Scopes to request access to.
        channel: Channel the platform publishes callback URLs to.
        config: OAuth application credentials.  Resolved with
            :func:`~octoauth.config.resolve_client_config` when omitted.
        opener: Browser launcher.  Defaults to :class:`WebBrowserOpener`.

    Returns:
        The ``code`` query argument of the matching callback (``""`` if the
        callback had none).

    Raises:
        ConfigError: If the client id is not configured.
        BrowserOpenFailedError: If the browser could not be opened.
    """
    config = config or resolve_client_config()
    client_id = require_client_id(config)
    opener = opener or WebBrowserOpener()
    scopes = AuthorizationScopes.coerce(scopes)

    state = str(uuid.uuid4())
    subscription = channel.subscribe(state)
    try:
        url = build_authorize_url(server, client_id, scopes, state)
        get_output().debug(f"Opening browser at {url}")
        if not await asyncio.to_thread(opener.open_url, url):
            raise BrowserOpenFailedError(url)
        return await subscription.wait()
    finally:
        subscription.cancel()


async def exchange_code(
    server: Server,
    code: str,
    config: ClientConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """Exchange an OAuth *code* for an access token.

    Raises:
        AuthenticationRequiredError: If the server returns no access token
            (e.g. an expired or reused code).
        TransportError: On HTTP errors.
    """
    url = f"{server.base_web_url.rstrip('/')}/login/oauth/access_token"
    data = {
        "client_id": require_client_id(config),
        "client_secret": require_client_secret(config),
        "code": code,
    }

    async with httpx.AsyncClient(
        timeout=config.timeout,
        verify=config.verify_ssl,
        transport=transport,
    ) as http:
        try:
            response = await http.post(url, json=data, headers={"Accept": "application/json"})
            response.raise_for_status()
            token_data: Any = response.json()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"Token exchange failed with status {exc.response.status_code}: "
                f"{exc.response.text}",
                http_status=exc.response.status_code,
                request_url=url,
            ) from exc
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Token exchange failed: {exc}", request_url=url) from exc
        except ValueError as exc:
            raise ParsingError(f"Invalid token response: {exc}", request_url=url) from exc

    if not isinstance(token_data, dict):
        raise ParsingError("Token response is not a JSON object", request_url=url)

    # GitHub answers a bad or expired code with 200 and an "error" field.
    token = token_data.get("access_token")
    if not token:
        reason = token_data.get("error", "missing access_token")
        raise AuthenticationRequiredError(f"Token exchange failed: {reason}", request_url=url)
    return token


async def sign_in_using_web_browser(
    server: Server,
    scopes: ScopesLike,
    *,
    channel: CallbackChannel,
    config: Optional[ClientConfig] = None,
    opener: Optional[URLOpener] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Client:
    """Sign in through the browser and return an authenticated client.

    Runs :func:`authorize_using_web_browser`, exchanges the code for a token
    with :func:`exchange_code`, then fetches ``GET user`` to learn who signed
    in.
    """
    config = config or resolve_client_config()
    require_client_secret(config)

    code = await authorize_using_web_browser(
        server, scopes, channel=channel, config=config, opener=opener
    )
    token = await exchange_code(server, code, config, transport=transport)

    probe = Client.authenticated(
        User(raw_login="", server=server), token, config=config, transport=transport
    )
    payload = await probe.enqueue(RequestDescriptor(method=HTTPMethod.GET, path="user"))
    if not isinstance(payload, dict) or "login" not in payload:
        raise ParsingError("User response missing 'login' field")

    user = User(raw_login=payload["login"], server=server)
    get_output().debug(f"Signed in as {user.raw_login} on {server.api_endpoint} via browser")
    return Client.authenticated(user, token, config=config, transport=transport)
