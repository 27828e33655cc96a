"""Native OAuth sign-in: authorize with the user's credentials directly.

The app submits the login and password (plus a one-time password on retry)
to ``PUT authorizations/clients/{client_id}`` and receives an authorization
carrying an OAuth token, so the password is needed for a single round trip
and no web page is shown.

The flow is driven entirely by server responses:

1. **Authorize** -- ``PUT authorizations/clients/{client_id}`` as an
   unauthenticated client.
2. **Reauthorize if needed** -- servers no longer return the token of an
   authorization that already exists.  An empty token triggers
   ``DELETE authorizations/{id}`` (with the one-time password, if any) and a
   fresh authorize.  The ``fingerprint`` keeps unrelated authorizations of the
   same client from being deleted.
3. **Recover** -- a server that refuses plain ``http`` is retried once over
   ``https``; a 404 means the server is too old for this API and is reported
   as :class:`~octoauth.exceptions.TokenUnsupportedError` or
   :class:`~octoauth.exceptions.ServerVersionUnsupportedError`.

Two-factor challenges are not retried: they surface as
:class:`~octoauth.exceptions.TwoFactorRequiredError` and the caller signs in
again with ``one_time_password`` set.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

import httpx
from pydantic import ValidationError

from octoauth.client.async_client import Client
from octoauth.client.request import (
    ONE_TIME_PASSWORD_HEADER,
    HTTPMethod,
    RequestDescriptor,
    basic_authorization_header,
    preview_accept_header,
)
from octoauth.config import require_client_id, require_client_secret, resolve_client_config
from octoauth.exceptions import (
    OctoauthError,
    ParsingError,
    ServerVersionUnsupportedError,
    TokenUnsupportedError,
    UnsupportedServerSchemeError,
)
from octoauth.models import Authorization, AuthorizationScopes, ClientConfig, Scope, User
from octoauth.output import get_output

ScopesLike = Union[AuthorizationScopes, Iterable[Union[str, Scope]], str]


def build_authorization_request(
    client_id: str,
    client_secret: str,
    user: User,
    password: str,
    scopes: AuthorizationScopes,
    note: Optional[str] = None,
    note_url: Optional[str] = None,
    fingerprint: Optional[str] = None,
) -> RequestDescriptor:
    """Build the base ``PUT authorizations/clients/{client_id}`` request."""
    parameters: dict[str, str] = {
        "scopes": scopes.joined(),
        "client_secret": client_secret,
    }
    if note is not None:
        parameters["note"] = note
    if note_url is not None:
        parameters["note_url"] = note_url
    if fingerprint is not None:
        parameters["fingerprint"] = fingerprint

    headers = dict([
        preview_accept_header(),
        basic_authorization_header(user.raw_login, password),
    ])
    return RequestDescriptor(
        method=HTTPMethod.PUT,
        path=f"authorizations/clients/{client_id}",
        parameters=parameters,
        headers=headers,
    )


def parse_authorization(payload: Any) -> Authorization:
    """Decode an authorization payload (an object, or a list holding one)."""
    if isinstance(payload, list):
        payload = payload[0] if payload else None
    try:
        return Authorization.model_validate(payload)
    except ValidationError as exc:
        raise ParsingError(f"Invalid authorization payload: {exc}") from exc


def remap_not_found(exc: OctoauthError) -> Optional[OctoauthError]:
    """Translate a 404 from the authorizations API into a server-version error.

    A 404 that carries the ``X-OAuth-Scopes`` header means the server knows
    the endpoint but not the requested token/scopes; without it the server
    predates the endpoint.  Returns ``None`` for anything that is not a 404.
    """
    if exc.http_status != 404:
        return None
    context = {
        "http_status": exc.http_status,
        "request_url": exc.request_url,
        "oauth_scopes": exc.oauth_scopes,
    }
    if exc.oauth_scopes is not None:
        return TokenUnsupportedError(**context)
    return ServerVersionUnsupportedError(**context)


class NativeSignIn:
    """One native sign-in attempt.

    Holds the base request built from the caller's arguments and runs the
    authorize / reauthorize / recover sequence.  Use :func:`sign_in` rather
    than instantiating this directly.
    """

    def __init__(
        self,
        user: User,
        base_request: RequestDescriptor,
        config: ClientConfig,
        one_time_password: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.user = user
        self.base_request = base_request
        self._config = config
        self._one_time_password = one_time_password
        self._transport = transport

    async def run(self) -> Client:
        output = get_output()
        try:
            client, authorization = await self._reauthorize_if_needed(
                *await self._authorize(self.user)
            )
        except UnsupportedServerSchemeError:
            secure_user = self.user.with_server(self.user.server.secure())
            output.warning(
                f"{self.user.server.api_endpoint} refused the scheme, "
                f"retrying with {secure_user.server.api_endpoint}"
            )
            client, authorization = await self._reauthorize_if_needed(
                *await self._authorize(secure_user)
            )
        except OctoauthError as exc:
            remapped = remap_not_found(exc)
            if remapped is None:
                raise
            raise remapped from exc

        if not authorization.has_token:
            raise ParsingError(
                f"Server returned authorization {authorization.id} without a token",
                request_url=f"{client.server.api_endpoint}/{self.base_request.path}",
            )
        client.token = authorization.token
        output.debug(f"Signed in as {client.user.raw_login} on {client.server.api_endpoint}")
        return client

    async def _authorize(self, user: User) -> tuple[Client, Authorization]:
        client = Client.unauthenticated(user, config=self._config, transport=self._transport)
        payload = await client.enqueue(self.base_request)
        return client, parse_authorization(payload)

    async def _reauthorize_if_needed(
        self, client: Client, authorization: Authorization
    ) -> tuple[Client, Authorization]:
        if authorization.has_token:
            return client, authorization

        get_output().debug(
            f"Authorization {authorization.id} already exists without a token, recreating it"
        )
        request = self.base_request.copy()
        request.method = HTTPMethod.DELETE
        request.path = f"authorizations/{authorization.id}"
        if self._one_time_password is not None:
            request.headers[ONE_TIME_PASSWORD_HEADER] = self._one_time_password

        await client.enqueue(request)
        return await self._authorize(client.user)


async def sign_in(
    user: User,
    password: str,
    scopes: ScopesLike,
    one_time_password: Optional[str] = None,
    note: Optional[str] = None,
    note_url: Optional[str] = None,
    fingerprint: Optional[str] = None,
    *,
    config: Optional[ClientConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Client:
    """Authenticate as *user* using the native OAuth flow.

    Args:
        user: The user to authenticate as; the returned client's ``user``.
        password: The user's password.
        scopes: Scopes to request access to.
        one_time_password: One-time password approving the request.  Only
            needed after a previous attempt raised
            :class:`~octoauth.exceptions.TwoFactorRequiredError`.
        note: Human-readable reminder of what the token is for.
        note_url: URL reminding the user what the token is for.
        fingerprint: Unique string distinguishing this authorization from
            others created for the same client id and user.
        config: OAuth application credentials.  Resolved with
            :func:`~octoauth.config.resolve_client_config` when omitted.
        transport: Optional :mod:`httpx` transport for every request.

    Returns:
        An authenticated :class:`~octoauth.client.async_client.Client`.

    Raises:
        ConfigError: If the client id or secret is not configured.  Raised
            before any request is made.
        TwoFactorRequiredError: If a one-time password is needed.
        TokenUnsupportedError: If the server does not support the token or
            scopes requested.
        ServerVersionUnsupportedError: If the server is too old.
        ParsingError: If the recreated authorization still carries no token.
        TransportError: Any other failure, unchanged.
    """
    config = config or resolve_client_config()
    client_id = require_client_id(config)
    client_secret = require_client_secret(config)

    base_request = build_authorization_request(
        client_id,
        client_secret,
        user,
        password,
        AuthorizationScopes.coerce(scopes),
        note=note,
        note_url=note_url,
        fingerprint=fingerprint,
    )
    get_output().debug(
        f"Signing in as {user.raw_login} on {user.server.api_endpoint} "
        f"(one-time password: {'yes' if one_time_password else 'no'})"
    )
    attempt = NativeSignIn(
        user,
        base_request,
        config,
        one_time_password=one_time_password,
        transport=transport,
    )
    return await attempt.run()
