"""octoauth -- sign in to GitHub and GitHub Enterprise from Python apps.

Two OAuth flows are supported:

* **Native** -- the app submits the user's login and password (plus a
  one-time password when two-factor authentication is on) and receives an
  authenticated :class:`~octoauth.client.Client`.
* **Browser** -- the user signs in on the server's web page; the callback URL
  is published on a :class:`~octoauth.signin.CallbackChannel` and matched
  back to the waiting caller.

Typical usage::

    from octoauth import ClientConfig, Server, User, sign_in

    config = ClientConfig(client_id="...", client_secret="...")
    user = User(raw_login="octocat", server=Server.dotcom())
    client = await sign_in(user, password, ["repo", "user"], config=config)

Modules:
    models: Pydantic models for servers, users, scopes and authorizations.
    config: XDG-aware storage and resolution of the OAuth client credentials.
    exceptions: Exception hierarchy with error-code mapping.
    error_codes: Numeric codes carried by every exception.
    output: stderr diagnostics built on Rich.
    client: Request descriptors and the httpx-backed API client.
    signin: The native and browser sign-in workflows.
"""

from octoauth.client import Client
from octoauth.models import (
    Authorization,
    AuthorizationScopes,
    ClientConfig,
    Scope,
    Server,
    User,
)
from octoauth.signin import (
    CallbackChannel,
    authorize_using_web_browser,
    sign_in,
    sign_in_using_web_browser,
)

__version__ = "0.1.0"

__all__ = [
    "Authorization",
    "AuthorizationScopes",
    "CallbackChannel",
    "Client",
    "ClientConfig",
    "Scope",
    "Server",
    "User",
    "authorize_using_web_browser",
    "sign_in",
    "sign_in_using_web_browser",
]
