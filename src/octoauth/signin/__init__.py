"""Sign-in workflows for GitHub-style OAuth.

- :func:`sign_in` -- native flow: credentials (and a one-time password on
  retry) are submitted directly to the authorizations API.
- :func:`authorize_using_web_browser` -- browser-delegated flow that returns
  the OAuth code delivered through a :class:`CallbackChannel`.
- :func:`sign_in_using_web_browser` -- browser flow plus code exchange,
  returning an authenticated client.
- :class:`CallbackReceiver` -- loopback listener publishing callback URLs.
"""

from octoauth.signin.browser import (
    URLOpener,
    WebBrowserOpener,
    authorize_using_web_browser,
    build_authorize_url,
    exchange_code,
    sign_in_using_web_browser,
)
from octoauth.signin.callback import CallbackChannel, CallbackSubscription, parse_callback_url
from octoauth.signin.native import sign_in
from octoauth.signin.receiver import CallbackReceiver

__all__ = [
    "CallbackChannel",
    "CallbackReceiver",
    "CallbackSubscription",
    "URLOpener",
    "WebBrowserOpener",
    "authorize_using_web_browser",
    "build_authorize_url",
    "exchange_code",
    "parse_callback_url",
    "sign_in",
    "sign_in_using_web_browser",
]
