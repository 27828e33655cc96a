"""Loopback HTTP listener that feeds callback URLs into a channel.

Desktop apps without a custom URL scheme register a redirect URI such as
``http://127.0.0.1:8765/callback`` with their OAuth application and run a
:class:`CallbackReceiver` on that port.  Every request the browser makes to
it is answered with a short page and its full URL is published on the
:class:`~octoauth.signin.callback.CallbackChannel`, where the pending
browser sign-in picks it up.
"""

from __future__ import annotations

import html
import threading
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, Optional
from urllib.parse import urlsplit

from octoauth.output import get_output
from octoauth.signin.callback import CallbackChannel, parse_callback_url

_SUCCESS_PAGE = (
    "<html><body><h2>Authorization complete. You can close this window "
    "and return to the application.</h2></body></html>"
)
_FAILURE_PAGE = "<html><body><h2>Authorization failed: {error}</h2></body></html>"


class CallbackReceiver:
    """Serve ``GET`` callbacks on ``host:port`` in a daemon thread.

    Args:
        channel: Channel to publish received callback URLs to.
        host: Interface to bind.
        port: Port to bind; ``0`` picks a free one (see :attr:`port`).
        path: Path component of :attr:`redirect_uri`.  Requests on other
            paths get a 404 and are not published.

    Example::

        with CallbackReceiver(channel, port=8765) as receiver:
            code = await authorize_using_web_browser(server, scopes, channel=channel)
    """

    def __init__(
        self,
        channel: CallbackChannel,
        host: str = "127.0.0.1",
        port: int = 0,
        path: str = "/callback",
    ) -> None:
        self._channel = channel
        self._host = host
        self._path = path
        self._server = HTTPServer((host, port), self._make_handler())
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self._server.server_address[1]

    @property
    def redirect_uri(self) -> str:
        return f"http://{self._host}:{self.port}{self._path}"

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._server.serve_forever, name="octoauth-callback", daemon=True
        )
        self._thread.start()
        get_output().debug(f"Listening for OAuth callbacks on {self.redirect_uri}")

    def stop(self) -> None:
        if self._thread is not None:
            self._server.shutdown()
            self._thread.join()
            self._thread = None
        self._server.server_close()

    def __enter__(self) -> CallbackReceiver:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()

    def _make_handler(self) -> type[BaseHTTPRequestHandler]:
        receiver = self

        class CallbackHandler(BaseHTTPRequestHandler):
            def do_GET(self) -> None:
                if urlsplit(self.path).path != receiver._path:
                    self.send_error(404)
                    return

                url = f"http://{receiver._host}:{receiver.port}{self.path}"
                arguments = parse_callback_url(url)
                if "error" in arguments:
                    body = _FAILURE_PAGE.format(error=html.escape(arguments["error"]))
                else:
                    body = _SUCCESS_PAGE

                self.send_response(200)
                self.send_header("Content-Type", "text/html; charset=utf-8")
                self.end_headers()
                self.wfile.write(body.encode("utf-8"))
                receiver._channel.publish(url)

            def log_message(self, format: str, *args: Any) -> None:
                # Suppress default logging
                pass

        return CallbackHandler
