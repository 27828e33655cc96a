"""Callback correlation channel for the browser sign-in flow.

The browser flow cannot receive its authorization code directly: the OAuth
provider redirects the user's browser to a callback URL, and whatever
catches that URL (an OS URL-scheme handler, a loopback HTTP listener such as
:class:`~octoauth.signin.receiver.CallbackReceiver`) hands it to
:meth:`CallbackChannel.publish`.  Every pending browser sign-in subscribes to
the channel with the ``state`` token it minted and resolves on the first
published URL carrying that token.

The channel is broadcast-only: it never replays URLs published before a
subscription existed and imposes no timeout.  Callers that want one wrap
:meth:`CallbackSubscription.wait` in :func:`asyncio.wait_for`.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Optional
from urllib.parse import parse_qsl, urlsplit

from octoauth.output import get_output


def parse_callback_url(url: str) -> dict[str, str]:
    """Return the query arguments of *url* (last value wins for repeated keys)."""
    return dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))


class CallbackSubscription:
    """One pending wait for the callback matching ``state``.

    Created by :meth:`CallbackChannel.subscribe`; the code is delivered on
    the event loop that was running at subscription time.
    """

    def __init__(self, channel: CallbackChannel, state: str) -> None:
        self.state = state
        self._channel = channel
        self._loop = asyncio.get_running_loop()
        self._future: asyncio.Future[str] = self._loop.create_future()
        self._matched = False

    @property
    def done(self) -> bool:
        return self._future.done()

    async def wait(self) -> str:
        """Wait for the first matching callback and return its ``code``."""
        try:
            return await self._future
        finally:
            self.cancel()

    def cancel(self) -> None:
        """Release the subscription.  Safe to call more than once."""
        self._channel._unsubscribe(self)
        if self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._cancel_future()
        else:
            self._loop.call_soon_threadsafe(self._cancel_future)

    def _cancel_future(self) -> None:
        if not self._future.done():
            self._future.cancel()

    def _offer(self, arguments: dict[str, str]) -> bool:
        """Take the callback if it carries our state.  Called with the channel lock held."""
        if self._matched or self._loop.is_closed():
            return False
        if arguments.get("state") != self.state:
            return False
        self._matched = True
        self._loop.call_soon_threadsafe(self._resolve, arguments.get("code", ""))
        return True

    def _resolve(self, code: str) -> None:
        if not self._future.done():
            self._future.set_result(code)


class CallbackChannel:
    """Process-wide broadcast point for delivered callback URLs.

    Create one at application startup and pass it to
    :func:`~octoauth.signin.browser.authorize_using_web_browser` and to
    whatever receives callback URLs from the platform.

    :meth:`publish` may be called from any thread.  Publishes are
    serialised, so subscribers observe URLs in the order they were
    received.

    Example::

        channel = CallbackChannel()
        code = await authorize_using_web_browser(server, scopes, channel=channel)

        # elsewhere, when the OS opens the app with the callback URL:
        channel.publish("myapp://oauth?state=...&code=...")
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscriptions: list[CallbackSubscription] = []
        self._latest: Optional[str] = None

    @property
    def latest(self) -> Optional[str]:
        """The most recently published URL, if any."""
        return self._latest

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self, state: str) -> CallbackSubscription:
        """Start waiting for a callback whose ``state`` equals *state*.

        Must be called from a running event loop.  Only URLs published after
        this call are considered.
        """
        subscription = CallbackSubscription(self, state)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def publish(self, url: str) -> None:
        """Broadcast *url* to all pending subscriptions.

        At most one subscription (the one whose state matches) takes the URL;
        a URL nobody is waiting for is dropped.
        """
        arguments = parse_callback_url(url)
        with self._lock:
            self._latest = url
            taken = next(
                (s for s in self._subscriptions if s._offer(arguments)), None
            )
            if taken is not None:
                self._subscriptions.remove(taken)
        if taken is None:
            get_output().warning(f"Callback URL matched no pending sign-in: {url}")

    def _unsubscribe(self, subscription: CallbackSubscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
