"""Diagnostics output for octoauth.

octoauth is a library, so it never writes to stdout.  The sign-in workflows
report two kinds of diagnostics on stderr through a Rich
:class:`~rich.console.Console`:

* **warnings** -- conditions the caller did not ask for but should know
  about, such as a server that forced the HTTPS retry or a callback URL
  that no pending sign-in claimed.  Silenced by ``quiet``.
* **debug traces** -- one line per request and workflow step.  Shown only
  when ``verbose``.

Applications configure an :class:`OutputManager` and install it with
:func:`set_output`; library code fetches it with :func:`get_output`.  The
lazily created default turns verbose on when ``OCTOAUTH_VERBOSE`` is set.

Colour follows `clig.dev <https://clig.dev/>`_ conventions: ``NO_COLOR`` and
``TERM=dumb`` disable it.
"""

from __future__ import annotations

import os
import sys
from typing import Optional

from rich.console import Console
from rich.markup import escape


class OutputManager:
    """Writes octoauth diagnostics to stderr.

    Args:
        no_color: Disable colour and Rich markup.
        quiet: Suppress warnings.
        verbose: Show debug traces.
    """

    def __init__(
        self,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose
        self._console = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    def warning(self, message: str) -> None:
        if self._quiet:
            return
        self._emit("Warning: ", "[yellow]Warning:[/yellow] ", message)

    def debug(self, message: str) -> None:
        if not self._verbose:
            return
        self._emit("[debug] ", "[dim]\\[debug][/dim] ", message)

    def _emit(self, plain_prefix: str, rich_prefix: str, message: str) -> None:
        if self._no_color:
            print(f"{plain_prefix}{message}", file=sys.stderr, flush=True)
        else:
            self._console.print(f"{rich_prefix}{escape(message)}")


def _should_disable_color() -> bool:
    """True when ``NO_COLOR`` is set (any value) or ``TERM=dumb``."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager(verbose=bool(os.environ.get("OCTOAUTH_VERBOSE")))
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* for all octoauth diagnostics."""
    global _output
    _output = output


def reset_output() -> None:
    """Drop the installed manager; the next :func:`get_output` builds a default."""
    global _output
    _output = None
