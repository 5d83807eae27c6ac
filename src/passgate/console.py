"""Terminal output for passgate.

Status, prompts and outcome messages go to stderr; ``out_console`` is
reserved for data a caller may pipe. Message text often comes from the
server, so every helper escapes it before rich sees it.
"""

from __future__ import annotations

from typing import Protocol

from rich.console import Console
from rich.markup import escape
from rich.status import Status

err_console = Console(stderr=True)
out_console = Console()

WAITING_STYLE = "bold yellow"


def _emit(style: str, marker: str, message: str, console: Console | None) -> None:
    (console or err_console).print(f"[{style}]  {marker}{escape(message)}[/{style}]")


def success(message: str, *, console: Console | None = None) -> None:
    """Print ``message`` with a green check mark."""
    _emit("green", "✓ ", message, console)


def error(message: str, *, console: Console | None = None) -> None:
    """Print ``message`` with a red cross, e.g. a login failure."""
    _emit("red", "✗ ", message, console)


def warn(message: str, *, console: Console | None = None) -> None:
    _emit("yellow", "⚠ ", message, console)


def info(message: str, *, console: Console | None = None) -> None:
    _emit("dim", "", message, console)


class StatusReporter(Protocol):
    def show(self, text: str) -> None: ...

    def tick(self) -> None: ...

    def clear(self) -> None: ...


class StatusLine:
    """Single transient status line on stderr.

    ``show`` replaces any line already shown, ``tick`` appends one progress
    dot, and ``clear`` removes the line. ``clear`` is safe to call when
    nothing is shown.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or err_console
        self._status: Status | None = None
        self._text = ""
        self.ticks = 0

    def _render(self) -> str:
        return f"[{WAITING_STYLE}]{self._text}[/{WAITING_STYLE}]{'.' * self.ticks}"

    def show(self, text: str) -> None:
        self.clear()
        self._text = escape(text)
        self.ticks = 0
        self._status = Status(self._render(), console=self._console, spinner="dots")
        self._status.start()

    def tick(self) -> None:
        self.ticks += 1
        if self._status is not None:
            self._status.update(self._render())

    def clear(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None
