"""Interactive secret entry."""

from __future__ import annotations

from typing import Protocol

import click
from rich.console import Console
from rich.markup import escape

from passgate import console as pg_console


class Prompter(Protocol):
    def read_secret(self, label: str, error: str | None, description: str) -> str | None: ...


class SecretPrompter:
    """Read a hidden value from the terminal.

    The description and any error annotation from a previous attempt are
    printed to stderr before the prompt itself.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or pg_console.err_console

    def read_secret(self, label: str, error: str | None, description: str) -> str | None:
        """Prompt for a secret.

        Args:
            label: Short prompt label, e.g. ``"Code"``.
            error: Annotation explaining why the previous value was rejected.
            description: Sentence describing what to enter.

        Returns:
            The entered value without surrounding whitespace, or None if
            the user aborted (Ctrl+C / Ctrl+D). A blank entry is asked for
            again.
        """
        self._console.print(escape(description))
        if error:
            pg_console.error(error, console=self._console)
        while True:
            try:
                value = str(click.prompt(label, hide_input=True, err=True)).strip()
            except click.Abort:
                return None
            if value:
                return value
