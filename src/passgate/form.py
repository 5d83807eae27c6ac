"""Ordered form fields for login requests."""

from __future__ import annotations

from collections.abc import Iterator


class FormParameterSet:
    """Ordered collection of request fields with unique names.

    Setting a name that is already present replaces its value without
    moving it; a new name is appended. The login endpoint is sensitive to
    neither, but keeping first-introduced order makes request bodies
    reproducible between runs.

    Example:
        >>> fields = FormParameterSet([("xml", "2"), ("method", "cli")])
        >>> fields.set("xml", "1")
        >>> list(fields.items())
        [('xml', '1'), ('method', 'cli')]
    """

    def __init__(self, initial: list[tuple[str, str]] | None = None) -> None:
        self._fields: dict[str, str] = {}
        for name, value in initial or []:
            self.set(name, value)

    def set(self, name: str, value: str) -> None:
        # dict assignment to an existing key keeps its insertion position
        self._fields[name] = value

    def get(self, name: str) -> str | None:
        return self._fields.get(name)

    def items(self) -> list[tuple[str, str]]:
        return list(self._fields.items())

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        # Field values include the auth hash and one-time codes
        return f"FormParameterSet(names={list(self._fields)!r})"
