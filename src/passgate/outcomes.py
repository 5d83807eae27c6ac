"""Credential and per-request outcome types for the login handshake."""

from __future__ import annotations

from dataclasses import dataclass, field

from passgate.protocol import Session

OUT_OF_BAND_CAUSE = "outofbandrequired"


@dataclass
class Credential:
    """Locally derived login credential.

    ``derived_key`` only validates and decrypts the login reply; it is
    never sent to the server.
    """

    username: str
    auth_hash: str = field(repr=False)
    iterations: int
    derived_key: bytes = field(repr=False)

    def __post_init__(self) -> None:
        self.username = self.username.lower()


@dataclass(frozen=True)
class Success:
    session: Session


@dataclass(frozen=True)
class Failure:
    message: str


@dataclass(frozen=True)
class Redirect:
    server: str


@dataclass(frozen=True)
class MultifactorRequired:
    """The server wants a one-time code before it will issue a session.

    ``server`` is the host that answered (after any redirect) and ``reply``
    its raw response, which later stages read extra fields from.
    """

    cause: str
    server: str
    reply: str = field(repr=False)


@dataclass(frozen=True)
class OutOfBandRequired:
    server: str
    reply: str = field(repr=False)


@dataclass(frozen=True)
class FallbackToPasscode:
    """Out-of-band approval is unavailable; ask for a passcode instead."""

    display_name: str


LoginOutcome = Success | Redirect | MultifactorRequired | OutOfBandRequired | Failure
