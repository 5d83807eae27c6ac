"""Out-of-band (push) approval polling.

When an account uses a push-style second factor, the server answers the
login with ``outofbandrequired`` and holds each subsequent request open
until the user approves, denies, or the server-side wait expires. The
client simply keeps re-posting with a retry marker until something other
than ``outofbandrequired`` comes back; the server's own latency paces the
loop.

If the method also accepts passcodes, the user can stop waiting (Ctrl+C)
and type a code instead; the caller then runs the ordinary multi-factor
prompt under the ``outofbandrequired`` cause.
"""

from __future__ import annotations

import signal
import threading
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager, nullcontext
from dataclasses import dataclass
from typing import TYPE_CHECKING

from passgate import protocol
from passgate.logging import get_logger
from passgate.outcomes import (
    OUT_OF_BAND_CAUSE,
    Credential,
    Failure,
    FallbackToPasscode,
    Success,
)

if TYPE_CHECKING:
    from passgate.console import StatusReporter
    from passgate.form import FormParameterSet
    from passgate.transport import Transport

LOG = get_logger(__name__)

LOGIN_PATH = "login.php"
PASSCODE_SUFFIX = " OTP"
UNKNOWN_TYPE_MESSAGE = "Could not determine out-of-band type."
POST_FAILED_MESSAGE = "Unable to post login request."
ABORTED_MESSAGE = "Aborted out-of-band authentication."
TIMED_OUT_MESSAGE = "Timed out waiting for out-of-band approval."


@dataclass(frozen=True)
class OutOfBandCapabilities:
    """Capability tokens the server reported for the out-of-band method."""

    tokens: frozenset[str]

    @classmethod
    def parse(cls, capabilities: str) -> OutOfBandCapabilities:
        """Parse a comma-separated capability list (e.g. ``"passcode,outofband"``)."""
        return cls(frozenset(token for token in capabilities.split(",") if token))

    @property
    def can_use_passcode(self) -> bool:
        return "passcode" in self.tokens

    @property
    def passcode_only(self) -> bool:
        """True when the method is really a passcode prompt, with nothing to poll."""
        return self.can_use_passcode and "outofband" not in self.tokens


@contextmanager
def cancel_on_interrupt(cancel: threading.Event) -> Iterator[threading.Event]:
    """Turn Ctrl+C into a cancellation request for the duration of the block.

    The in-flight request is allowed to finish; the poll loop observes the
    event before sending the next one. Outside the main thread signal
    handlers cannot be installed and Ctrl+C keeps its default behavior.
    """
    if threading.current_thread() is not threading.main_thread():
        yield cancel
        return

    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum: int, frame: object) -> None:
        LOG.debug("out_of_band_cancel_requested")
        cancel.set()

    signal.signal(signal.SIGINT, _handler)
    try:
        yield cancel
    finally:
        signal.signal(signal.SIGINT, previous)


@contextmanager
def _status_shown(status: StatusReporter, text: str) -> Iterator[None]:
    status.show(text)
    try:
        yield
    finally:
        status.clear()


class OutOfBandApprovalPoller:
    """Wait for out-of-band approval of a login.

    Args:
        transport: Login endpoint transport.
        status: Status line shown while waiting.
        cancel: Event that, once set, stops the wait before the next poll. It is
            cleared when each wait starts.
        max_polls: Optional cap on poll requests. None waits for as long as
            the server keeps answering ``outofbandrequired``.
        interruptible: Let Ctrl+C set ``cancel`` while waiting on a method
            that also accepts passcodes.
        login_path: Login endpoint path.
    """

    def __init__(
        self,
        transport: Transport,
        status: StatusReporter,
        *,
        cancel: threading.Event | None = None,
        max_polls: int | None = None,
        interruptible: bool = False,
        login_path: str = LOGIN_PATH,
    ) -> None:
        self.transport = transport
        self.status = status
        self.cancel = cancel or threading.Event()
        self.max_polls = max_polls
        self.interruptible = interruptible
        self.login_path = login_path

    def poll(
        self,
        server: str,
        credential: Credential,
        fields: FormParameterSet,
        reply: str,
    ) -> Success | Failure | FallbackToPasscode:
        """Poll ``server`` until the login is approved or abandoned.

        Args:
            server: Host that requested out-of-band approval.
            credential: Login credential; its key validates the session.
            fields: Request fields, updated in place with retry markers.
            reply: Raw reply that requested out-of-band approval.

        Returns:
            Success with a session, Failure with a user-facing message, or
            FallbackToPasscode naming the method to prompt a passcode for.
        """
        name = protocol.extract_field(reply, "outofbandname")
        raw_capabilities = protocol.extract_field(reply, "capabilities")
        if name is None or raw_capabilities is None:
            return Failure(UNKNOWN_TYPE_MESSAGE)

        capabilities = OutOfBandCapabilities.parse(raw_capabilities)
        if capabilities.passcode_only:
            LOG.info("out_of_band_passcode_only", method=name)
            return FallbackToPasscode(display_name=name + PASSCODE_SUFFIX)

        hint = ", or press Ctrl+C to enter a passcode" if capabilities.can_use_passcode else ""
        # a cancel request applies to one wait only
        self.cancel.clear()
        fields.set("outofbandrequest", "1")
        LOG.info("out_of_band_wait_started", method=name, server=server)

        waiting = f"Waiting for approval of out-of-band {name} login{hint}..."
        with _status_shown(self.status, waiting), self._interrupts(capabilities):
            return self._wait(server, credential, fields, name, capabilities)

    def _interrupts(self, capabilities: OutOfBandCapabilities) -> AbstractContextManager[object]:
        if self.interruptible and capabilities.can_use_passcode:
            return cancel_on_interrupt(self.cancel)
        return nullcontext()

    def _wait(
        self,
        server: str,
        credential: Credential,
        fields: FormParameterSet,
        name: str,
        capabilities: OutOfBandCapabilities,
    ) -> Success | Failure | FallbackToPasscode:
        polls = 0
        while True:
            if self.cancel.is_set():
                LOG.info("out_of_band_wait_cancelled", method=name, polls=polls)
                return self._give_up(fields, name, capabilities, ABORTED_MESSAGE)
            if self.max_polls is not None and polls >= self.max_polls:
                LOG.warning("out_of_band_poll_limit_reached", method=name, polls=polls)
                return self._give_up(fields, name, capabilities, TIMED_OUT_MESSAGE)

            reply = self.transport.post(server, self.login_path, fields)
            polls += 1
            if reply is None:
                return self._give_up(fields, name, capabilities, POST_FAILED_MESSAGE)

            session = protocol.parse_session(reply, credential.derived_key)
            if session is not None:
                LOG.info("out_of_band_approved", method=name, polls=polls)
                return Success(session=session.bound_to(server))

            cause = protocol.extract_field(reply, "cause")
            if cause != OUT_OF_BAND_CAUSE:
                LOG.info("out_of_band_rejected", method=name, cause=cause)
                return Failure(protocol.error_message(reply))

            fields.set("outofbandretry", "1")
            fields.set("outofbandretryid", protocol.extract_field(reply, "retryid") or "")
            self.status.tick()

    def _give_up(
        self,
        fields: FormParameterSet,
        name: str,
        capabilities: OutOfBandCapabilities,
        message: str,
    ) -> Failure | FallbackToPasscode:
        if not capabilities.can_use_passcode:
            return Failure(message)
        fields.set("outofbandrequest", "0")
        fields.set("outofbandretry", "0")
        fields.set("outofbandretryid", "")
        return FallbackToPasscode(display_name=name + PASSCODE_SUFFIX)
