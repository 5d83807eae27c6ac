"""Login handshake.

``LoginOrchestrator.login`` turns a derived credential into a session:

1. Post the credential to the primary server, following a bounded number
   of regional redirects (``OrdinaryLoginAttempt``).
2. If the server asks for a second factor, either poll for out-of-band
   approval (``OutOfBandApprovalPoller``) or prompt for a one-time code
   (``MultifactorChallengeHandler``).
3. Optionally enroll this device as trusted once a session exists.

Every recoverable problem ends as a ``Failure`` carrying a user-facing
message. Only ``DeviceInfoError`` escapes as an exception.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from passgate import protocol
from passgate.config import PassgateSettings, get_settings
from passgate.console import StatusLine
from passgate.exceptions import LoginError
from passgate.form import FormParameterSet
from passgate.logging import get_logger
from passgate.multifactor import MultifactorChallengeHandler
from passgate.outcomes import (
    OUT_OF_BAND_CAUSE,
    Credential,
    Failure,
    FallbackToPasscode,
    LoginOutcome,
    MultifactorRequired,
    OutOfBandRequired,
    Redirect,
    Success,
)
from passgate.outofband import OutOfBandApprovalPoller
from passgate.prompt import SecretPrompter
from passgate.store import ConfigStore
from passgate.transport import HttpTransport
from passgate.trust import TrustDeviceManager

if TYPE_CHECKING:
    from passgate.console import StatusReporter
    from passgate.prompt import Prompter
    from passgate.protocol import Session
    from passgate.transport import Transport

LOG = get_logger(__name__)

LOGIN_PATH = "login.php"
TRUST_PATH = "trust.php"

PROTOCOL_VERSION = "2"
CLIENT_METHOD = "cli"

POST_FAILED_MESSAGE = "Unable to post login request."
UNKNOWN_CAUSE_MESSAGE = "Unable to determine login failure cause."
TOO_MANY_REDIRECTS_MESSAGE = "Too many login server redirects."
UNSPECIFIED_MESSAGE = "An unspecified error occurred."


class OrdinaryLoginAttempt:
    """Post the login form once, following regional redirects.

    The server redirects accounts homed in another region by answering with
    a ``server`` attribute naming the regional host. Only the configured
    alternate host is followed, and at most ``max_redirects`` times.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        alternate_server: str,
        max_redirects: int = 1,
        login_path: str = LOGIN_PATH,
    ) -> None:
        self.transport = transport
        self.alternate_server = alternate_server
        self.max_redirects = max_redirects
        self.login_path = login_path

    def attempt(
        self,
        server: str,
        credential: Credential,
        fields: FormParameterSet,
    ) -> LoginOutcome:
        """Run one login cycle against ``server``.

        Returns:
            Success, MultifactorRequired, OutOfBandRequired, or Failure.
            Redirects are followed internally and never returned.
        """
        redirects = 0
        while True:
            outcome = self._post_once(server, credential, fields)
            if not isinstance(outcome, Redirect):
                return outcome

            redirects += 1
            if redirects > self.max_redirects:
                LOG.warning(
                    "login_redirect_limit_reached",
                    server=server,
                    target=outcome.server,
                    max_redirects=self.max_redirects,
                )
                return Failure(TOO_MANY_REDIRECTS_MESSAGE)
            LOG.info("login_redirected", server=server, target=outcome.server)
            server = outcome.server

    def _post_once(
        self,
        server: str,
        credential: Credential,
        fields: FormParameterSet,
    ) -> LoginOutcome:
        reply = self.transport.post(server, self.login_path, fields)
        if reply is None:
            return Failure(POST_FAILED_MESSAGE)

        session = protocol.parse_session(reply, credential.derived_key)
        if session is not None:
            return Success(session=session.bound_to(server))

        target = protocol.extract_field(reply, "server")
        if target and target == self.alternate_server:
            return Redirect(server=target)

        cause = protocol.extract_field(reply, "cause")
        if not cause:
            LOG.warning("login_failure_cause_missing", server=server)
            return Failure(UNKNOWN_CAUSE_MESSAGE)
        if cause == OUT_OF_BAND_CAUSE:
            return OutOfBandRequired(server=server, reply=reply)
        return MultifactorRequired(cause=cause, server=server, reply=reply)


class LoginOrchestrator:
    """Run the complete login handshake.

    Collaborators default to the real terminal and network implementations;
    tests inject fakes.

    Args:
        transport: Login endpoint transport.
        prompter: Secret prompt for one-time codes.
        status: Status line for the out-of-band wait.
        trust: Trust id / device label source.
        settings: Server names and client-side caps.
        cancel: Event that abandons an out-of-band wait once set.
        interruptible: Let Ctrl+C set ``cancel`` during an out-of-band wait.
    """

    def __init__(
        self,
        transport: Transport | None = None,
        prompter: Prompter | None = None,
        status: StatusReporter | None = None,
        trust: TrustDeviceManager | None = None,
        settings: PassgateSettings | None = None,
        cancel: threading.Event | None = None,
        interruptible: bool = False,
    ) -> None:
        self.settings = settings or get_settings()
        self.transport = transport or HttpTransport(self.settings)
        self.prompter = prompter or SecretPrompter()
        self.status = status or StatusLine()
        self.trust = trust or TrustDeviceManager(ConfigStore(self.settings.store_dir))
        self.cancel = cancel or threading.Event()

        self.ordinary = OrdinaryLoginAttempt(
            self.transport,
            alternate_server=self.settings.alternate_server,
            max_redirects=self.settings.max_redirects,
        )
        self.multifactor = MultifactorChallengeHandler(self.transport, self.prompter)
        self.out_of_band = OutOfBandApprovalPoller(
            self.transport,
            self.status,
            cancel=self.cancel,
            max_polls=self.settings.oob_max_polls,
            interruptible=interruptible,
        )

    def build_fields(
        self,
        credential: Credential,
        fragment_id: str | None,
        trust_id: str | None,
    ) -> FormParameterSet:
        """Build the initial login form, in wire order."""
        fields = FormParameterSet(
            [
                ("xml", PROTOCOL_VERSION),
                ("username", credential.username),
                ("hash", credential.auth_hash),
                ("iterations", str(credential.iterations)),
                ("includeprivatekeyenc", "1"),
                ("method", CLIENT_METHOD),
                ("outofbandsupported", "1"),
            ]
        )
        if fragment_id:
            fields.set("alpfragmentid", fragment_id)
            fields.set("calculatedfragmentid", fragment_id)
        if trust_id:
            fields.set("uuid", trust_id)
        return fields

    def login(
        self,
        username: str,
        fragment_id: str | None,
        auth_hash: str,
        derived_key: bytes,
        iterations: int,
        request_trust: bool = False,
    ) -> Success | Failure:
        """Log in and return the outcome.

        Args:
            username: Account name; sent lowercased.
            fragment_id: Optional fragment correlation id.
            auth_hash: Hex login hash derived from the master password.
            derived_key: Vault key used to validate the session reply.
            iterations: KDF iteration count used for ``auth_hash``.
            request_trust: Enroll this device as trusted after a second
                factor succeeds.

        Returns:
            Success with the session, or Failure with a user-facing message.

        Raises:
            DeviceInfoError: If ``request_trust`` is set and this host cannot
                be identified.
        """
        credential = Credential(
            username=username,
            auth_hash=auth_hash,
            iterations=iterations,
            derived_key=derived_key,
        )
        trust_id = self.trust.get_or_create_trust_id(force_create=False)
        fields = self.build_fields(credential, fragment_id, trust_id)

        LOG.info(
            "login_started",
            server=self.settings.server,
            trusted_device=trust_id is not None,
            request_trust=request_trust,
        )
        outcome = self.ordinary.attempt(self.settings.server, credential, fields)
        if isinstance(outcome, Success | Failure):
            return self._finish(outcome)

        trust_label: str | None = None
        if request_trust:
            trust_label = self.trust.compute_device_label()
            if trust_id is None:
                trust_id = self.trust.get_or_create_trust_id(force_create=True)
                fields.set("uuid", trust_id or "")
            fields.set("trustlabel", trust_label)

        result: Success | Failure
        if isinstance(outcome, OutOfBandRequired):
            polled = self.out_of_band.poll(outcome.server, credential, fields, outcome.reply)
            if isinstance(polled, FallbackToPasscode):
                LOG.info("out_of_band_fallback_to_passcode", method=polled.display_name)
                result = self.multifactor.handle(
                    outcome.server,
                    credential,
                    fields,
                    outcome.reply,
                    OUT_OF_BAND_CAUSE,
                    display_name=polled.display_name,
                )
            else:
                result = polled
        elif isinstance(outcome, MultifactorRequired):
            result = self.multifactor.handle(
                outcome.server, credential, fields, outcome.reply, outcome.cause
            )
        else:
            result = Failure(UNSPECIFIED_MESSAGE)

        if isinstance(result, Success) and trust_label is not None and trust_id:
            self.enroll_trust(result.session, trust_id, trust_label)
        return self._finish(result)

    def enroll_trust(self, session: Session, trust_id: str, trust_label: str) -> bool:
        """Register this device as trusted. Failure is logged, not raised."""
        reply = self.transport.post(
            session.server,
            TRUST_PATH,
            {"token": session.token, "uuid": trust_id, "trustlabel": trust_label},
            session=session,
        )
        if reply is None:
            LOG.warning("trust_enrollment_failed", server=session.server)
            return False
        LOG.info("trust_enrollment_posted", server=session.server)
        return True

    def _finish(self, outcome: Success | Failure) -> Success | Failure:
        if isinstance(outcome, Success):
            LOG.info("login_succeeded", server=outcome.session.server)
        else:
            LOG.info("login_failed", reason=outcome.message)
        return outcome


def login(
    username: str,
    auth_hash: str,
    derived_key: bytes,
    iterations: int,
    *,
    fragment_id: str | None = None,
    request_trust: bool = False,
    orchestrator: LoginOrchestrator | None = None,
) -> Session:
    """Log in and return the session.

    Raises:
        LoginError: If the handshake ended without a session.
        DeviceInfoError: If trust was requested and the host cannot be identified.
    """
    orchestrator = orchestrator or LoginOrchestrator()
    outcome = orchestrator.login(
        username,
        fragment_id,
        auth_hash,
        derived_key,
        iterations,
        request_trust=request_trust,
    )
    if isinstance(outcome, Failure):
        raise LoginError(outcome.message)
    return outcome.session
