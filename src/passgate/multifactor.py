"""Multi-factor challenges and the one-time code retry loop."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from passgate import protocol
from passgate.logging import get_logger
from passgate.outcomes import Credential, Failure, Success

if TYPE_CHECKING:
    from passgate.form import FormParameterSet
    from passgate.prompt import Prompter
    from passgate.transport import Transport

LOG = get_logger(__name__)

LOGIN_PATH = "login.php"
WRONG_CODE_MESSAGE = "Invalid multifactor code; please try again."
ABORTED_MESSAGE = "Aborted multifactor authentication."
POST_FAILED_MESSAGE = "Unable to post login request."


class MultifactorChallenge(Enum):
    """Closed set of one-time code challenges the login endpoint issues.

    Each value is ``(display_name, cause_on_require, cause_on_wrong_code,
    form_field)``.
    """

    GOOGLE_AUTHENTICATOR = (
        "Google Authenticator Code",
        "googleauthrequired",
        "googleauthfailed",
        "otp",
    )
    YUBIKEY = ("YubiKey OTP", "otprequired", "otpfailed", "otp")
    SESAME = ("Sesame OTP", "sesameotprequired", "sesameotpfailed", "sesameotp")
    OUT_OF_BAND = (
        "Out-of-Band OTP",
        "outofbandrequired",
        "multifactorresponsefailed",
        "otp",
    )
    MICROSOFT_AUTHENTICATOR = (
        "Microsoft Authenticator Code",
        "microsoftauthrequired",
        "microsoftauthfailed",
        "otp",
    )

    def __init__(
        self,
        display_name: str,
        cause_on_require: str,
        cause_on_wrong_code: str,
        form_field: str,
    ) -> None:
        self.display_name = display_name
        self.cause_on_require = cause_on_require
        self.cause_on_wrong_code = cause_on_wrong_code
        self.form_field = form_field

    @classmethod
    def for_cause(cls, cause: str | None) -> MultifactorChallenge | None:
        """Return the challenge whose require cause is exactly ``cause``."""
        for challenge in cls:
            if challenge.cause_on_require == cause:
                return challenge
        return None


class MultifactorChallengeHandler:
    """Prompt for one-time codes until the server accepts one.

    There is no retry limit: the loop ends when the server issues a session,
    the user aborts the prompt, or the server reports anything other than a
    wrong code.
    """

    def __init__(
        self,
        transport: Transport,
        prompter: Prompter,
        *,
        login_path: str = LOGIN_PATH,
    ) -> None:
        self.transport = transport
        self.prompter = prompter
        self.login_path = login_path

    def handle(
        self,
        server: str,
        credential: Credential,
        fields: FormParameterSet,
        reply: str,
        cause: str,
        display_name: str | None = None,
    ) -> Success | Failure:
        """Run the challenge for ``cause``.

        Args:
            server: Host that issued the challenge.
            credential: Login credential; its key validates the session.
            fields: Request fields, updated in place with each code.
            reply: Raw reply that issued the challenge.
            cause: Failure cause from ``reply``.
            display_name: Overrides the challenge's own display name.

        Returns:
            Success with a session, or Failure with a user-facing message.
        """
        challenge = MultifactorChallenge.for_cause(cause)
        if challenge is None:
            LOG.info("multifactor_cause_unrecognized", cause=cause)
            return Failure(protocol.error_message(reply))

        name = display_name or challenge.display_name
        description = f"Please enter your {name} for <{credential.username}>."
        LOG.info("multifactor_challenge_started", challenge=challenge.name, server=server)

        error: str | None = None
        attempts = 0
        while True:
            code = self.prompter.read_secret("Code", error, description)
            if code is None:
                LOG.info("multifactor_aborted", challenge=challenge.name)
                return Failure(ABORTED_MESSAGE)
            fields.set(challenge.form_field, code)
            attempts += 1

            reply_text = self.transport.post(server, self.login_path, fields)
            if reply_text is None:
                return Failure(POST_FAILED_MESSAGE)

            session = protocol.parse_session(reply_text, credential.derived_key)
            if session is not None:
                LOG.info("multifactor_accepted", challenge=challenge.name, attempts=attempts)
                return Success(session=session.bound_to(server))

            next_cause = protocol.extract_field(reply_text, "cause")
            if next_cause != challenge.cause_on_wrong_code:
                LOG.info("multifactor_rejected", challenge=challenge.name, cause=next_cause)
                return Failure(protocol.error_message(reply_text))

            LOG.info("multifactor_wrong_code", challenge=challenge.name, attempts=attempts)
            error = WRONG_CODE_MESSAGE

