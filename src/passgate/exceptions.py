"""Custom exceptions for passgate package."""


class PassgateError(Exception):
    """Base exception class for all passgate errors."""


class StoreError(PassgateError):
    """Raised when the persistent key/value store cannot be read or written."""


class LoginError(PassgateError):
    """Login handshake ended without a session.

    The handshake reports every recoverable failure as a human-readable
    message. This exception carries that message for callers that prefer
    exceptions over inspecting a ``Failure`` outcome.

    Example:
        raise LoginError("Unable to post login request.")
    """

    def __init__(self, user_message: str) -> None:
        self.user_message = user_message
        super().__init__(user_message)


class DeviceInfoError(PassgateError):
    """Host name or OS identification could not be determined.

    This is not a login failure: it signals a broken host environment and
    must not be retried or turned into a login message.
    """
