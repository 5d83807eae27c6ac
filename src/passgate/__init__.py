"""passgate - log in to a password vault from the terminal.

Turns a master password into an authenticated vault session, handling
regional redirects, one-time code challenges, out-of-band (push) approval,
and trusted-device enrollment.

This package provides:
- Master password key derivation
- The login handshake state machine
- Persistent device trust ids
- A small CLI (``passgate login``)

Example:
    >>> from passgate import derive_key, login, login_hash
    >>> key = derive_key("alice@example.com", password, 100100)
    >>> auth = login_hash("alice@example.com", password, 100100)
    >>> session = login("alice@example.com", auth, key, 100100)
    >>> session.server
    'lastpass.com'
"""

__version__ = "0.4.0"

from passgate.config import PassgateSettings, get_settings
from passgate.exceptions import (
    DeviceInfoError,
    LoginError,
    PassgateError,
    StoreError,
)
from passgate.form import FormParameterSet
from passgate.handshake import LoginOrchestrator, OrdinaryLoginAttempt, login
from passgate.kdf import derive_key, login_hash
from passgate.multifactor import MultifactorChallenge, MultifactorChallengeHandler
from passgate.outcomes import Credential, Failure, Success
from passgate.outofband import OutOfBandApprovalPoller, OutOfBandCapabilities
from passgate.protocol import Session
from passgate.store import ConfigStore
from passgate.transport import HttpTransport
from passgate.trust import TrustDeviceManager

__all__ = [
    # Version
    "__version__",
    # Login
    "login",
    "LoginOrchestrator",
    "OrdinaryLoginAttempt",
    "MultifactorChallenge",
    "MultifactorChallengeHandler",
    "OutOfBandApprovalPoller",
    "OutOfBandCapabilities",
    "Credential",
    "Success",
    "Failure",
    "Session",
    "FormParameterSet",
    # Key derivation
    "derive_key",
    "login_hash",
    # Collaborators
    "HttpTransport",
    "ConfigStore",
    "TrustDeviceManager",
    # Configuration
    "PassgateSettings",
    "get_settings",
    # Exceptions
    "PassgateError",
    "StoreError",
    "LoginError",
    "DeviceInfoError",
]
