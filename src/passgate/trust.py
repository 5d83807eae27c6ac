"""Device trust identifiers and labels.

A trusted device sends a persistent random id with every login so the
server can skip multi-factor prompts for it. The id is created once and
reused; the label shown in the account's trusted-device list is derived
from the host on every enrollment.
"""

from __future__ import annotations

import platform
import secrets
import string
from collections.abc import Callable

from passgate.exceptions import DeviceInfoError
from passgate.logging import get_logger
from passgate.store import ConfigStore

LOG = get_logger(__name__)

TRUST_ID_KEY = "trusted_id"
TRUST_ID_LENGTH = 32
TRUST_ID_ALPHABET = string.ascii_lowercase + string.ascii_uppercase + "1234567890!@#$"

_system_random = secrets.SystemRandom()


class TrustDeviceManager:
    """Create and persist the trust id, and describe this device.

    Args:
        store: Key/value store the id is persisted in.
        randint: Inclusive ``randint(a, b)`` random source. Defaults to the
            operating system CSPRNG.
        uname: Callable returning an object with ``node``, ``system`` and
            ``release`` attributes. Defaults to :func:`platform.uname`.
    """

    def __init__(
        self,
        store: ConfigStore,
        *,
        randint: Callable[[int, int], int] | None = None,
        uname: Callable[[], platform.uname_result] | None = None,
    ) -> None:
        self.store = store
        self._randint = randint or _system_random.randint
        self._uname = uname or platform.uname

    def get_or_create_trust_id(self, force_create: bool = False) -> str | None:
        """Return the persisted trust id, creating it only if ``force_create``."""
        trust_id = self.store.read_string(TRUST_ID_KEY)
        if trust_id or not force_create:
            return trust_id or None

        last = len(TRUST_ID_ALPHABET) - 1
        trust_id = "".join(
            TRUST_ID_ALPHABET[self._randint(0, last)] for _ in range(TRUST_ID_LENGTH)
        )
        self.store.write_string(TRUST_ID_KEY, trust_id)
        LOG.info("trust_id_created")
        return trust_id

    def forget(self) -> bool:
        """Delete the persisted trust id. Returns True if one existed."""
        return self.store.delete(TRUST_ID_KEY)

    def compute_device_label(self) -> str:
        """Return ``"<host> - <os> <release>"`` for this machine.

        Raises:
            DeviceInfoError: If the host name or OS identification is unavailable.
        """
        try:
            info = self._uname()
        except OSError as exc:
            raise DeviceInfoError(f"Failed to determine uname: {exc}") from exc

        if not info.node or not info.system:
            raise DeviceInfoError("Failed to determine uname.")
        return f"{info.node} - {info.system} {info.release}"
