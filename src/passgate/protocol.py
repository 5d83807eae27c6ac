"""Login reply parsing.

The login endpoint answers every request with a small XML document. A
successful login looks like::

    <response><ok uid="..." sessionid="..." token="..." privatekeyenc="..."/></response>

and anything else carries an ``error`` element whose attributes describe
why the login did not complete::

    <response><error cause="googleauthrequired" message="..."/></response>

All error attributes are optional; which ones appear depends on the cause.
"""

from __future__ import annotations

import binascii
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

import defusedxml.ElementTree as ET
from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from defusedxml import DefusedXmlException

from passgate.logging import get_logger

if TYPE_CHECKING:
    from xml.etree.ElementTree import Element

LOG = get_logger(__name__)

KDF_HASH_LEN = 32

_PRIVATE_KEY_PREFIX = b"LastPassPrivateKey<"
_PRIVATE_KEY_SUFFIX = b">LastPassPrivateKey"
_UPGRADE_SUFFIX = " Upgrade your browser extension so you can enter it."

DEFAULT_ERROR_MESSAGE = "Could not parse error message to login request."


@dataclass(frozen=True)
class Session:
    """An authenticated session.

    Attributes:
        uid: Server-side account id.
        sessionid: Session cookie value (sent as ``PHPSESSID``).
        token: CSRF token required by authenticated endpoints.
        private_key: DER-encoded account private key, if the server sent
            one and it decrypted with the derived key.
        server: Host the session was established against. After a
            regional redirect this differs from the configured server.
    """

    uid: str
    sessionid: str = field(repr=False)
    token: str = field(repr=False)
    private_key: bytes | None = field(default=None, repr=False)
    server: str = ""

    def bound_to(self, server: str) -> Session:
        """Return a copy recording the host that issued this session."""
        return replace(self, server=server)


def _parse(raw: str) -> Element | None:
    try:
        return ET.fromstring(raw)
    except ET.ParseError:
        LOG.debug("login_reply_unparseable", length=len(raw))
        return None
    except DefusedXmlException as exc:
        LOG.warning("login_reply_rejected", reason=type(exc).__name__)
        return None


def _find(root: Element, tag: str) -> Element | None:
    if root.tag == tag:
        return root
    if root.tag == "response":
        return root.find(tag)
    return None


def decrypt_private_key(encrypted_hex: str, key: bytes) -> bytes | None:
    """Decrypt the ``privatekeyenc`` attribute of a login reply.

    The value is hex-encoded AES-256-CBC ciphertext keyed with the derived
    key (IV is its first 16 bytes). The plaintext wraps the hex-encoded DER
    private key in ``LastPassPrivateKey<...>LastPassPrivateKey``.

    Returns:
        DER bytes, or None if the value does not decrypt with ``key``.
    """
    if len(key) != KDF_HASH_LEN:
        return None
    try:
        ciphertext = binascii.unhexlify(encrypted_hex)
        decryptor = Cipher(algorithms.AES(key), modes.CBC(key[:16])).decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        plaintext = unpadder.update(padded) + unpadder.finalize()
    except ValueError:
        return None

    if not (plaintext.startswith(_PRIVATE_KEY_PREFIX) and plaintext.endswith(_PRIVATE_KEY_SUFFIX)):
        return None
    payload = plaintext[len(_PRIVATE_KEY_PREFIX) : -len(_PRIVATE_KEY_SUFFIX)]
    try:
        return binascii.unhexlify(payload)
    except (ValueError, binascii.Error):
        return None


def parse_session(raw: str, key: bytes) -> Session | None:
    """Extract a session from a login reply.

    A reply is a session when its ``ok`` element carries ``uid``,
    ``sessionid`` and ``token``. A private key that fails to decrypt with
    ``key`` is dropped with a warning; the session itself is still usable.

    Returns:
        The session (with an empty ``server``), or None if the reply is not
        a successful login.
    """
    root = _parse(raw)
    if root is None:
        return None
    ok = _find(root, "ok")
    if ok is None:
        return None

    uid = ok.get("uid")
    sessionid = ok.get("sessionid")
    token = ok.get("token")
    if not (uid and sessionid and token):
        return None

    private_key = None
    encrypted = ok.get("privatekeyenc")
    if encrypted:
        private_key = decrypt_private_key(encrypted, key)
        if private_key is None:
            LOG.warning("private_key_decrypt_failed", uid=uid)

    return Session(uid=uid, sessionid=sessionid, token=token, private_key=private_key)


def extract_field(raw: str, name: str) -> str | None:
    """Return attribute ``name`` of the reply's ``error`` element, if any."""
    root = _parse(raw)
    if root is None:
        return None
    error = _find(root, "error")
    if error is None:
        return None
    return error.get(name)


def error_message(raw: str) -> str:
    """Return the user-facing message of an error reply.

    Strips the browser-extension upgrade hint the server appends to some
    multifactor messages, since it does not apply to this client.
    """
    message = extract_field(raw, "message")
    if not message:
        return DEFAULT_ERROR_MESSAGE
    if _UPGRADE_SUFFIX in message:
        message = message[: message.index(_UPGRADE_SUFFIX)]
    return message
