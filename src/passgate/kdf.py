"""Master password key derivation.

The vault key and the login hash are both derived from the master
password with PBKDF2-HMAC-SHA256, salted with the lowercased username.
Accounts still configured for a single iteration use plain SHA-256.
"""

from __future__ import annotations

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from passgate.protocol import KDF_HASH_LEN

DEFAULT_ITERATIONS = 100100


def _sha256(data: bytes) -> bytes:
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize()


def _pbkdf2(password: bytes, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KDF_HASH_LEN,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password)


def derive_key(username: str, password: str, iterations: int) -> bytes:
    """Derive the 32-byte vault key.

    Raises:
        ValueError: If ``iterations`` is not positive.
    """
    if iterations < 1:
        raise ValueError(f"iterations must be positive, got {iterations}")
    user = username.lower().encode()
    secret = password.encode()
    if iterations == 1:
        return _sha256(user + secret)
    return _pbkdf2(secret, user, iterations)


def login_hash(username: str, password: str, iterations: int) -> str:
    """Derive the hex login hash sent to the server in place of the password."""
    key = derive_key(username, password, iterations)
    secret = password.encode()
    if iterations == 1:
        return _sha256(key.hex().encode() + secret).hex()
    return _pbkdf2(key, secret, 1).hex()
