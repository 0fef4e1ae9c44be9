"""In-memory Ed25519 signer for Tezos implicit accounts.

The signer only wraps key material; the Ed25519 primitive itself comes from
``cryptography``. Messages are hashed with blake2b-256 before signing, which is
what Tezos nodes verify against.
"""

from __future__ import annotations

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .base58 import Base58Error, b58check_decode, b58check_encode, blake2b_digest

_UNENCRYPTED_PREFIX = "unencrypted:"


class SignerKeyError(ValueError):
    """Raised when a secret key string cannot be used for signing."""


def _seed_from_secret(secret: str) -> bytes:
    secret = secret.strip().removeprefix(_UNENCRYPTED_PREFIX)
    if not secret.startswith("edsk"):
        raise SignerKeyError("Only unencrypted Ed25519 secret keys (edsk...) are supported")
    try:
        if len(secret) == 54:
            return b58check_decode("edsk", secret)
        return b58check_decode("edsk64", secret)[:32]
    except Base58Error as exc:
        raise SignerKeyError(f"Invalid secret key: {exc}") from exc


def is_valid_secret(secret: str) -> bool:
    try:
        _seed_from_secret(secret)
    except SignerKeyError:
        return False
    return True


class InMemorySigner:
    """Sign operation bytes with a locally held Ed25519 key."""

    def __init__(self, secret: str) -> None:
        self._seed = _seed_from_secret(secret)
        self._key = Ed25519PrivateKey.from_private_bytes(self._seed)
        self._public = self._key.public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)

    @property
    def secret_key(self) -> str:
        return b58check_encode("edsk", self._seed)

    def public_key(self) -> str:
        return b58check_encode("edpk", self._public)

    def public_key_hash(self) -> str:
        return b58check_encode("tz1", blake2b_digest(self._public, 20))

    def sign(self, message: bytes) -> bytes:
        """Return the raw 64 byte signature of ``blake2b(message)``."""

        return self._key.sign(blake2b_digest(message))

    def sign_b58(self, message: bytes) -> str:
        return b58check_encode("edsig", self.sign(message))

    def __repr__(self) -> str:
        return f"InMemorySigner({self.public_key_hash()})"
