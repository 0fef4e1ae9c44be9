"""Base58check helpers for Tezos addresses, keys and hashes."""

from __future__ import annotations

import hashlib

_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {char: index for index, char in enumerate(_ALPHABET)}

# Prefix bytes and payload lengths for the encodings used by tznft.
PREFIXES: dict[str, tuple[bytes, int]] = {
    "tz1": (bytes([6, 161, 159]), 20),
    "tz2": (bytes([6, 161, 161]), 20),
    "tz3": (bytes([6, 161, 164]), 20),
    "KT1": (bytes([2, 90, 121]), 20),
    "edpk": (bytes([13, 15, 37, 217]), 32),
    "edsk": (bytes([13, 15, 58, 7]), 32),
    "edsk64": (bytes([43, 246, 78, 7]), 64),
    "edsig": (bytes([9, 245, 205, 134, 18]), 64),
    "expr": (bytes([13, 44, 64, 27]), 32),
    "o": (bytes([5, 116]), 32),
    "B": (bytes([1, 52]), 32),
}

ADDRESS_KINDS = ("tz1", "tz2", "tz3", "KT1")


class Base58Error(ValueError):
    """Raised when a base58check string cannot be decoded."""


def _checksum(payload: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(payload).digest()).digest()[:4]


def b58encode(data: bytes) -> str:
    value = int.from_bytes(data, "big")
    encoded = ""
    while value:
        value, remainder = divmod(value, 58)
        encoded = _ALPHABET[remainder] + encoded
    pad = len(data) - len(data.lstrip(b"\0"))
    return _ALPHABET[0] * pad + encoded


def b58decode(text: str) -> bytes:
    value = 0
    for char in text:
        try:
            value = value * 58 + _INDEX[char]
        except KeyError as exc:
            raise Base58Error(f"Invalid base58 character {char!r}") from exc
    body = value.to_bytes((value.bit_length() + 7) // 8, "big") if value else b""
    pad = len(text) - len(text.lstrip(_ALPHABET[0]))
    return b"\0" * pad + body


def b58check_encode(kind: str, payload: bytes) -> str:
    prefix, length = PREFIXES[kind]
    if len(payload) != length:
        raise Base58Error(f"{kind} payload must be {length} bytes, got {len(payload)}")
    data = prefix + payload
    return b58encode(data + _checksum(data))


def b58check_decode(kind: str, text: str) -> bytes:
    """Decode ``text`` and return the payload without prefix and checksum."""

    raw = b58decode(text)
    data, checksum = raw[:-4], raw[-4:]
    if len(raw) < 5 or _checksum(data) != checksum:
        raise Base58Error(f"Bad base58check checksum in {text!r}")
    prefix, length = PREFIXES[kind]
    if not data.startswith(prefix) or len(data) != len(prefix) + length:
        raise Base58Error(f"{text!r} is not a valid {kind} value")
    return data[len(prefix):]


def is_valid(kind: str, text: str) -> bool:
    try:
        b58check_decode(kind, text)
    except Base58Error:
        return False
    return True


def is_valid_address(text: str) -> bool:
    """Return ``True`` for syntactically valid implicit or contract addresses."""

    if not isinstance(text, str):
        return False
    return any(text.startswith(kind) and is_valid(kind, text) for kind in ADDRESS_KINDS)


def blake2b_digest(data: bytes, size: int = 32) -> bytes:
    return hashlib.blake2b(data, digest_size=size).digest()
