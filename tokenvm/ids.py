"""Identifier encoding (checksummed base58) and the package version."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

ID_LEN = 32
CHECKSUM_LEN = 4
EMPTY_ID = bytes(ID_LEN)

_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_INDEX = {char: value for value, char in enumerate(_ALPHABET)}


def _checksum(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()[-CHECKSUM_LEN:]


def _b58encode(data: bytes) -> str:
    zeros = len(data) - len(data.lstrip(b"\x00"))
    number = int.from_bytes(data, "big")
    digits = []
    while number:
        number, rem = divmod(number, 58)
        digits.append(_ALPHABET[rem])
    return "1" * zeros + "".join(reversed(digits))


def _b58decode(text: str) -> bytes:
    number = 0
    for char in text:
        try:
            number = number * 58 + _INDEX[char]
        except KeyError:
            raise ValueError(f"invalid base58 character {char!r}") from None
    zeros = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * zeros + body


def encode_id(raw: bytes) -> str:
    """Encode a 32-byte identifier as checksummed base58 text."""
    raw = bytes(raw)
    if len(raw) != ID_LEN:
        raise ValueError(f"id must be {ID_LEN} bytes, got {len(raw)}")
    return _b58encode(raw + _checksum(raw))


def decode_id(text: str) -> bytes:
    """Decode checksummed base58 text into a 32-byte identifier."""
    decoded = _b58decode(text)
    if len(decoded) < CHECKSUM_LEN:
        raise ValueError("input string is smaller than the checksum size")
    payload, checksum = decoded[:-CHECKSUM_LEN], decoded[-CHECKSUM_LEN:]
    if _checksum(payload) != checksum:
        raise ValueError("invalid input checksum")
    if len(payload) != ID_LEN:
        raise ValueError(f"id must be {ID_LEN} bytes, got {len(payload)}")
    return payload


@dataclass(frozen=True, order=True)
class SemanticVersion:
    """A major.minor.patch version number."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"


VERSION = SemanticVersion(0, 0, 1)