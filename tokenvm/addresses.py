"""Bech32 addresses for 32-byte public keys."""

from __future__ import annotations

from .errors import AddressError

PUBLIC_KEY_LEN = 32
_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_CHARSET_INDEX = {char: value for value, char in enumerate(_CHARSET)}
_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
_MAX_LENGTH = 90


def _polymod(values: list[int]) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1FFFFFF) << 5 ^ value
        for bit, gen in enumerate(_GENERATOR):
            if (top >> bit) & 1:
                chk ^= gen
    return chk


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _create_checksum(hrp: str, data: list[int]) -> list[int]:
    polymod = _polymod(_hrp_expand(hrp) + data + [0] * 6) ^ 1
    return [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]


def _convert_bits(data: bytes | list[int], from_bits: int, to_bits: int, pad: bool) -> list[int]:
    acc = 0
    bits = 0
    out = []
    maxv = (1 << to_bits) - 1
    for value in data:
        if value >> from_bits:
            raise AddressError("invalid data range")
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((acc >> bits) & maxv)
    if pad:
        if bits:
            out.append((acc << (to_bits - bits)) & maxv)
    elif bits >= from_bits or (acc << (to_bits - bits)) & maxv:
        raise AddressError("invalid padding")
    return out


def _decode(text: str) -> tuple[str, list[int]]:
    if len(text) > _MAX_LENGTH:
        raise AddressError("address is too long")
    if text.lower() != text and text.upper() != text:
        raise AddressError("address has mixed case")
    text = text.lower()
    sep = text.rfind("1")
    if sep < 1 or sep + 7 > len(text):
        raise AddressError("invalid separator position")
    hrp, data_part = text[:sep], text[sep + 1 :]
    if any(not 33 <= ord(c) <= 126 for c in hrp):
        raise AddressError("invalid character in human-readable part")
    try:
        data = [_CHARSET_INDEX[c] for c in data_part]
    except KeyError as exc:
        raise AddressError(f"invalid character {exc.args[0]!r}") from None
    if _polymod(_hrp_expand(hrp) + data) != 1:
        raise AddressError("invalid checksum")
    return hrp, data[:-6]


def address(public_key: bytes, hrp: str) -> str:
    """Format a public key as a bech32 address with the given prefix."""
    public_key = bytes(public_key)
    if len(public_key) != PUBLIC_KEY_LEN:
        raise AddressError(f"public key must be {PUBLIC_KEY_LEN} bytes")
    data = _convert_bits(public_key, 8, 5, pad=True)
    return hrp + "1" + "".join(_CHARSET[d] for d in data + _create_checksum(hrp, data))


def parse_address(text: str, hrp: str) -> bytes:
    """Parse a bech32 address and return its public key."""
    parsed_hrp, data = _decode(text)
    if parsed_hrp != hrp:
        raise AddressError(f"incorrect hrp {parsed_hrp!r}, expected {hrp!r}")
    public_key = bytes(_convert_bits(data, 5, 8, pad=False))
    if len(public_key) != PUBLIC_KEY_LEN:
        raise AddressError("incorrect public key length")
    return public_key