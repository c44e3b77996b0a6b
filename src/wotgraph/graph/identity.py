# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Identity helpers: hex public keys, npub (bech32) encoding and display labels.

Identities are 32-byte public keys carried as 64-char lowercase hex. Users
often paste the bech32 ``npub1...`` form instead, so everything entering the
graph goes through normalize_identity().
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ..core.exceptions import ValidationException

if TYPE_CHECKING:
    from .models import Profile

NPUB_HRP = "npub"
_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_BECH32_GENERATOR = (0x3B6A57B2, 0x26508E6D, 0x1EA119FA, 0x3D4233DD, 0x2A1462B3)
_HEX_IDENTITY = re.compile(r"^[0-9a-f]{64}$")


def _polymod(values: list[int]) -> int:
    chk = 1
    for value in values:
        top = chk >> 25
        chk = ((chk & 0x1FFFFFF) << 5) ^ value
        for i, gen in enumerate(_BECH32_GENERATOR):
            if (top >> i) & 1:
                chk ^= gen
    return chk


def _hrp_expand(hrp: str) -> list[int]:
    return [ord(c) >> 5 for c in hrp] + [0] + [ord(c) & 31 for c in hrp]


def _convert_bits(data: bytes | list[int], from_bits: int, to_bits: int, pad: bool) -> list[int]:
    acc = 0
    bits = 0
    out: list[int] = []
    max_value = (1 << to_bits) - 1
    for value in data:
        if value < 0 or value >> from_bits:
            raise ValueError(f"invalid {from_bits}-bit value: {value}")
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            out.append((acc >> bits) & max_value)
    if pad:
        if bits:
            out.append((acc << (to_bits - bits)) & max_value)
    elif bits >= from_bits or ((acc << (to_bits - bits)) & max_value):
        raise ValueError("invalid padding")
    return out


def is_hex_identity(value: str) -> bool:
    """True for a 64-char lowercase hex public key."""
    return bool(_HEX_IDENTITY.match(value))


def hex_to_npub(hex_key: str) -> str:
    """Encode a hex public key as a bech32 npub.

    Raises:
        ValidationException: If the input is not a 64-char hex key.
    """
    if hex_key.startswith(NPUB_HRP + "1"):
        return hex_key
    key = hex_key.lower()
    if not is_hex_identity(key):
        raise ValidationException("Identity must be 64 hex characters", field="identity", value=hex_key)

    data = _convert_bits(bytes.fromhex(key), 8, 5, pad=True)
    polymod = _polymod(_hrp_expand(NPUB_HRP) + data + [0] * 6) ^ 1
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]
    return NPUB_HRP + "1" + "".join(_BECH32_CHARSET[d] for d in data + checksum)


def npub_to_hex(npub: str) -> str:
    """Decode a bech32 npub into a hex public key.

    Raises:
        ValidationException: On a bad prefix, character, checksum or length.
    """
    value = npub.strip().lower()
    hrp, sep, payload = value.rpartition("1")
    if not sep or hrp != NPUB_HRP or len(payload) < 7:
        raise ValidationException("Not an npub identity", field="identity", value=npub)

    try:
        data = [_BECH32_CHARSET.index(c) for c in payload]
    except ValueError:
        raise ValidationException("Invalid bech32 character in npub", field="identity", value=npub) from None

    if _polymod(_hrp_expand(hrp) + data) != 1:
        raise ValidationException("Invalid npub checksum", field="identity", value=npub)

    try:
        decoded = bytes(_convert_bits(data[:-6], 5, 8, pad=False))
    except ValueError as e:
        raise ValidationException(f"Invalid npub payload: {e}", field="identity", value=npub) from None
    if len(decoded) != 32:
        raise ValidationException("npub must encode 32 bytes", field="identity", value=npub)
    return decoded.hex()


def normalize_identity(value: str) -> str:
    """Return the canonical hex form of a hex or npub identity.

    Raises:
        ValidationException: If the value is neither.
    """
    if not isinstance(value, str):
        raise ValidationException("Identity must be a string", field="identity", value=value)
    candidate = value.strip()
    if candidate.lower().startswith(NPUB_HRP + "1"):
        return npub_to_hex(candidate)
    candidate = candidate.lower()
    if not is_hex_identity(candidate):
        raise ValidationException("Identity must be 64 hex characters or an npub", field="identity", value=value)
    return candidate


def format_identity(identity: str) -> str:
    """Truncated npub for display, e.g. ``npub1abcde...uvwxyz``."""
    try:
        npub = hex_to_npub(identity)
    except ValidationException:
        npub = identity
    if len(npub) <= 16:
        return npub
    return f"{npub[:10]}...{npub[-6:]}"


def display_label(profile: Profile | None, identity: str) -> str:
    """Display name, else name, else the truncated npub."""
    if profile is not None:
        if profile.display_name:
            return profile.display_name
        if profile.name:
            return profile.name
    return format_identity(identity)
