"""Decoding of hex-encoded integer results returned by ``eth_call``."""

from __future__ import annotations

import re

from .exceptions import DecodeError

HEX_DIGITS_PATTERN = re.compile(r"[0-9a-fA-F]+")


def decode_hex_balance(value: str) -> float:
    """Convert a hex-encoded unsigned integer into a float.

    The ``0x`` prefix is optional. Values wider than 53 bits lose precision,
    which is acceptable for a monitoring gauge.

    Raises:
        DecodeError: If ``value`` is not a string of hexadecimal digits.
    """
    if not isinstance(value, str):
        raise DecodeError(
            f"Expected a hex string, got {type(value).__name__}.",
            value=type(value).__name__,
        )

    digits = value[2:] if value[:2] in ("0x", "0X") else value

    # int(..., 16) tolerates whitespace, signs and underscores; an RPC result never contains them.
    if not HEX_DIGITS_PATTERN.fullmatch(digits):
        raise DecodeError(f"Malformed hex value {value!r}.", value=value)

    try:
        return float(int(digits, 16))
    except OverflowError as exc:
        raise DecodeError(f"Hex value {value!r} exceeds the float range.", value=value) from exc


__all__ = ["decode_hex_balance"]
