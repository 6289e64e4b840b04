"""Helpers for 0x-prefixed quantities backed by Python's unbounded ints."""

from __future__ import annotations

import re
from typing import Optional

from eth_utils.hexadecimal import add_0x_prefix, remove_0x_prefix

from .errors import ParseError

_HEX_DIGITS = re.compile(r"[0-9a-fA-F]+")
_DEC_DIGITS = re.compile(r"[0-9]+")


def hex_to_int(value: object, field: Optional[str] = None) -> int:
    """
    Parse a hex quantity ("0x1f", "1f") into an int.

    "0x" alone reads as zero. Signs, whitespace and underscores are rejected,
    unlike ``int(value, 16)``.
    """
    label = field or "value"
    if not isinstance(value, str):
        raise ParseError(f"{label} must be a 0x-prefixed hex string", field)
    digits = remove_0x_prefix(value)  # type: ignore[arg-type]
    if digits == "":
        return 0
    if not _HEX_DIGITS.fullmatch(digits):
        raise ParseError(f"{label} is not a valid hex quantity: {value!r}", field)
    return int(digits, 16)


def int_to_hex(value: int) -> str:
    """Minimal 0x encoding; zero encodes as 0x0."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ParseError("quantity must be an int")
    if value < 0:
        raise ParseError("quantity must be non-negative")
    return add_0x_prefix(format(value, "x"))  # type: ignore[arg-type]


def parse_quantity(value: object, field: str) -> int:
    """Accept either a non-negative int or a hex string."""
    if isinstance(value, bool):
        raise ParseError(f"{field} must be an integer or hex string", field)
    if isinstance(value, int):
        if value < 0:
            raise ParseError(f"{field} must be non-negative", field)
        return value
    return hex_to_int(value, field)


def parse_decimal(value: object, field: str) -> int:
    """Parse a decimal non-negative integer (int or digit string)."""
    if isinstance(value, bool):
        raise ParseError(f"{field} must be a decimal integer", field)
    if isinstance(value, int):
        if value < 0:
            raise ParseError(f"{field} must be non-negative", field)
        return value
    if isinstance(value, str) and _DEC_DIGITS.fullmatch(value):
        return int(value)
    raise ParseError(f"{field} must be a decimal integer, got {value!r}", field)


def normalize_hex(value: object, field: Optional[str] = None) -> str:
    """Strip redundant leading zeros: "0x000a" -> "0xa"."""
    return int_to_hex(hex_to_int(value, field))


def hex_to_bytes(value: object, field: str = "data") -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise ParseError(f"{field} must be a hex string", field)
    normalized = remove_0x_prefix(value)  # type: ignore[arg-type]
    if normalized == "":
        return b""
    try:
        return bytes.fromhex(normalized)
    except ValueError as exc:
        raise ParseError(f"{field} must be valid hex", field) from exc
