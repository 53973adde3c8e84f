"""
Parsing of the unsigned integers bcc prints for table keys and values.
"""

from __future__ import annotations

UINT64_MAX = (1 << 64) - 1

_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}


def parse_uint(text: str) -> int:
    """
    Parse an unsigned 64-bit integer, choosing the base from its prefix.

    ``0x``, ``0o`` and ``0b`` select hex, octal and binary; a bare leading
    zero means octal, like C literals. Signs, surrounding whitespace and
    non-ASCII digits are rejected.

    >>> parse_uint("0x10"), parse_uint("010"), parse_uint("10")
    (16, 8, 10)
    """
    value = text
    if not value or not value.isascii() or value[0] in "+-":
        raise ValueError(f"invalid unsigned integer {text!r}")
    base = 10
    digits = value
    prefix = value[:2].lower()
    if prefix in _PREFIXES:
        base = _PREFIXES[prefix]
        digits = value[2:]
    elif len(value) > 1 and value[0] == "0":
        base = 8
        digits = value[1:]
    if not digits or not digits.isalnum():
        raise ValueError(f"invalid unsigned integer {text!r}")
    try:
        result = int(digits, base)
    except ValueError:
        raise ValueError(f"invalid unsigned integer {text!r}") from None
    if result > UINT64_MAX:
        raise ValueError(f"unsigned integer {text!r} out of range")
    return result
