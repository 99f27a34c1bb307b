"""
Strict parsing of unsigned decimal strings.
"""

import re

from .errors import ParseError

_DECIMAL_RE = re.compile(r"[0-9]+")


def parse_uint(value: str, bit_size: int, what: str = "value") -> int:
    """
    Parses an unsigned decimal string that must fit in ``bit_size`` bits.

    Signs, whitespace and underscores are rejected, unlike ``int()``.

    Args:
        value: Decimal string
        bit_size: Maximum width of the integer in bits
        what: Name of the value, used in the error message

    Returns:
        The parsed integer

    Raises:
        ParseError: If the string is not a valid unsigned integer of that size
    """
    if not isinstance(value, str) or not _DECIMAL_RE.fullmatch(value):
        raise ParseError(f"unable to parse {what} to uint{bit_size}: {value!r}")

    number = int(value)
    if number >= 1 << bit_size:
        raise ParseError(f"{what} {value} is out of range for uint{bit_size}")
    return number
