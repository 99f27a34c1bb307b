"""
SID Conversion Utilities
Handles conversion between binary and string SID representations.
"""

import struct

from .config import SID_HEADER_SIZE, SID_MAX_SUB_AUTHORITIES, SID_SUB_AUTHORITY_SIZE
from .errors import FormatError
from .numeric import parse_uint


def decode_sid(sid_bytes: bytes) -> str:
    """
    Converts a binary SID to its string representation.

    SID structure:
        byte 0: Revision
        byte 1: Number of sub-authorities (N)
        bytes 2-7: Identifier authority (48-bit, big-endian)
        bytes 8+: N sub-authorities (32-bit each, little-endian)

    Args:
        sid_bytes: objectSid as returned by the directory

    Returns:
        SID string (e.g. 'S-1-5-21-...')

    Raises:
        FormatError: If the value is shorter than 8 bytes or its length does
            not match the sub-authority count
    """
    size = 0 if sid_bytes is None else len(sid_bytes)
    if size < SID_HEADER_SIZE:
        raise FormatError(f"unable to decode SID, sid byte is too small min req {SID_HEADER_SIZE} byte given:{size}")

    sid_bytes = bytes(sid_bytes)
    revision = sid_bytes[0]
    sub_authority_count = sid_bytes[1]

    expected = SID_HEADER_SIZE + sub_authority_count * SID_SUB_AUTHORITY_SIZE
    if size != expected:
        raise FormatError(
            f"unable to decode SID, {sub_authority_count} sub-authorities need {expected} bytes, given:{size}"
        )

    # Authority (6 bytes big-endian, padded to 8 bytes)
    authority = struct.unpack('>Q', b'\x00\x00' + sid_bytes[2:8])[0]

    sub_authorities = struct.unpack(f'<{sub_authority_count}I', sid_bytes[SID_HEADER_SIZE:])

    return '-'.join(['S', str(revision), str(authority)] + [str(s) for s in sub_authorities])


def encode_sid_bytes(sid_string: str) -> bytes:
    """
    Converts a SID string to its binary representation.

    Args:
        sid_string: SID as a string (e.g. 'S-1-5-21-...'), prefix case-insensitive

    Returns:
        Binary SID

    Raises:
        FormatError: If the string is empty, lacks the 'S-' prefix or is too short
        ParseError: If a numeric component is invalid or out of range
    """
    if not sid_string or sid_string[:2].upper() != 'S-':
        raise FormatError(f"sid string must start with 'S-', got:{sid_string!r}")

    body = sid_string[2:]
    if len(body) < 3:
        raise FormatError(f"sid string length is less than min allowed, str:{sid_string}")

    parts = body.split('-')
    if len(parts) < 2:
        raise FormatError(f"sid string has no identifier authority, str:{sid_string}")

    sub_authorities = parts[2:]
    if len(sub_authorities) > SID_MAX_SUB_AUTHORITIES:
        raise FormatError(f"sid string has too many sub-authorities: {len(sub_authorities)}")

    revision = parse_uint(parts[0], 8, "SID revision")
    authority = parse_uint(parts[1], 48, "SID identifier authority")

    sid_bytes = struct.pack('BB', revision, len(sub_authorities))
    sid_bytes += authority.to_bytes(6, byteorder='big')
    for sub_authority in sub_authorities:
        sid_bytes += struct.pack('<I', parse_uint(sub_authority, 32, "SID sub-authority"))

    return sid_bytes


def encode_sid(sid_string: str) -> str:
    """Converts a SID string to the uppercase hex form of its binary layout."""
    return encode_sid_bytes(sid_string).hex().upper()
