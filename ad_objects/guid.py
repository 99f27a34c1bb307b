"""
objectGUID conversion between the directory's binary layout and its string form.

Microsoft GUIDs use a mixed byte order: the first three groups are stored
little-endian, the last two big-endian.
"""

import binascii
import struct

from .config import GUID_SIZE
from .errors import FormatError

# Data1 (uint32 LE), Data2 (uint16 LE), Data3 (uint16 LE)
_LE_PART = struct.Struct('<IHH')
# Data4 split as uint16 BE, uint32 BE, uint16 BE
_BE_PART = struct.Struct('>HIH')


def _unpack_guid(guid_bytes: bytes) -> tuple:
    return _LE_PART.unpack(guid_bytes[0:8]) + _BE_PART.unpack(guid_bytes[8:16])


def decode_guid(guid_bytes: bytes) -> str:
    """
    Converts a raw objectGUID value to its canonical string representation.

    Args:
        guid_bytes: objectGUID as returned by the directory (16 bytes)

    Returns:
        GUID string (XXXXXXXX-XXXX-XXXX-XXXX-XXXXXXXXXXXX, uppercase)

    Raises:
        FormatError: If the value is not exactly 16 bytes long
    """
    if guid_bytes is None or len(guid_bytes) != GUID_SIZE:
        size = 0 if guid_bytes is None else len(guid_bytes)
        raise FormatError(f"size of raw guid is not {GUID_SIZE} guid-len:{size}")

    return '%08X-%04X-%04X-%04X-%08X%04X' % _unpack_guid(bytes(guid_bytes))


def encode_guid(guid: str) -> str:
    """
    Converts a GUID string to the directory's byte order, rendered as hex.

    The result is the form used to build ``(objectGUID=...)`` filters.

    Args:
        guid: GUID string, hyphens optional, case-insensitive

    Returns:
        32 uppercase hex digits without separators

    Raises:
        FormatError: If the string is not valid hex or not 16 bytes long
    """
    try:
        guid_bytes = binascii.unhexlify(guid.replace('-', ''))
    except (binascii.Error, ValueError) as ex:
        raise FormatError(f"unable to decode guid string {guid!r}: {ex}") from ex

    if len(guid_bytes) != GUID_SIZE:
        raise FormatError(f"size of decoded guid is not {GUID_SIZE} guid-len:{len(guid_bytes)}")

    return '%08X%04X%04X%04X%08X%04X' % _unpack_guid(guid_bytes)


def guid_filter_value(encoded_guid: str) -> str:
    """
    Escapes an encoded GUID for use as an LDAP filter assertion value.

    ``52234B17...`` becomes ``\\52\\23\\4B\\17...``.
    """
    return ''.join('\\' + encoded_guid[i:i + 2] for i in range(0, len(encoded_guid), 2))
