import pytest

from ad_objects.errors import FormatError, ParseError
from ad_objects.sid import decode_sid, encode_sid, encode_sid_bytes

MAX_SID = "S-1-281474976710655" + "-4294967295" * 15
MAX_SID_HEX = "010F" + "FF" * 6 + "FFFFFFFF" * 15

# (raw objectSid as hex, SID string)
SID_VECTORS = [
    ("0105000000000005150000005054D6BDA93719ED5365340D85040000", "S-1-5-21-3184940112-3977852841-221537619-1157"),
    ("0105000000000005150000005054D6BDA93719ED5365340D52040000", "S-1-5-21-3184940112-3977852841-221537619-1106"),
    ("0105000000000005150000005054D6BDA93719ED5365340D50040000", "S-1-5-21-3184940112-3977852841-221537619-1104"),
    ("0105000000000005FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFF",
     "S-1-5-4294967295-4294967295-4294967295-4294967295-4294967295"),
    ("0103000000000005FFFFFFFFFFFFFFFFFFFFFFFF", "S-1-5-4294967295-4294967295-4294967295"),
    ("01050000000000050000000000000000000000000000000000000000", "S-1-5-0-0-0-0-0"),
    ("0100000000000005", "S-1-5"),
    ("010100000000000512000000", "S-1-5-18"),
    (MAX_SID_HEX, MAX_SID),
]


@pytest.mark.parametrize("raw, expected", SID_VECTORS)
def test_decode_sid(raw, expected):
    assert decode_sid(bytes.fromhex(raw)) == expected


@pytest.mark.parametrize("raw, sid", SID_VECTORS)
def test_encode_sid(raw, sid):
    assert encode_sid(sid) == raw


def test_encode_sid_bytes():
    assert encode_sid_bytes("S-1-5-18") == b"\x01\x01\x00\x00\x00\x00\x00\x05\x12\x00\x00\x00"


def test_encode_sid_lowercase_prefix():
    assert encode_sid("s-1-5-18") == "010100000000000512000000"


@pytest.mark.parametrize("raw", ["", "01", "01000000000005"])
def test_decode_sid_too_short(raw):
    with pytest.raises(FormatError, match="too small"):
        decode_sid(bytes.fromhex(raw))


@pytest.mark.parametrize("raw", [
    # count says 2 sub-authorities, only one present
    "010200000000000512000000",
    # count says 0, trailing bytes present
    "010000000000000512000000",
])
def test_decode_sid_count_mismatch(raw):
    with pytest.raises(FormatError):
        decode_sid(bytes.fromhex(raw))


def test_decode_sid_count_above_nine():
    raw = "010A" + "000000000005" + "01000000" * 10
    assert decode_sid(bytes.fromhex(raw)) == "S-1-5" + "-1" * 10


@pytest.mark.parametrize("sid", ["", "S-", "S-1", "S-15", "X-1-5-18", "1-5-18"])
def test_encode_sid_format_error(sid):
    with pytest.raises(FormatError):
        encode_sid(sid)


@pytest.mark.parametrize("sid", [
    "S-a-5-18",
    "S-256-5-18",
    "S-1-281474976710656-18",
    "S-1-5-4294967296",
    "S-1-5--18",
    "S-1-5-+18",
    "S-1-5-18-",
])
def test_encode_sid_parse_error(sid):
    with pytest.raises(ParseError):
        encode_sid(sid)


def test_encode_sid_too_many_sub_authorities():
    with pytest.raises(FormatError, match="too many"):
        encode_sid("S-1-5" + "-1" * 256)


def test_decode_encoded_sid():
    sid = "S-1-5-21-3184940112-3977852841-221537619-1157"
    assert decode_sid(encode_sid_bytes(sid)) == sid
