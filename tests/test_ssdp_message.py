"""Tests for the SSDP message codec and CACHE-CONTROL parsing."""

import pytest

from ssdp_discovery_endpoint import SsdpMessage, parse_cache_duration


@pytest.mark.parametrize("value,expected", [
    ("max-age=120", 120),
    ("max-age = 45", 45),
    ("max-age=45", 45),
    ("max-age=1800, public", 1800),
    ("public, max-age=30", 30),
    ("max-age=0", 0),
    (None, 120),
    ("", 120),
    ("no-cache", 120),
    ("max-age", 120),
    ("max-age=", 120),
    ("max-age=   ", 120),
    ("max-age=abc", 120),
    ("x=1, max-age=30", 120),
])
def test_parse_cache_duration(value, expected):
    assert parse_cache_duration(value) == expected


def test_parse_cache_duration_custom_default():
    assert parse_cache_duration("garbage", default=7) == 7


def test_parse_search_request():
    raw = (
        b'M-SEARCH * HTTP/1.1\r\n'
        b'HOST: 239.255.255.250:1900\r\n'
        b'MAN: "ssdp:discover"\r\n'
        b'MX: 2\r\n'
        b'ST: ssdp:all\r\n'
        b'\r\n'
    )
    msg = SsdpMessage(raw_data=raw)
    assert msg.statement_line == "M-SEARCH * HTTP/1.1"
    assert msg.hdr_man == '"ssdp:discover"'
    assert msg.hdr_st == "ssdp:all"
    assert msg["host"] == "239.255.255.250:1900"
    assert msg.get_header("Mx") == "2"
    assert msg.hdr_usn is None
    assert list(msg) == ["HOST", "MAN", "MX", "ST"]


def test_parse_accepts_bare_lf_and_missing_terminator():
    msg = SsdpMessage(raw_data=b'NOTIFY * HTTP/1.1\nNT: foo\nUSN:   bar  \nEXT:')
    assert msg.statement_line == "NOTIFY * HTTP/1.1"
    assert msg.hdr_nt == "foo"
    assert msg.hdr_usn == "bar"
    assert msg["EXT"] == ""


def test_parse_statement_only():
    msg = SsdpMessage(raw_data=b'HTTP/1.1 200 OK\r\n\r\n')
    assert msg.statement_line == "HTTP/1.1 200 OK"
    assert len(msg) == 0


def test_parse_rejects_invalid_utf8_statement():
    with pytest.raises(UnicodeDecodeError):
        SsdpMessage(raw_data=b'\xff\xfe\xfd\r\n\r\n')


def test_build_preserves_field_order_and_terminates():
    msg = SsdpMessage("NOTIFY * HTTP/1.1")
    msg.add_header("HOST", "239.255.255.250:1900")
    msg.add_header("NT", "urn:x")
    msg.add_header("EXT", "")
    msg.add_header("MX", 2)
    assert msg.raw_data == (
        b'NOTIFY * HTTP/1.1\r\n'
        b'HOST: 239.255.255.250:1900\r\n'
        b'NT: urn:x\r\n'
        b'EXT: \r\n'
        b'MX: 2\r\n'
        b'\r\n'
    )


def test_replacing_header_keeps_position():
    msg = SsdpMessage("HTTP/1.1 200 OK", headers=[("ST", "a"), ("USN", "b")])
    msg["st"] = "c"
    assert msg.raw_data == b'HTTP/1.1 200 OK\r\nst: c\r\nUSN: b\r\n\r\n'
    del msg["USN"]
    assert msg.raw_data == b'HTTP/1.1 200 OK\r\nst: c\r\n\r\n'


def test_long_values_are_not_folded():
    usn = "uuid:" + "a" * 36 + "::urn:schemas-pothosware-com:service:soapyRemote:1"
    msg = SsdpMessage("NOTIFY * HTTP/1.1", headers={"USN": usn})
    assert b'USN: ' + usn.encode() + b'\r\n' in msg.raw_data


def test_header_value_with_line_break_rejected():
    msg = SsdpMessage("NOTIFY * HTTP/1.1")
    with pytest.raises(ValueError):
        msg.add_header("NT", "a\r\nEVIL: 1")


def test_built_message_parses_back():
    msg = SsdpMessage("HTTP/1.1 200 OK", headers={"CACHE-CONTROL": "max-age=45", "ST": "x"})
    parsed = SsdpMessage(raw_data=msg.raw_data)
    assert parsed == msg
    assert parsed.cache_duration == 45


def test_constructor_argument_validation():
    with pytest.raises(ValueError):
        SsdpMessage()
    with pytest.raises(ValueError):
        SsdpMessage("NOTIFY * HTTP/1.1", raw_data=b'NOTIFY * HTTP/1.1\r\n\r\n')


def test_statement_line_kept_verbatim():
    msg = SsdpMessage(raw_data=b'NOTIFY * HTTP/1.1 \r\nNT: x\r\n\r\n')
    assert msg.statement_line == "NOTIFY * HTTP/1.1 "
