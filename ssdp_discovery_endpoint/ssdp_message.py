#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Abstraction of an HTTP-over-UDP message used in the SSDP protocol.
"""

from __future__ import annotations

import re

from .internal_types import *
from .constants import CACHE_DURATION_SECONDS
from .util import (
    CaseInsensitiveDict,
    split_bytes_at_lf_or_crlf,
    parse_http_headers,
    encode_http_header,
)

_max_age_value_re = re.compile(r'\s*([0-9]+)')

def parse_cache_duration(cache_control: Optional[str], default: int=CACHE_DURATION_SECONDS) -> int:
    """Extracts the max-age value from a CACHE-CONTROL header value.

    "max-age=120" -> 120, "max-age = 45" -> 45. Returns `default` if the value is missing,
    has no max-age directive, or the number cannot be parsed. Trailing text after the
    number (e.g. ", public") is ignored.
    """
    if cache_control is None or cache_control == "":
        return default
    max_age_pos = cache_control.find("max-age")
    equals_pos = cache_control.find("=")
    if max_age_pos == -1 or equals_pos == -1 or max_age_pos > equals_pos:
        return default
    m = _max_age_value_re.match(cache_control, equals_pos + 1)
    if m is None:
        return default
    return int(m.group(1))

class SsdpMessage(MutableMapping[str, str]):
    """Wrapper for a raw SSDP message.

    This class provides parsing and formatting of the HTTP-like packets and a dict-like
    interface to the headers. Header names are case-insensitive; headers are emitted in
    the order they were added.
    """

    _raw_data: bytes
    """The raw UDP datagram contents"""

    _statement_line: str
    """The first line of the message; e.g., "M-SEARCH * HTTP/1.1", "HTTP/1.1 200 OK"."""

    _headers: CaseInsensitiveDict[str]
    """The undecoded headers, in message order."""

    _body: bytes
    """The body of the message, if any. If there is no body, b'' is used."""

    def __init__(
            self,
            statement: Optional[str]=None,
            headers: Optional[Union[Mapping[str, str], Iterable[Tuple[str, str]]]]=None,
            body: Optional[bytes]=None,
            raw_data: Optional[bytes]=None,
          ):
        self._headers = CaseInsensitiveDict()
        if raw_data is None:
            if statement is None:
                raise ValueError("Either statement or raw_data must be provided")
            assert isinstance(statement, str)
            self._statement_line = statement
            self._body = b'' if body is None else body
            if headers is not None:
                self._update_no_rebuild(headers)
            self._rebuild_raw_data()
        else:
            assert isinstance(raw_data, bytes)
            if not (statement is None and headers is None and body is None):
                raise ValueError("If raw_data is provided, statement, headers, and body must be None")
            self.raw_data = raw_data

    def __str__(self) -> str:
        return f"SsdpMessage('{self._statement_line}', headers={dict(self._headers)}, body={self._body!r})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def raw_data(self) -> bytes:
        """The raw UDP datagram contents, terminated by an empty line."""
        return self._raw_data

    @raw_data.setter
    def raw_data(self, value: bytes) -> None:
        """Set the raw UDP datagram contents, and recompute the statement line and headers.

        Raises UnicodeDecodeError if the statement line is not valid UTF-8.
        """
        assert isinstance(value, bytes)
        self._raw_data = value
        statement_and_remainder = split_bytes_at_lf_or_crlf(value, 1)
        self._statement_line = statement_and_remainder[0].decode('utf-8')
        headers_and_body = b'' if len(statement_and_remainder) < 2 else statement_and_remainder[1]
        self._headers, self._body = parse_http_headers(headers_and_body)

    @property
    def statement_line(self) -> str:
        """The first line of the message"""
        return self._statement_line

    @statement_line.setter
    def statement_line(self, value: str) -> None:
        assert isinstance(value, str)
        self._statement_line = value
        self._rebuild_raw_data()

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def headers(self) -> CaseInsensitiveDict[str]:
        """The undecoded headers as a CaseInsensitiveDict[str], in message order."""
        return self._headers

    def add_header(self, name: str, value: Union[str, int]) -> None:
        """Appends a header (or replaces the value of an existing one, keeping its position)
           and updates the raw message."""
        self._headers[name] = str(value)
        self._rebuild_raw_data()

    def get_header(self, name: str) -> Optional[str]:
        """Returns the value of a header, or None if it is not present."""
        return self._headers.get(name)

    @property
    def hdr_st(self) -> Optional[str]:
        """The search target ("ST") header."""
        return self.get_header("ST")

    @property
    def hdr_man(self) -> Optional[str]:
        """The "MAN" header; '"ssdp:discover"' (with quotes) for search requests."""
        return self.get_header("MAN")

    @property
    def hdr_nt(self) -> Optional[str]:
        """The notification type ("NT") header."""
        return self.get_header("NT")

    @property
    def hdr_nts(self) -> Optional[str]:
        """The notification sub-type ("NTS") header; "ssdp:alive" or "ssdp:byebye"."""
        return self.get_header("NTS")

    @property
    def hdr_usn(self) -> Optional[str]:
        """The unique service name ("USN") header."""
        return self.get_header("USN")

    @property
    def hdr_location(self) -> Optional[str]:
        return self.get_header("LOCATION")

    @property
    def hdr_cache_control(self) -> Optional[str]:
        return self.get_header("CACHE-CONTROL")

    @property
    def cache_duration(self) -> int:
        """The max-age declared in CACHE-CONTROL, or the default cache duration."""
        return parse_cache_duration(self.hdr_cache_control)

    def __setitem__(self, key: str, value: str) -> None:
        self.add_header(key, value)

    def __getitem__(self, key: str) -> str:
        return self._headers[key]

    def __delitem__(self, key: str) -> None:
        del self._headers[key]
        self._rebuild_raw_data()

    def __iter__(self) -> Iterator[str]:
        return iter(self._headers)

    def __len__(self) -> int:
        return len(self._headers)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SsdpMessage):
            return False
        return (self._statement_line == other._statement_line and
                list(self._headers.lower_items()) == list(other._headers.lower_items()) and
                self._body == other._body)

    def _update_no_rebuild(self, other: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> None:
        items = other.items() if isinstance(other, Mapping) else other
        for key, value in items:
            self._headers[key] = str(value)

    def _rebuild_raw_data(self) -> None:
        """Rebuild the raw data from the statement line, headers, and body.
           The header block is always terminated with an empty line."""
        raw_data = self._statement_line.encode('utf-8') + b'\r\n'
        for k, v in self._headers.items():
            raw_data += encode_http_header(k, v)
        raw_data += b'\r\n'
        raw_data += self._body
        self._raw_data = raw_data
