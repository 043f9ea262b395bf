#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Simple utility functions used by this package
"""

from __future__ import annotations

from typing_extensions import SupportsIndex

import netifaces
import platform
import socket
from ipaddress import IPv4Address, IPv6Address
from email.parser import BytesHeaderParser
from email.message import Message as EmailParserMessage
from email.utils import formatdate
from requests.structures import CaseInsensitiveDict

from .internal_types import *
from .version import __version__

PRODUCT_NAME = "SsdpDiscoveryEndpoint"

def split_bytes_at_lf_or_crlf(data: bytes, maxsplit: SupportsIndex = -1) -> List[bytes]:
    """Split a byte string at LF or CRLF.

    If maxsplit is given, at most maxsplit splits are done.

    Returns a List[bytes] representing the delimited lines with the delimiters removed.
    """
    parts = data.split(b'\n', maxsplit)
    if len(parts) > 1:
        for i, part in enumerate(parts[:-1]):
            if part.endswith(b'\r'):
                parts[i] = part[:-1]
    return parts

def split_headers_and_body(data: bytes) -> Tuple[bytes, bytes]:
    """Splits a byte string with HTTP headers and an optional body into the headers and the body.

    A relaxed interpretation of '\n' as a line delimiter is accepted even though '\r\n' is required
    by the standard.

    Returns a Tuple[headers: bytes, body: bytes]. If there is no body, b'' is returned for the body.
    """
    first_i = -1
    first_nb = 0
    for delim in (b'\n\r\n', b'\n\n'):
        i = data.find(delim)
        if i != -1 and (first_i == -1 or i < first_i):
            first_i = i
            first_nb = len(delim)
    if first_i == -1:
        return (data, b'')
    headers, body = data[:first_i], data[first_i + first_nb:]
    if headers.endswith(b'\r'):
        headers = headers[:-1]
    return (headers, body)

def parse_http_headers(data: bytes) -> Tuple[CaseInsensitiveDict[str], bytes]:
    """Parse HTTP-style headers out of a byte string. Also returns the body of the message, if any.

    A relaxed interpretation of '\n' as a line delimiter is accepted. The final header line does
    not need to be terminated. It is assumed that the statement line (e.g., "HTTP/1.1 200 OK") has
    already been removed.

    Header values are returned undecoded, with surrounding whitespace removed. The order in which
    headers appear in the message is preserved.

    Returns a tuple of (headers: CaseInsensitiveDict[str], body: bytes).
    """
    headers_data, body = split_headers_and_body(data)
    lines = split_bytes_at_lf_or_crlf(headers_data)
    headers_data = b''.join(line + b'\r\n' for line in lines if len(line) != 0)

    msg: EmailParserMessage = BytesHeaderParser().parsebytes(headers_data)
    headers: CaseInsensitiveDict[str] = CaseInsensitiveDict()
    for name, value in msg.items():
        headers[name] = str(value).strip()
    return (headers, body)

def encode_http_header(name: str, value: str) -> bytes:
    """Encodes a raw HTTP header name/value pair into a byte string terminated with '\r\n'.

    Lines are never folded; some SSDP stacks do not accept continuation lines.
    """
    if '\r' in value or '\n' in value:
        raise ValueError(f"Header {name} value contains a line break: {value!r}")
    return f"{name}: {value}\r\n".encode('utf-8')

def get_local_ip_addresses(
        address_family: Union[socket.AddressFamily, int]=socket.AF_INET,
        include_loopback: bool=True
    ) -> List[str]:
    """Returns a List[ip_address: str] for the IP addresses of the local host in the requested
       address family. IPv6 addresses may include a "%<interface>" scope suffix."""
    assert int(address_family) in (int(socket.AF_INET), int(socket.AF_INET6))
    is_ipv6 = int(address_family) == int(socket.AF_INET6)
    netiface_family = netifaces.AF_INET6 if is_ipv6 else netifaces.AF_INET
    result: List[str] = []
    for ifname in netifaces.interfaces():
        ifinfo = netifaces.ifaddresses(ifname)
        for addrinfo in ifinfo.get(netiface_family, []):
            ip_str = addrinfo['addr']
            bare_ip = ip_str.split('%', 1)[0]
            is_loopback = IPv6Address(bare_ip).is_loopback if is_ipv6 else IPv4Address(bare_ip).is_loopback
            if is_loopback and not include_loopback:
                continue
            result.append(ip_str)
    return result

def is_ipv6_supported() -> bool:
    """Returns True if an IPv6 UDP socket can be created and at least one non-loopback
       interface carries an IPv6 address (required for link-local multicast)."""
    if not socket.has_ipv6:
        return False
    try:
        sock = socket.socket(socket.AF_INET6, socket.SOCK_DGRAM)
    except OSError:
        return False
    sock.close()
    return len(get_local_ip_addresses(socket.AF_INET6, include_loopback=False)) > 0

def get_host_name() -> str:
    """The name of the local host, as advertised in LOCATION headers."""
    return socket.gethostname()

def get_user_agent() -> str:
    """The identity string sent in SERVER and USER-AGENT headers."""
    return f"{platform.system()}/{platform.release()} UPnP/1.1 {PRODUCT_NAME}/{__version__}"

def time_now_gmt() -> str:
    """The current time formatted for an HTTP DATE header, e.g. "Sun, 18 Oct 2026 10:00:00 GMT"."""
    return formatdate(usegmt=True)
