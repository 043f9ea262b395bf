#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpUrl -- a minimal "scheme://node:service" locator.

Locators are used for the multicast group address ("udp://239.255.255.250:1900"),
for the HOST header (the same without a scheme), for LOCATION headers, and for the
discovered server URLs handed to callers ("tcp://192.168.1.10:55132").

IPv6 nodes are enclosed in brackets when rendered: "udp://[ff02::c]:1900".
"""

from __future__ import annotations

from .internal_types import *
from .exceptions import SsdpError

class SsdpUrl:
    scheme: str
    """The scheme name, e.g. "tcp". May be empty."""

    node: str
    """The host name or IP address, without brackets."""

    service: str
    """The port number or service name. May be empty."""

    def __init__(self, scheme: str="", node: str="", service: Union[str, int]=""):
        self.scheme = scheme
        self.node = node
        self.service = str(service)

    @classmethod
    def parse(cls, url: str) -> SsdpUrl:
        """Parses a locator string. Any path, query or fragment following the
           service is discarded (LOCATION headers from other SSDP stacks carry one)."""
        scheme = ""
        rest = url.strip()
        i = rest.find("://")
        if i != -1:
            scheme, rest = rest[:i], rest[i+3:]
        for delim in ('/', '?', '#'):
            j = rest.find(delim)
            if j != -1:
                rest = rest[:j]
        if rest.startswith('['):
            j = rest.find(']')
            if j == -1:
                raise SsdpError(f"Unterminated IPv6 address in locator: {url!r}")
            node = rest[1:j]
            tail = rest[j+1:]
            if tail.startswith(':'):
                service = tail[1:]
            elif tail == "":
                service = ""
            else:
                raise SsdpError(f"Malformed locator: {url!r}")
        elif rest.count(':') > 1:
            # bare IPv6 address with no service
            node, service = rest, ""
        else:
            node, _, service = rest.partition(':')
        return cls(scheme, node, service)

    @classmethod
    def from_sockaddr(cls, scheme: str, addr: Sequence[Any]) -> SsdpUrl:
        """Creates a locator from a socket address tuple as returned by recvfrom()."""
        return cls(scheme, str(addr[0]), str(addr[1]))

    def to_sockaddr(self) -> HostAndPort:
        """Returns a (host, port) tuple suitable for socket.sendto()."""
        try:
            port = int(self.service)
        except ValueError:
            raise SsdpError(f"Locator service is not a port number: {self}")
        return (self.node, port)

    def without_scheme(self) -> SsdpUrl:
        return SsdpUrl("", self.node, self.service)

    def to_string(self) -> str:
        result = ""
        if self.scheme != "":
            result += self.scheme + "://"
        if ':' in self.node:
            result += "[" + self.node + "]"
        else:
            result += self.node
        if self.service != "":
            result += ":" + self.service
        return result

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"SsdpUrl({self.scheme!r}, {self.node!r}, {self.service!r})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, SsdpUrl):
            return False
        return (self.scheme, self.node, self.service) == (other.scheme, other.node, other.service)

    def __hash__(self) -> int:
        return hash((self.scheme, self.node, self.service))
