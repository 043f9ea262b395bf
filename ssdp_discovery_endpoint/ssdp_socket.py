#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpSocket -- a blocking UDP socket for one address family that can:

  1. Join an SSDP multicast group on the default interface
  2. Bind to the wildcard address on the SSDP port
  3. Wait a bounded time for an inbound datagram, and receive it
  4. Send a datagram to a multicast or unicast address

  All failures are reported as OSError. The most recent error is also
  remembered in last_error_msg for logging.
"""

from __future__ import annotations

import select
import socket
import struct
import sys

from .internal_types import *
from .pkg_logging import logger
from .constants import MAX_DATAGRAM_SIZE

IP_MULTICAST_ALL = 49
IPV6_MULTICAST_ALL = 29

class SsdpSocket:
    address_family: socket.AddressFamily
    """socket.AF_INET or socket.AF_INET6"""

    sock: Optional[socket.socket] = None
    """The low-level socket. None after close()."""

    last_error_msg: str = ""
    """Text of the most recent OSError raised by this socket."""

    def __init__(self, address_family: socket.AddressFamily):
        assert address_family in (socket.AF_INET, socket.AF_INET6)
        self.address_family = address_family
        sock = socket.socket(address_family, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if sys.platform not in ('win32', 'cygwin'):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            if self.is_ipv6:
                # keep v4-mapped traffic on the IPv4 socket
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
            # On Linux, a socket bound to the wildcard address receives traffic for every joined
            # group on the port unless IP_MULTICAST_ALL is disabled.
            if sys.platform in ('linux', 'linux2'):
                try:
                    if self.is_ipv6:
                        sock.setsockopt(socket.IPPROTO_IPV6, IPV6_MULTICAST_ALL, 0)
                    else:
                        sock.setsockopt(socket.IPPROTO_IP, IP_MULTICAST_ALL, 0)
                except OSError as e:
                    logger.debug(f"Unable to disable multicast-all on IPv{6 if self.is_ipv6 else 4} socket: {e}")
        except BaseException:
            sock.close()
            raise
        self.sock = sock

    @property
    def is_ipv6(self) -> bool:
        return self.address_family == socket.AF_INET6

    def __str__(self) -> str:
        if self.sock is None:
            return f"SsdpSocket(IPv{6 if self.is_ipv6 else 4}, closed)"
        try:
            name = self.sock.getsockname()
        except OSError:
            name = "unbound"
        return f"SsdpSocket(IPv{6 if self.is_ipv6 else 4}, {name})"

    def __repr__(self) -> str:
        return str(self)

    def _get_sock(self) -> socket.socket:
        if self.sock is None:
            raise OSError("SsdpSocket is closed")
        return self.sock

    def _failed(self, e: OSError) -> OSError:
        self.last_error_msg = str(e)
        return e

    def multicast_join(self, group_addr: str) -> None:
        """Joins the multicast group on the default interface and enables loopback of
           outbound multicast so that endpoints on the same host see each other."""
        sock = self._get_sock()
        try:
            group_bin = socket.inet_pton(self.address_family, group_addr)
            if self.is_ipv6:
                mreq = group_bin + struct.pack('@I', 0)
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_JOIN_GROUP, mreq)
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_MULTICAST_LOOP, 1)
            else:
                mreq = group_bin + struct.pack('=I', socket.INADDR_ANY)
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, mreq)
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
        except OSError as e:
            raise self._failed(e)
        logger.debug(f"{self}: joined multicast group {group_addr}")

    def bind(self, bind_addr: str, port: int) -> None:
        sock = self._get_sock()
        try:
            sock.bind((bind_addr, port))
        except OSError as e:
            raise self._failed(e)
        logger.debug(f"{self}: bound")

    def select_recv(self, timeout: float) -> bool:
        """Waits up to `timeout` seconds for a datagram. Returns True if one can be received
           without blocking."""
        sock = self._get_sock()
        try:
            readable, _, _ = select.select([sock], [], [], timeout)
        except OSError as e:
            raise self._failed(e)
        return len(readable) > 0

    def recvfrom(self, bufsize: int=MAX_DATAGRAM_SIZE) -> Tuple[bytes, HostAndPort]:
        sock = self._get_sock()
        try:
            data, addr = sock.recvfrom(bufsize)
        except OSError as e:
            raise self._failed(e)
        return data, addr

    def sendto(self, data: bytes, addr: Sequence[Any]) -> int:
        """Sends a datagram; returns the number of bytes sent."""
        sock = self._get_sock()
        try:
            return sock.sendto(data, tuple(addr))
        except OSError as e:
            raise self._failed(e)

    def close(self) -> None:
        if self.sock is not None:
            try:
                self.sock.close()
            except OSError as e:
                logger.error(f"Error closing {self}: {e}")
            self.sock = None
