#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpHandler -- the per-address-family half of an SsdpEndpoint. Each handler:

  1. Owns one multicast socket (IPv4 or IPv6) joined to the SSDP group
  2. Runs a receive loop on its own thread, dispatching M-SEARCH requests,
     search responses and NOTIFY messages
  3. Answers searches for the locally registered service
  4. Collects, maintains, and expires server URLs advertised by remote endpoints
  5. Periodically sends search and alive notifications when enabled, and a
     byebye notification when the endpoint shuts down

All shared state lives on the owning SsdpEndpoint and is guarded by its lock.
"""

from __future__ import annotations

import threading
import time
from typing import TYPE_CHECKING

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    SERVICE_TARGET,
    ST_ALL,
    MAN_DISCOVER,
    NTS_ALIVE,
    NTS_BYEBYE,
    SEARCH_MX,
    SEARCH_STATEMENT,
    RESPONSE_STATEMENT,
    NOTIFY_STATEMENT,
  )
from .discovery_cache import DiscoveryCache
from .ssdp_message import SsdpMessage
from .ssdp_socket import SsdpSocket
from .ssdp_url import SsdpUrl
from .util import get_host_name, get_user_agent, time_now_gmt

if TYPE_CHECKING:
    from .endpoint import SsdpEndpoint

class SsdpHandler:
    endpoint: SsdpEndpoint
    """The endpoint that owns this handler and its shared state."""

    ip_ver: int
    """4 or 6"""

    sock: SsdpSocket
    """The bound multicast socket. Owned exclusively by this handler."""

    group_url: SsdpUrl
    """The multicast group locator, e.g. "udp://239.255.255.250:1900"."""

    cache: DiscoveryCache
    """Server URLs discovered on this address family."""

    last_time_search: Optional[float] = None
    """time.monotonic() of the last search sent, or None if none has been sent."""

    last_time_notify: Optional[float] = None
    """time.monotonic() of the last notification sent, or None if none has been sent."""

    thread: Optional[threading.Thread] = None

    def __init__(self, endpoint: SsdpEndpoint, sock: SsdpSocket, group_url: SsdpUrl, ip_ver: int):
        self.endpoint = endpoint
        self.sock = sock
        self.group_url = group_url
        self.ip_ver = ip_ver
        self.cache = DiscoveryCache()
        self._dispatch: Dict[str, Callable[[SsdpMessage, HostAndPort], None]] = {
            SEARCH_STATEMENT: self.handle_search_request,
            RESPONSE_STATEMENT: self.handle_search_response,
            NOTIFY_STATEMENT: self.handle_notify_request,
        }

    def __str__(self) -> str:
        return f"SsdpHandler(IPv{self.ip_ver}, {self.group_url})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def usn(self) -> str:
        """The unique service name of the locally registered service."""
        return f"uuid:{self.endpoint.uuid}::{SERVICE_TARGET}"

    def start(self) -> None:
        assert self.thread is None
        self.thread = threading.Thread(target=self.run, name=f"ssdp-handler-ipv{self.ip_ver}", daemon=True)
        self.thread.start()

    def join(self) -> None:
        if self.thread is not None:
            if self.thread is not threading.current_thread():
                self.thread.join()
            self.thread = None

    def close(self) -> None:
        self.sock.close()

    # ======================= Event loop

    def run(self) -> None:
        endpoint = self.endpoint
        logger.debug(f"{self}: handler loop starting")
        while not endpoint.done.is_set():
            try:
                ready = self.sock.select_recv(endpoint.receive_timeout)
            except OSError as e:
                logger.error(f"{self}: select() failed; handler exiting\n  {e}")
                return

            with endpoint.lock:
                if ready:
                    try:
                        data, addr = self.sock.recvfrom()
                    except OSError as e:
                        logger.error(f"{self}: recvfrom() failed; handler exiting\n  {e}")
                        return
                    self.handle_datagram(data, addr)
                self.housekeeping()

        with endpoint.lock:
            self.send_notify_header(NTS_BYEBYE)
        logger.debug(f"{self}: handler loop exiting")

    def handle_datagram(self, data: bytes, addr: HostAndPort) -> None:
        """Parses a received datagram and dispatches it by statement line.
           Unrecognized statement lines are ignored. Caller holds the endpoint lock."""
        try:
            message = SsdpMessage(raw_data=data)
        except Exception as e:
            logger.warning(f"{self}: error parsing datagram from {addr}, raw=[{data!r}]: {e}")
            return
        logger.debug(f"{self}: received from {addr}: {message}")
        handler = self._dispatch.get(message.statement_line)
        if handler is not None:
            handler(message, addr)

    def housekeeping(self, now: Optional[float]=None) -> None:
        """Expires stale cache entries and fires periodic search/notify if due.
           Caller holds the endpoint lock."""
        if now is None:
            now = time.monotonic()
        self.cache.expire(now)
        endpoint = self.endpoint
        if endpoint.periodic_search_enabled and self._is_trigger_due(self.last_time_search, now):
            self.send_search_header()
        if endpoint.periodic_notify_enabled and self._is_trigger_due(self.last_time_notify, now):
            self.send_notify_header(NTS_ALIVE)

    def _is_trigger_due(self, last_time: Optional[float], now: float) -> bool:
        return last_time is None or now - last_time >= self.endpoint.trigger_interval

    # ======================= Inbound messages

    def handle_search_request(self, request: SsdpMessage, addr: HostAndPort) -> None:
        endpoint = self.endpoint
        if not endpoint.service_registered:
            return
        if request.hdr_man != MAN_DISCOVER:
            return
        st = request.hdr_st
        if st not in (ST_ALL, SERVICE_TARGET, f"uuid:{endpoint.uuid}"):
            return

        self.send_search_response(addr)

        # Only one of several SSDP listeners sharing a port on the requesting host sees the
        # unicast reply, so announce to the group as well.
        self.send_notify_header(NTS_ALIVE)

    def handle_search_response(self, response: SsdpMessage, addr: HostAndPort) -> None:
        if response.hdr_st != SERVICE_TARGET:
            return
        self.handle_register_service(response, addr)

    def handle_notify_request(self, request: SsdpMessage, addr: HostAndPort) -> None:
        if request.hdr_nt != SERVICE_TARGET:
            return
        self.handle_register_service(request, addr)

    def handle_register_service(self, message: SsdpMessage, addr: HostAndPort) -> None:
        """Adds, refreshes or (on byebye) removes the cache entry named by the message's USN."""
        usn = message.hdr_usn
        if usn is None or usn == "":
            return

        if message.hdr_nts == NTS_BYEBYE:
            if self.cache.remove(usn):
                logger.debug(f"{self}: {usn} said byebye")
            return

        location = message.hdr_location
        if location is None or location == "":
            return
        try:
            location_url = SsdpUrl.parse(location)
        except Exception as e:
            logger.debug(f"{self}: ignoring unparseable LOCATION {location!r} from {addr}: {e}")
            return

        # the sender's address is trusted over the host named in LOCATION
        server_url = SsdpUrl.from_sockaddr("tcp", (addr[0], location_url.service)).to_string()
        logger.debug(f"{self}: discovered {server_url}")
        self.cache.register(usn, server_url, message.cache_duration)

    # ======================= Outbound messages

    def send_message(self, message: SsdpMessage, addr: Sequence[Any]) -> None:
        """Sends a message, logging (not raising) on failure or a short send."""
        data = message.raw_data
        logger.debug(f"{self}: sending to {addr}: {message}")
        try:
            ret = self.sock.sendto(data, addr)
        except OSError as e:
            logger.error(f"{self}: sendto({addr}) failed\n  {e}")
            return
        if ret != len(data):
            logger.error(f"{self}: sendto({addr}) = {ret}, expected {len(data)}\n  {self.sock.last_error_msg}")

    def build_search_header(self) -> SsdpMessage:
        request = SsdpMessage(SEARCH_STATEMENT)
        request.add_header("HOST", self.group_url.without_scheme().to_string())
        request.add_header("MAN", MAN_DISCOVER)
        request.add_header("MX", SEARCH_MX)
        request.add_header("ST", SERVICE_TARGET)
        request.add_header("USER-AGENT", get_user_agent())
        return request

    def send_search_header(self) -> None:
        self.send_message(self.build_search_header(), self.group_url.to_sockaddr())
        self.last_time_search = time.monotonic()

    def build_notify_header(self, nts: str) -> SsdpMessage:
        endpoint = self.endpoint
        request = SsdpMessage(NOTIFY_STATEMENT)
        request.add_header("HOST", self.group_url.without_scheme().to_string())
        if nts == NTS_ALIVE:
            request.add_header("CACHE-CONTROL", f"max-age={endpoint.cache_duration}")
            request.add_header("LOCATION", SsdpUrl("tcp", get_host_name(), endpoint.service).to_string())
        request.add_header("SERVER", get_user_agent())
        request.add_header("NT", SERVICE_TARGET)
        request.add_header("USN", self.usn)
        request.add_header("NTS", nts)
        return request

    def send_notify_header(self, nts: str) -> None:
        """Multicasts an alive or byebye notification. No-op if no service is registered."""
        if not self.endpoint.service_registered:
            return
        self.send_message(self.build_notify_header(nts), self.group_url.to_sockaddr())
        self.last_time_notify = time.monotonic()

    def build_search_response(self) -> SsdpMessage:
        endpoint = self.endpoint
        response = SsdpMessage(RESPONSE_STATEMENT)
        response.add_header("CACHE-CONTROL", f"max-age={endpoint.cache_duration}")
        response.add_header("DATE", time_now_gmt())
        response.add_header("EXT", "")
        response.add_header("LOCATION", SsdpUrl("tcp", get_host_name(), endpoint.service).to_string())
        response.add_header("SERVER", get_user_agent())
        response.add_header("ST", SERVICE_TARGET)
        response.add_header("USN", self.usn)
        return response

    def send_search_response(self, addr: HostAndPort) -> None:
        self.send_message(self.build_search_response(), addr)
