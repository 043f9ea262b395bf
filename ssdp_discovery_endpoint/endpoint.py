#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
SsdpEndpoint -- the process-wide SSDP discovery endpoint. It:

  1. Starts one SsdpHandler per usable address family (IPv4, and IPv6 when available)
  2. Holds the identity of the locally registered service, if any
  3. Enables/disables periodic search and alive notification on every handler
  4. Merges the server URLs discovered by all handlers for callers

The endpoint is shared through SsdpEndpoint.get_instance(), which returns a
reference-counted SsdpEndpointRef. Releasing the last reference shuts the endpoint
down: every handler sends a byebye notification and its thread is joined before
the sockets are closed.
"""

from __future__ import annotations

import socket
import threading
import weakref

from .internal_types import *
from .pkg_logging import logger
from .exceptions import SsdpError
from .constants import (
    SSDP_MULTICAST_ADDRESS_IPV4,
    SSDP_MULTICAST_ADDRESS_IPV6,
    SSDP_PORT,
    NTS_ALIVE,
    TRIGGER_TIMEOUT_SECONDS,
    CACHE_DURATION_SECONDS,
    RECEIVE_TIMEOUT_SECONDS,
  )
from .handler import SsdpHandler
from .ssdp_socket import SsdpSocket
from .ssdp_url import SsdpUrl
from .util import is_ipv6_supported

_blacklisted_groups: Set[str] = set()
"""Multicast groups that could not be joined. Never retried for the life of the process."""

# reentrant: a dropped ref may be finalized by gc while get_instance() holds the lock
_singleton_lock = threading.RLock()
_singleton: Optional[SsdpEndpoint] = None
_singleton_refs: int = 0

class SsdpEndpoint:
    lock: threading.Lock
    """Guards every handler's cache, the service identity and the periodic flags."""

    done: threading.Event
    """Set to ask every handler loop to exit."""

    handlers: List[SsdpHandler]

    service_registered: bool = False
    uuid: str = ""
    service: str = ""
    """The registered service's port (or service name), advertised in LOCATION."""

    periodic_search_enabled: bool = False
    periodic_notify_enabled: bool = False

    multicast_port: int
    trigger_interval: float
    cache_duration: int
    receive_timeout: float

    def __init__(
            self,
            multicast_port: int=SSDP_PORT,
            ipv4_group: str=SSDP_MULTICAST_ADDRESS_IPV4,
            ipv6_group: Optional[str]=SSDP_MULTICAST_ADDRESS_IPV6,
            trigger_interval: float=TRIGGER_TIMEOUT_SECONDS,
            cache_duration: int=CACHE_DURATION_SECONDS,
            receive_timeout: float=RECEIVE_TIMEOUT_SECONDS,
            spawn_handlers: bool=True,
          ) -> None:
        self.lock = threading.Lock()
        self.done = threading.Event()
        self.handlers = []
        self.multicast_port = multicast_port
        self.trigger_interval = trigger_interval
        self.cache_duration = cache_duration
        self.receive_timeout = receive_timeout
        if spawn_handlers:
            self.spawn_handler("0.0.0.0", ipv4_group, 4)
            if ipv6_group is not None and is_ipv6_supported():
                self.spawn_handler("::", ipv6_group, 6)

    @classmethod
    def get_instance(cls) -> SsdpEndpointRef:
        """Returns a new reference to the process-wide endpoint, creating the endpoint if
           there is none. Call release() on the result (or use it as a context manager)."""
        global _singleton, _singleton_refs
        with _singleton_lock:
            if _singleton is None:
                _singleton = cls()
                _singleton_refs = 0
            _singleton_refs += 1
            return SsdpEndpointRef(_singleton)

    @staticmethod
    def _release_instance(endpoint: SsdpEndpoint) -> None:
        global _singleton, _singleton_refs
        with _singleton_lock:
            assert endpoint is _singleton and _singleton_refs > 0
            _singleton_refs -= 1
            if _singleton_refs > 0:
                return
            _singleton = None
            endpoint.shutdown()

    def spawn_handler(self, bind_addr: str, group_addr: str, ip_ver: int) -> Optional[SsdpHandler]:
        """Creates, joins and binds a socket for one address family and starts its handler.
           Returns None (after logging) if the family cannot be used."""
        if group_addr in _blacklisted_groups:
            logger.debug(f"SsdpEndpoint.spawn_handler({group_addr}) group blacklisted due to previous error")
            return None

        address_family = socket.AF_INET6 if ip_ver == 6 else socket.AF_INET
        group_url = SsdpUrl("udp", group_addr, self.multicast_port)
        try:
            sock = SsdpSocket(address_family)
        except OSError as e:
            logger.error(f"SsdpEndpoint failed to create IPv{ip_ver} socket\n  {e}")
            return None

        try:
            sock.multicast_join(group_addr)
        except OSError as e:
            _blacklisted_groups.add(group_addr)
            logger.warning(f"SsdpEndpoint failed join group {group_url}\n  {e}")
            sock.close()
            return None

        bind_url = SsdpUrl("udp", bind_addr, self.multicast_port)
        try:
            sock.bind(bind_addr, self.multicast_port)
        except OSError as e:
            logger.error(f"SsdpEndpoint::bind({bind_url}) failed\n  {e}")
            sock.close()
            return None

        handler = SsdpHandler(self, sock, group_url, ip_ver)
        self.attach_handler(handler)
        return handler

    def attach_handler(self, handler: SsdpHandler, start: bool=True) -> None:
        """Adds a handler to this endpoint and, unless start is False, starts its thread."""
        with self.lock:
            self.handlers.append(handler)
        if start:
            handler.start()

    def shutdown(self) -> None:
        """Stops every handler (each sends a byebye notification if a service is registered),
           waits for their threads, and closes their sockets."""
        self.done.set()
        for handler in self.handlers:
            handler.join()
        for handler in self.handlers:
            handler.close()
        logger.debug("SsdpEndpoint shut down")

    def register_service(self, uuid: str, service: Union[str, int]) -> None:
        """Registers the local service to advertise. May only be done once."""
        service = str(service)
        with self.lock:
            if self.service_registered:
                if (self.uuid, self.service) == (uuid, service):
                    return
                raise SsdpError(f"A service is already registered: uuid={self.uuid}, service={self.service}")
            self.uuid = uuid
            self.service = service
            self.service_registered = True

    def enable_periodic_search(self, enable: bool) -> None:
        """Sets the periodic search flag and sends one search on every handler."""
        with self.lock:
            self.periodic_search_enabled = enable
            for handler in self.handlers:
                handler.send_search_header()

    def enable_periodic_notify(self, enable: bool) -> None:
        """Sets the periodic notify flag and sends one alive notification on every handler."""
        with self.lock:
            self.periodic_notify_enabled = enable
            for handler in self.handlers:
                handler.send_notify_header(NTS_ALIVE)

    def get_server_urls(self, ip_ver: int=4, only: bool=False) -> List[str]:
        """Returns the discovered server URLs.

        Entries from handlers of address family `ip_ver` are preferred when the same USN was
        discovered on both families. If `only` is True, other families are ignored entirely.
        """
        with self.lock:
            usn_to_url: Dict[str, str] = {}
            for handler in self.handlers:
                ip_ver_match = handler.ip_ver == ip_ver
                if only and not ip_ver_match:
                    continue
                for usn, url in handler.cache.get_urls().items():
                    if usn in usn_to_url and not ip_ver_match:
                        continue
                    usn_to_url[usn] = url
            return list(usn_to_url.values())

class SsdpEndpointRef:
    """A counted reference to the process-wide SsdpEndpoint, returned by SsdpEndpoint.get_instance()."""

    _endpoint: Optional[SsdpEndpoint]

    _finalizer: weakref.finalize
    """Releases the reference if this object is garbage collected without release()."""

    def __init__(self, endpoint: SsdpEndpoint):
        self._endpoint = endpoint
        self._finalizer = weakref.finalize(self, SsdpEndpoint._release_instance, endpoint)

    @property
    def endpoint(self) -> SsdpEndpoint:
        if self._endpoint is None:
            raise SsdpError("SsdpEndpointRef has been released")
        return self._endpoint

    @property
    def released(self) -> bool:
        return self._endpoint is None

    def release(self) -> None:
        """Drops this reference. Releasing the last reference shuts the endpoint down."""
        endpoint = self._endpoint
        if endpoint is None:
            return
        self._endpoint = None
        self._finalizer.detach()
        SsdpEndpoint._release_instance(endpoint)

    def register_service(self, uuid: str, service: Union[str, int]) -> None:
        self.endpoint.register_service(uuid, service)

    def enable_periodic_search(self, enable: bool) -> None:
        self.endpoint.enable_periodic_search(enable)

    def enable_periodic_notify(self, enable: bool) -> None:
        self.endpoint.enable_periodic_notify(enable)

    def get_server_urls(self, ip_ver: int=4, only: bool=False) -> List[str]:
        return self.endpoint.get_server_urls(ip_ver, only)

    def __enter__(self) -> Self:
        return self

    def __exit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.release()
        return False
