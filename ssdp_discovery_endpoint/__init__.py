# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package ssdp_discovery_endpoint implements a peer discovery endpoint over a subset of the
Simple Service Discovery Protocol (SSDP).

An application registers the service it offers (a unique ID and a port) with the
process-wide SsdpEndpoint, which then:

  * answers M-SEARCH requests for the service type with a unicast response plus a
    multicast "ssdp:alive" notification,
  * optionally announces the service and searches for peers every 60 seconds,
  * collects the server URLs announced by peers of the same service type on the
    IPv4 group 239.255.255.250 and the IPv6 group ff02::c (port 1900), expiring
    them after their advertised max-age,
  * sends "ssdp:byebye" when the last reference to the endpoint is released.

Only one service type is handled: urn:schemas-pothosware-com:service:soapyRemote:1.
This is not a general UPnP stack; there are no device descriptions or eventing.
"""

from .version import __version__

from .internal_types import HostAndPort

from .exceptions import SsdpError

from .ssdp_url import SsdpUrl
from .ssdp_message import SsdpMessage, parse_cache_duration
from .ssdp_socket import SsdpSocket
from .discovery_cache import DiscoveryCache, DiscoveryCacheEntry
from .handler import SsdpHandler
from .endpoint import SsdpEndpoint, SsdpEndpointRef
from .util import CaseInsensitiveDict
from .constants import (
    SSDP_MULTICAST_ADDRESS_IPV4,
    SSDP_MULTICAST_ADDRESS_IPV6,
    SSDP_PORT,
    SERVICE_TARGET,
    TRIGGER_TIMEOUT_SECONDS,
    CACHE_DURATION_SECONDS,
  )

__all__ = [
    '__version__',
    'HostAndPort',
    'SsdpError',
    'SsdpUrl',
    'SsdpMessage', 'parse_cache_duration',
    'SsdpSocket',
    'DiscoveryCache', 'DiscoveryCacheEntry',
    'SsdpHandler',
    'SsdpEndpoint', 'SsdpEndpointRef',
    'CaseInsensitiveDict',
    'SSDP_MULTICAST_ADDRESS_IPV4', 'SSDP_MULTICAST_ADDRESS_IPV6', 'SSDP_PORT',
    'SERVICE_TARGET', 'TRIGGER_TIMEOUT_SECONDS', 'CACHE_DURATION_SECONDS',
]
