# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

SSDP_MULTICAST_ADDRESS_IPV4 = "239.255.255.250"
"""The IPv4 multicast group used for SSDP communications."""

SSDP_MULTICAST_ADDRESS_IPV6 = "ff02::c"
"""The IPv6 (link-local) multicast group used for SSDP communications."""

SSDP_PORT = 1900
"""The UDP port number used by SSDP."""

SERVICE_TARGET = "urn:schemas-pothosware-com:service:soapyRemote:1"
"""The search target and notification type advertised and discovered by this endpoint."""

ST_ALL = "ssdp:all"
"""Search target meaning "everything"."""

MAN_DISCOVER = '"ssdp:discover"'
"""The MAN header value required in an M-SEARCH request. The quotes are part of the value."""

NTS_ALIVE = "ssdp:alive"
"""Service is active, used with multicast NOTIFY."""

NTS_BYEBYE = "ssdp:byebye"
"""Service stopped, used with multicast NOTIFY."""

SEARCH_MX = 2
"""The MX (maximum wait) hint sent with M-SEARCH requests."""

TRIGGER_TIMEOUT_SECONDS = 60.0
"""How often periodic search and notify packets are triggered."""

CACHE_DURATION_SECONDS = 120
"""The default duration of an entry in the discovery cache."""

RECEIVE_TIMEOUT_SECONDS = 0.05
"""The maximum time a handler loop blocks waiting for a datagram."""

MAX_DATAGRAM_SIZE = 65507
"""Receive buffer size; the largest possible UDP payload."""

SEARCH_STATEMENT = "M-SEARCH * HTTP/1.1"
RESPONSE_STATEMENT = "HTTP/1.1 200 OK"
NOTIFY_STATEMENT = "NOTIFY * HTTP/1.1"
