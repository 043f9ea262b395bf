#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
DiscoveryCache -- a mapping from Unique Service Name (USN) to the server URL that
advertised it, with per-entry expiration.

The cache does no locking of its own; callers hold the endpoint lock.
"""

from __future__ import annotations

import time

from .internal_types import *
from .pkg_logging import logger

class DiscoveryCacheEntry:
    url: str
    """The server URL, e.g. "tcp://192.168.1.10:55132"."""

    expires: float
    """The time.monotonic() value at which this entry becomes stale."""

    def __init__(self, url: str, expires: float):
        self.url = url
        self.expires = expires

    def is_expired(self, now: float) -> bool:
        return self.expires <= now

    def __repr__(self) -> str:
        return f"DiscoveryCacheEntry({self.url!r}, expires={self.expires})"

class DiscoveryCache:
    _entries: Dict[str, DiscoveryCacheEntry]

    def __init__(self):
        self._entries = {}

    def register(self, usn: str, url: str, duration: float, now: Optional[float]=None) -> None:
        """Inserts or replaces the entry for `usn`, valid for `duration` seconds from `now`."""
        if now is None:
            now = time.monotonic()
        self._entries[usn] = DiscoveryCacheEntry(url, now + duration)

    def remove(self, usn: str) -> bool:
        """Removes the entry for `usn`. Returns False if there was none."""
        return self._entries.pop(usn, None) is not None

    def expire(self, now: Optional[float]=None) -> List[str]:
        """Removes every entry whose expiration has passed. Returns the removed USNs."""
        if now is None:
            now = time.monotonic()
        expired = [ usn for usn, entry in self._entries.items() if entry.is_expired(now) ]
        for usn in expired:
            logger.debug(f"Discovery cache entry expired: {usn} -> {self._entries[usn].url}")
            del self._entries[usn]
        return expired

    def get_urls(self, now: Optional[float]=None) -> Dict[str, str]:
        """Returns a snapshot {usn: url} of the entries that have not expired."""
        if now is None:
            now = time.monotonic()
        return { usn: entry.url for usn, entry in self._entries.items() if not entry.is_expired(now) }

    def get(self, usn: str) -> Optional[DiscoveryCacheEntry]:
        return self._entries.get(usn)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, usn: object) -> bool:
        return usn in self._entries

    def __len__(self) -> int:
        return len(self._entries)
