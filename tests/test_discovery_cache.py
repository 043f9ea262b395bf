import time

from ssdp_discovery_endpoint import DiscoveryCache


def test_register_replaces_entry_for_same_usn():
    cache = DiscoveryCache()
    cache.register("usn-1", "tcp://10.0.0.1:1", 120)
    cache.register("usn-1", "tcp://10.0.0.2:2", 120)
    assert len(cache) == 1
    assert cache.get_urls() == {"usn-1": "tcp://10.0.0.2:2"}


def test_expiration_is_now_plus_duration():
    cache = DiscoveryCache()
    cache.register("usn-1", "tcp://10.0.0.1:1", 45, now=1000.0)
    assert cache.get("usn-1").expires == 1045.0


def test_zero_duration_entry_removed_by_next_sweep():
    cache = DiscoveryCache()
    cache.register("usn-1", "tcp://10.0.0.1:1", 0)
    cache.register("usn-2", "tcp://10.0.0.2:2", 3600)
    assert cache.expire() == ["usn-1"]
    assert "usn-1" not in cache
    assert "usn-2" in cache


def test_entry_kept_until_deadline():
    cache = DiscoveryCache()
    now = time.monotonic()
    cache.register("usn-1", "tcp://10.0.0.1:1", 10, now=now)
    assert cache.expire(now + 9.9) == []
    assert cache.expire(now + 10) == ["usn-1"]


def test_expired_entries_not_returned_before_sweep():
    cache = DiscoveryCache()
    cache.register("usn-1", "tcp://10.0.0.1:1", 10, now=0.0)
    cache.register("usn-2", "tcp://10.0.0.2:2", 100, now=0.0)
    assert cache.get_urls(now=50.0) == {"usn-2": "tcp://10.0.0.2:2"}
    assert len(cache) == 2


def test_remove():
    cache = DiscoveryCache()
    cache.register("usn-1", "tcp://10.0.0.1:1", 10)
    assert cache.remove("usn-1") is True
    assert cache.remove("usn-1") is False
    assert len(cache) == 0
