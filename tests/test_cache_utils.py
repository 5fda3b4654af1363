"""Tests for utils/cache.py — TTL cache behind the UACS tree and worksheets."""
import time

from utils.cache import TTLCache


class TestTTLCache:
    def test_set_get_and_miss(self):
        cache = TTLCache()
        cache.set("tree", {"MOOE": {}})
        assert cache.get("tree") == {"MOOE": {}}
        assert cache.get("other") is None

    def test_fixed_lifetime(self):
        cache = TTLCache(ttl_seconds=0.05)
        cache.set("tree", 1)
        time.sleep(0.1)
        assert cache.get("tree") is None

    def test_refresh_on_get_extends_idle_entries(self):
        cache = TTLCache(ttl_seconds=0.3, refresh_on_get=True)
        cache.set("ws", "worksheet")
        for _ in range(3):
            time.sleep(0.15)
            assert cache.get("ws") == "worksheet"
        time.sleep(0.4)
        assert cache.get("ws") is None

    def test_without_refresh_reads_do_not_extend(self):
        cache = TTLCache(ttl_seconds=0.2)
        cache.set("k", "v")
        time.sleep(0.12)
        assert cache.get("k") == "v"
        time.sleep(0.12)
        assert cache.get("k") is None

    def test_maxsize_evicts_earliest_expiry(self):
        cache = TTLCache(maxsize=2)
        cache.set("k1", "v1")
        time.sleep(0.01)
        cache.set("k2", "v2")
        cache.set("k3", "v3")
        assert cache.get("k1") is None
        assert cache.get("k2") == "v2"
        assert cache.get("k3") == "v3"

    def test_overwrite_does_not_evict(self):
        cache = TTLCache(maxsize=1)
        cache.set("k", "old")
        cache.set("k", "new")
        assert cache.get("k") == "new"

    def test_delete(self):
        cache = TTLCache()
        cache.set("k", "v")
        cache.delete("k")
        cache.delete("never-set")
        assert cache.get("k") is None

    def test_stats(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.get("zzz")
        assert cache.stats() == {"hits": 1, "misses": 1, "size": 2}

    def test_stats_drop_expired(self):
        cache = TTLCache(ttl_seconds=0.05)
        cache.set("a", 1)
        time.sleep(0.1)
        assert cache.stats()["size"] == 0

    def test_clear_resets_counters(self):
        cache = TTLCache()
        cache.set("k", "v")
        cache.get("k")
        cache.clear()
        assert cache.stats() == {"hits": 0, "misses": 0, "size": 0}
