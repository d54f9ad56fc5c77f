import threading

from restaurant_discovery.utils.ttl_cache import TTLCache, DEFAULT_TTL_SECONDS


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Test expiry and bookkeeping of the TTL cache"""

    def test_default_ttl_is_one_day(self):
        assert DEFAULT_TTL_SECONDS == 86400
        assert TTLCache().default_ttl == 86400

    def test_get_before_and_after_expiry(self):
        """Entries are visible until their ttl elapses"""
        clock = FakeClock()
        cache = TTLCache(default_ttl=10, clock=clock)
        cache.set("amala", ["result"])

        clock.now += 9.9
        assert cache.get("amala") == ["result"]

        clock.now += 0.2
        assert cache.get("amala") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self):
        clock = FakeClock()
        cache = TTLCache(default_ttl=100, clock=clock)
        cache.set("short", 1, ttl=1)
        cache.set("long", 2)

        clock.now += 5
        assert not cache.contains("short")
        assert cache.contains("long")

    def test_hit_and_miss_counters(self):
        cache = TTLCache()
        cache.get("missing")
        cache.set("present", 1)
        cache.get("present")
        cache.get("present")

        stats = cache.stats()
        assert stats == {"size": 1, "hits": 2, "misses": 1}

    def test_purge_expired(self):
        clock = FakeClock()
        cache = TTLCache(default_ttl=10, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2, ttl=100)

        clock.now += 50
        assert cache.purge_expired() == 1
        assert len(cache) == 1

    def test_delete_and_clear(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        cache.delete("not-there")
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0

    def test_concurrent_writers(self):
        """Writes from several threads are all kept"""
        cache = TTLCache()

        def writer(offset: int):
            for i in range(200):
                cache.set(f"{offset}-{i}", i)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(cache) == 8 * 200
