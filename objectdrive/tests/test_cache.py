"""Tests for the namespace TTL cache."""

from __future__ import annotations

from objectdrive.drive.cache import TTLCache
from objectdrive.tests.support import FakeClock


class TestTTLCache:
    def test_hit_within_ttl(self, clock: FakeClock) -> None:
        cache = TTLCache(5.0, clock=clock)
        cache.put("stars", ("a",))
        clock.advance(4.9)
        assert cache.get("stars") == ("a",)
        assert cache.stats.hits == 1

    def test_expires_at_ttl(self, clock: FakeClock) -> None:
        cache = TTLCache(5.0, clock=clock)
        cache.put("stars", ("a",))
        clock.advance(5.0)
        assert cache.get("stars") is None
        assert cache.stats.expirations == 1
        assert len(cache) == 0

    def test_invalidate_all_clears_every_namespace(self, clock: FakeClock) -> None:
        cache = TTLCache(5.0, clock=clock)
        cache.put("stars", ())
        cache.put("stats", 1)
        cache.invalidate_all()
        assert cache.get("stars") is None
        assert cache.get("stats") is None

    def test_empty_values_are_cached(self, clock: FakeClock) -> None:
        cache = TTLCache(5.0, clock=clock)
        cache.put("sharing", {})
        assert cache.get("sharing") == {}

    def test_put_refreshes_written_time(self, clock: FakeClock) -> None:
        cache = TTLCache(5.0, clock=clock)
        cache.put("stats", 1)
        clock.advance(4.0)
        cache.put("stats", 2)
        clock.advance(4.0)
        assert cache.get("stats") == 2

    def test_hit_rate(self, clock: FakeClock) -> None:
        cache = TTLCache(5.0, clock=clock)
        cache.get("stars")
        cache.put("stars", ())
        cache.get("stars")
        assert cache.stats.hit_rate == 0.5
