"""
Unit tests for the client memory cache.
"""

import pytest

from shared.test_helpers import FakeClock
from tripbuddy_client.cache import ABSENT, MemoryCache


class TestMemoryCache:
    """Test cases for MemoryCache."""

    @pytest.fixture
    def clock(self):
        """Create a controllable millisecond clock."""
        return FakeClock(1_000_000)

    @pytest.fixture
    def cache(self, clock):
        """Create MemoryCache instance."""
        return MemoryCache(clock=clock)

    def test_get_within_ttl(self, cache, clock):
        """Test that an entry is served until its expiry."""
        cache.set("flights_del_bom_2025-09-07", [{"id": "FL000"}], 300_000)
        clock.advance(299_999)
        assert cache.get("flights_del_bom_2025-09-07") == [{"id": "FL000"}]

    def test_expiry_boundary(self, cache, clock):
        """Test that an entry is gone exactly at its expiry."""
        cache.set("k", "v", 300_000)
        clock.advance(300_000)

        assert cache.get("k") is ABSENT
        assert len(cache) == 0

    def test_falsy_values_are_hits(self, cache):
        """Test that cached empty lists are distinguishable from misses."""
        cache.set("k", [], 1_000)
        assert cache.get("k") == []
        assert cache.get("missing") is ABSENT
        assert not ABSENT

    def test_set_replaces_entry(self, cache, clock):
        """Test overwrite with a fresh expiry."""
        cache.set("k", "old", 1_000)
        clock.advance(900)
        cache.set("k", "new", 1_000)
        clock.advance(900)
        assert cache.get("k") == "new"

    def test_delete_and_stats(self, cache):
        """Test delete and hit statistics."""
        cache.set("k", "v", 1_000)
        cache.get("k")
        cache.get("missing")

        assert cache.get_stats() == {"size": 1, "hits": 1, "misses": 1, "hit_rate": 0.5}
        assert cache.delete("k") is True
        assert cache.delete("k") is False

        cache.clear()
        assert cache.get_stats()["hits"] == 0
