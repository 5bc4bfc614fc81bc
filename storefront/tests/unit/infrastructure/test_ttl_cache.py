"""
Unit tests for TTLCache.

Expiry is driven by a fake clock, never by real waiting.
"""

import pytest

from storefront.infrastructure.cache.ttl_cache import CacheEntry, TTLCache
from storefront.tests.factories import FakeClock


class TestTTLCache:
    """Test TTL cache functionality."""

    @pytest.fixture
    def cache(self, clock: FakeClock) -> TTLCache[tuple[str, ...]]:
        return TTLCache(name="vendors", ttl_seconds=600, clock=clock)

    def test_initialization(self) -> None:
        """Test default TTL is 10 minutes and cache starts empty."""
        cache: TTLCache[str] = TTLCache(name="products")

        assert cache.ttl_seconds == 600
        assert cache.get() is None
        assert cache.age() is None
        assert not cache.is_fresh()

    def test_rejects_non_positive_ttl(self) -> None:
        """Test TTL must be positive."""
        with pytest.raises(ValueError):
            TTLCache(name="vendors", ttl_seconds=0)

    def test_set_and_get(self, cache: TTLCache[tuple[str, ...]]) -> None:
        """Test a stored value is returned while fresh."""
        cache.set(("Acme",))

        assert cache.get() == ("Acme",)
        assert cache.is_fresh()

    def test_valid_just_before_ttl(
        self, cache: TTLCache[tuple[str, ...]], clock: FakeClock
    ) -> None:
        """Test entry is valid while now - stored_at < ttl."""
        cache.set(("Acme",))
        clock.advance(599.9)

        assert cache.get() == ("Acme",)

    def test_expires_at_ttl(self, cache: TTLCache[tuple[str, ...]], clock: FakeClock) -> None:
        """Test entry is a miss once ttl has elapsed."""
        cache.set(("Acme",))
        clock.advance(600)

        assert cache.get() is None
        assert not cache.is_fresh()

    def test_peek_returns_expired_value(
        self, cache: TTLCache[tuple[str, ...]], clock: FakeClock
    ) -> None:
        """Test peek ignores TTL (used to serve stale data)."""
        cache.set(("Acme",))
        clock.advance(3600)

        assert cache.peek() == ("Acme",)
        assert cache.age() == 3600

    def test_set_replaces_value_and_timestamp(
        self, cache: TTLCache[tuple[str, ...]], clock: FakeClock
    ) -> None:
        """Test set refreshes both value and timestamp."""
        cache.set(("Acme",))
        clock.advance(500)
        cache.set(("Acme", "Zeta"))
        clock.advance(500)

        assert cache.get() == ("Acme", "Zeta")
        assert cache.age() == 500

    def test_clear(self, cache: TTLCache[tuple[str, ...]]) -> None:
        """Test clear drops the value."""
        cache.set(("Acme",))
        cache.clear()

        assert cache.get() is None
        assert cache.peek() is None


class TestCacheEntry:
    """Tests for cache entry validity."""

    def test_is_valid(self) -> None:
        entry = CacheEntry(value="x", stored_at=100.0)

        assert entry.is_valid(now=100.0, ttl_seconds=10)
        assert entry.is_valid(now=109.99, ttl_seconds=10)
        assert not entry.is_valid(now=110.0, ttl_seconds=10)
