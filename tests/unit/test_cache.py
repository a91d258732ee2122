"""
Unit tests for TTLCache and the in-memory store behind it.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from mediguide.services.cache import TTLCache


class TestTTLCache:
    """Tests for hit/miss behavior and expiry."""

    @pytest.mark.asyncio
    async def test_second_call_is_served_from_cache(self, details_cache):
        """Should call the producer only once for repeated lookups."""
        # Arrange
        producer = AsyncMock(return_value={"lat": 12.97, "lon": 77.59})

        # Act
        first = await details_cache.get_cached("Bengaluru", producer)
        second = await details_cache.get_cached("Bengaluru", producer)

        # Assert
        assert first == second
        assert producer.await_count == 1

    @pytest.mark.asyncio
    async def test_keys_are_trimmed_and_case_insensitive(self, details_cache):
        """Should share one entry across case and whitespace variants."""
        # Arrange
        producer = AsyncMock(return_value="value")

        # Act
        await details_cache.get_cached("  Ibuprofen ", producer)
        await details_cache.get_cached("ibuprofen", producer)

        # Assert
        assert producer.await_count == 1

    @pytest.mark.asyncio
    async def test_entry_expires_after_ttl(self, details_cache, fake_clock):
        """Should produce a new value once the TTL has fully elapsed."""
        # Arrange
        producer = AsyncMock(side_effect=["old", "new"])
        await details_cache.get_cached("key", producer)

        # Act
        fake_clock.advance(3600)
        result = await details_cache.get_cached("key", producer)

        # Assert
        assert result == "new"
        assert producer.await_count == 2

    @pytest.mark.asyncio
    async def test_entry_is_live_just_before_ttl(self, details_cache, fake_clock):
        """Should still serve the cached value one second before expiry."""
        # Arrange
        producer = AsyncMock(side_effect=["old", "new"])
        await details_cache.get_cached("key", producer)

        # Act
        fake_clock.advance(3599)

        # Assert
        assert await details_cache.get_cached("key", producer) == "old"

    @pytest.mark.asyncio
    async def test_sync_producer_is_supported(self, details_cache):
        """Should accept a plain callable as producer."""
        # Arrange
        producer = Mock(return_value=42)

        # Act / Assert
        assert await details_cache.get_cached("answer", producer) == 42

    @pytest.mark.asyncio
    async def test_none_results_are_cached(self, details_cache):
        """Should cache a None result like any other value."""
        # Arrange
        producer = AsyncMock(return_value=None)

        # Act
        await details_cache.get_cached("unknown pill", producer)
        await details_cache.get_cached("unknown pill", producer)

        # Assert
        assert producer.await_count == 1

    @pytest.mark.asyncio
    async def test_producer_error_propagates_and_nothing_is_stored(self, details_cache):
        """Should re-raise producer errors without caching anything."""
        # Arrange
        producer = AsyncMock(side_effect=RuntimeError("remote down"))

        # Act / Assert
        with pytest.raises(RuntimeError):
            await details_cache.get_cached("key", producer)

        assert len(details_cache) == 0

    @pytest.mark.asyncio
    async def test_ttl_override(self, details_cache, fake_clock):
        """Should expire an entry after the overridden lifetime."""
        # Arrange
        producer = AsyncMock(side_effect=["old", "new"])
        await details_cache.get_cached("key", producer, ttl=10)

        # Act
        fake_clock.advance(11)

        # Assert
        assert await details_cache.get_cached("key", producer, ttl=10) == "new"

    @pytest.mark.asyncio
    async def test_sweep_removes_only_expired_entries(self, details_cache, fake_clock):
        """Should drop entries older than the TTL and keep the rest."""
        # Arrange
        await details_cache.get_cached("old", AsyncMock(return_value=1))
        fake_clock.advance(3000)
        await details_cache.get_cached("fresh", AsyncMock(return_value=2))
        fake_clock.advance(700)

        # Act
        removed = details_cache.sweep()

        # Assert
        assert removed == 1
        assert "fresh" in details_cache.store
        assert "old" not in details_cache.store

    @pytest.mark.asyncio
    async def test_sweep_honors_longer_ttl_override(self, details_cache, fake_clock):
        """Should keep an entry stored with a longer TTL past the default one."""
        # Arrange
        producer = AsyncMock(side_effect=["stored", "reproduced"])
        await details_cache.get_cached("key", producer, ttl=7200)
        fake_clock.advance(4000)

        # Act
        removed = details_cache.sweep()

        # Assert
        assert removed == 0
        assert "key" in details_cache.store
        assert await details_cache.get_cached("key", producer, ttl=7200) == "stored"
        assert producer.await_count == 1

    @pytest.mark.asyncio
    async def test_sweep_honors_shorter_ttl_override(self, details_cache, fake_clock):
        """Should drop an entry stored with a shorter TTL before the default one."""
        # Arrange
        await details_cache.get_cached("key", AsyncMock(return_value=1), ttl=10)
        fake_clock.advance(11)

        # Act
        removed = details_cache.sweep()

        # Assert
        assert removed == 1
        assert len(details_cache) == 0

    def test_default_store_is_created(self):
        """Should create its own empty store when none is given."""
        # Act
        cache = TTLCache(ttl=5)

        # Assert
        assert len(cache) == 0


class TestInMemoryStore:
    """Tests for the store primitives."""

    def test_set_replaces_and_restamps(self, store, fake_clock):
        """Should replace the value and refresh its insertion time."""
        # Arrange
        store.set("a", 1)
        fake_clock.advance(5)

        # Act
        entry = store.set("a", 2)

        # Assert
        assert store.get("a").value == 2
        assert entry.inserted_at == fake_clock.now

    def test_delete_reports_presence(self, store):
        """Should return True only when a key was actually removed."""
        # Arrange
        store.set("a", 1)

        # Act / Assert
        assert store.delete("a") is True
        assert store.delete("a") is False

    def test_sweep_uses_predicate(self, store):
        """Should remove exactly the entries the predicate selects."""
        # Arrange
        store.set("keep", 1)
        store.set("drop", 2)

        # Act
        removed = store.sweep(lambda entry: entry.value == 2)

        # Assert
        assert removed == 1
        assert list(store.values()) == [1]
