"""
Time-bounded cache for remote lookups keyed by normalized query text.
"""

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from mediguide.storage.memory_store import InMemoryStore, KeyValueStore
from mediguide.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CachedValue:
    """A produced value together with the lifetime it was stored with."""

    value: Any
    ttl: float


class TTLCache:
    """
    Caches producer results for `ttl` seconds.

    Expiry is checked lazily on read; stale entries are never returned and
    are overwritten by the next write. Concurrent misses for the same key
    may each invoke the producer (last write wins).
    """

    def __init__(
        self,
        store: KeyValueStore | None = None,
        ttl: float = 3600.0,
        name: str = "cache",
    ):
        """
        Args:
            store: Backing store, a fresh InMemoryStore by default
            ttl: Default entry lifetime in seconds
            name: Label used in log events
        """
        self.store = store if store is not None else InMemoryStore()
        self.ttl = ttl
        self.name = name

    @staticmethod
    def normalize_key(key: str) -> str:
        return key.strip().lower()

    def _now(self) -> float:
        return self.store.clock()

    def _is_live(self, inserted_at: float, ttl: float) -> bool:
        return self._now() - inserted_at < ttl

    async def get_cached(
        self,
        key: str,
        producer: Callable[[], Awaitable[Any] | Any],
        ttl: float | None = None,
    ) -> Any:
        """
        Returns the live cached value for `key` or produces and stores a new one.

        Args:
            key: Query text (trimmed and lowercased before lookup)
            producer: Zero-argument callable, sync or async
            ttl: Lifetime override in seconds, kept with the stored entry

        Returns:
            Cached or freshly produced value

        Raises:
            Exception: Producer errors propagate and nothing is stored
        """
        ttl = self.ttl if ttl is None else ttl
        normalized = self.normalize_key(key)

        entry = self.store.get(normalized)
        if entry is not None and self._is_live(entry.inserted_at, ttl):
            logger.info("cache_hit", cache=self.name, key=normalized)
            return entry.value.value

        logger.info("cache_miss", cache=self.name, key=normalized)
        value = producer()
        if inspect.isawaitable(value):
            value = await value

        self.store.set(normalized, CachedValue(value, ttl))
        return value

    def sweep(self) -> int:
        """Drops entries older than their own lifetime. Returns the number removed."""
        removed = self.store.sweep(
            lambda entry: not self._is_live(entry.inserted_at, entry.value.ttl)
        )
        if removed:
            logger.info("cache_swept", cache=self.name, removed=removed)
        return removed

    def __len__(self) -> int:
        return len(self.store)
