"""
Process-local key/value store shared by the lookup caches and chat sessions.
Nothing is persisted: the contents are lost on restart.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Protocol


@dataclass(frozen=True)
class StoreEntry:
    key: str
    value: Any
    inserted_at: float


class KeyValueStore(Protocol):
    """Store interface injected into the components that hold state."""

    clock: Callable[[], float]

    def get(self, key: str) -> StoreEntry | None: ...

    def set(self, key: str, value: Any) -> StoreEntry: ...

    def delete(self, key: str) -> bool: ...

    def sweep(self, is_stale: Callable[[StoreEntry], bool]) -> int: ...

    def __len__(self) -> int: ...


class InMemoryStore:
    """
    Dict-backed KeyValueStore.

    Writes always replace the previous entry for a key and stamp it with the
    current clock value. The clock is injectable so expiry can be tested
    without sleeping.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._entries: dict[str, StoreEntry] = {}
        self.clock = clock

    def get(self, key: str) -> StoreEntry | None:
        return self._entries.get(key)

    def set(self, key: str, value: Any) -> StoreEntry:
        entry = StoreEntry(key=key, value=value, inserted_at=self.clock())
        self._entries[key] = entry
        return entry

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def sweep(self, is_stale: Callable[[StoreEntry], bool]) -> int:
        """
        Removes entries judged stale at sweep time.

        Iterates over a snapshot and re-reads each key before deleting, so an
        entry replaced while the sweep runs is only removed if the new entry
        is stale as well.

        Returns:
            Number of removed entries
        """
        removed = 0
        for key in list(self._entries):
            entry = self._entries.get(key)
            if entry is not None and is_stale(entry):
                del self._entries[key]
                removed += 1
        return removed

    def values(self) -> Iterator[Any]:
        return (entry.value for entry in list(self._entries.values()))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
