"""
Storage package exports for process-local state.
"""

from mediguide.storage.memory_store import InMemoryStore, KeyValueStore, StoreEntry

__all__ = ["InMemoryStore", "KeyValueStore", "StoreEntry"]
