"""
Aerie cache - In-memory backend.

Implements LRU and FIFO eviction on an OrderedDict:
- **LRU**: hits move an entry to the end, the head is evicted
- **FIFO**: insertion order only, the head is evicted

Expired entries are dropped lazily, on read and when the store is full.
Guarded by an asyncio.Lock for concurrent coroutines.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict, defaultdict
from typing import Any, Dict, Optional, Set

from ..core import CacheBackend, CacheEntry, CacheStats, EvictionPolicy

logger = logging.getLogger("aerie.cache.memory")


class MemoryBackend(CacheBackend):
    """
    In-memory cache backend with configurable eviction policy.
    """

    __slots__ = (
        "_max_size",
        "_eviction_policy",
        "_store",
        "_lock",
        "_stats",
        "_namespace_index",
        "_initialized",
    )

    def __init__(self, max_size: int = 10000, eviction_policy: str = "lru"):
        """
        Initialize memory backend.

        Args:
            max_size: Maximum number of entries
            eviction_policy: Eviction strategy ("lru", "fifo")
        """
        self._max_size = max_size
        self._eviction_policy = EvictionPolicy(eviction_policy)
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()
        self._stats = CacheStats(max_size=max_size, backend="memory")

        # Inverted index: namespace -> set of keys
        self._namespace_index: Dict[str, Set[str]] = defaultdict(set)
        self._initialized = False

    @property
    def name(self) -> str:
        return f"memory:{self._eviction_policy.value}"

    async def initialize(self) -> None:
        self._initialized = True

    async def shutdown(self) -> None:
        """Clear all data."""
        async with self._lock:
            self._store.clear()
            self._namespace_index.clear()
        self._initialized = False

    async def get(self, key: str) -> Optional[CacheEntry]:
        """O(1) lookup with LRU promotion."""
        async with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._stats.misses += 1
                return None

            if entry.is_expired:
                self._evict_key(key)
                self._stats.misses += 1
                return None

            entry.touch()
            self._stats.hits += 1

            if self._eviction_policy == EvictionPolicy.LRU:
                self._store.move_to_end(key)

            return entry

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        namespace: str = "default",
    ) -> None:
        """O(1) insert with eviction if at capacity."""
        async with self._lock:
            if key in self._store:
                self._evict_key(key)

            if len(self._store) >= self._max_size:
                self._evict_expired()
            while len(self._store) >= self._max_size:
                self._evict_one()

            expires_at = None
            if ttl is not None and ttl > 0:
                expires_at = time.monotonic() + ttl

            self._store[key] = CacheEntry(
                key=key,
                value=value,
                expires_at=expires_at,
                namespace=namespace,
            )
            self._namespace_index[namespace].add(key)

            self._stats.sets += 1
            self._stats.size = len(self._store)

    async def delete(self, key: str) -> bool:
        """O(1) deletion."""
        async with self._lock:
            if key in self._store:
                self._evict_key(key)
                self._stats.deletes += 1
                return True
            return False

    async def clear(self, namespace: Optional[str] = None) -> int:
        """Clear all or namespaced entries."""
        async with self._lock:
            if namespace is None:
                count = len(self._store)
                self._store.clear()
                self._namespace_index.clear()
                self._stats.size = 0
                return count

            keys_to_remove = list(self._namespace_index.get(namespace, set()))
            for key in keys_to_remove:
                self._evict_key(key)
            return len(keys_to_remove)

    async def stats(self) -> CacheStats:
        """Return current statistics."""
        self._stats.size = len(self._store)
        return self._stats

    # ── Internal ─────────────────────────────────────────────────────

    def _evict_key(self, key: str) -> None:
        """Remove a key and its index entries. Caller holds the lock."""
        entry = self._store.pop(key, None)
        if entry is None:
            return
        keys = self._namespace_index.get(entry.namespace)
        if keys is not None:
            keys.discard(key)
            if not keys:
                del self._namespace_index[entry.namespace]
        self._stats.size = len(self._store)

    def _evict_one(self) -> None:
        """Evict the head of the store (oldest or least recently used)."""
        key = next(iter(self._store))
        self._evict_key(key)
        self._stats.evictions += 1
        logger.debug(f"Evicted cache key '{key}' ({self._eviction_policy.value})")

    def _evict_expired(self) -> None:
        expired = [key for key, entry in self._store.items() if entry.is_expired]
        for key in expired:
            self._evict_key(key)
