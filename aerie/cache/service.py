"""
Aerie cache - CacheService: High-level API for cache operations.

Wraps the configured backend with:
- Namespace isolation
- Automatic key building
- Optional TTL jitter (thundering herd prevention)
- Stampede prevention (singleflight for get_or_set)
- Statistics
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar, Union

from .backends.memory import MemoryBackend
from .core import CacheBackend, CacheConfig, CacheStats
from .faults import CacheBackendFault
from .key_builder import DefaultKeyBuilder

logger = logging.getLogger("aerie.cache")

T = TypeVar("T")

_MISSING = object()


class CacheService:
    """
    High-level cache service.

    Usage::

        cache = CacheService(MemoryBackend(max_size=1000))
        await cache.initialize()

        # Cache-aside with stampede prevention
        user = await cache.get_or_set(
            "user:123",
            loader=lambda: repo.find(123),
            ttl=300,
        )
    """

    __slots__ = (
        "_backend",
        "_config",
        "_key_builder",
        "_initialized",
        "_inflight",
        "_inflight_lock",
    )

    def __init__(
        self,
        backend: Optional[CacheBackend] = None,
        config: Optional[CacheConfig] = None,
    ):
        self._config = config or CacheConfig()
        self._backend = backend or MemoryBackend(
            max_size=self._config.max_size,
            eviction_policy=self._config.eviction_policy,
        )
        self._key_builder = DefaultKeyBuilder()
        self._initialized = False

        # Stampede prevention: in-flight computation futures
        self._inflight: Dict[str, asyncio.Future] = {}
        self._inflight_lock = asyncio.Lock()

    # ── Lifecycle ────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Initialize the cache service and its backend."""
        if self._initialized:
            return
        await self._backend.initialize()
        self._initialized = True
        logger.info(f"Cache service initialized (backend={self._backend.name})")

    async def shutdown(self) -> None:
        """Shutdown the cache service and its backend."""
        if not self._initialized:
            return

        async with self._inflight_lock:
            for future in self._inflight.values():
                if not future.done():
                    future.cancel()
            self._inflight.clear()

        await self._backend.shutdown()
        self._initialized = False
        logger.info("Cache service shut down")

    @property
    def initialized(self) -> bool:
        """Whether the service is started (memoization is active)."""
        return self._initialized

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    @property
    def config(self) -> CacheConfig:
        return self._config

    # ── Core Operations ──────────────────────────────────────────────

    def _full_key(self, key: str, namespace: Optional[str]) -> str:
        ns = namespace or self._config.namespace
        return self._key_builder.build(ns, key, self._config.key_prefix)

    async def get(self, key: str, namespace: Optional[str] = None, default: Any = None) -> Any:
        """
        Get a value from cache.

        Returns:
            Cached value or default. Backend errors are logged and
            reported as a miss.
        """
        try:
            entry = await self._backend.get(self._full_key(key, namespace))
        except Exception as e:
            logger.warning(
                "Cache GET failed",
                exc_info=CacheBackendFault(self._backend.name, "get", str(e)),
            )
            return default

        if entry is None:
            return default
        return entry.value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        namespace: Optional[str] = None,
    ) -> None:
        """
        Set a value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: Time-to-live in seconds (uses default if None)
            namespace: Optional namespace override
        """
        effective_ttl = ttl if ttl is not None else self._config.default_ttl
        effective_ttl = self._config.apply_jitter(effective_ttl)

        try:
            await self._backend.set(
                self._full_key(key, namespace),
                value,
                ttl=effective_ttl,
                namespace=namespace or self._config.namespace,
            )
        except Exception as e:
            logger.warning(
                "Cache SET failed",
                exc_info=CacheBackendFault(self._backend.name, "set", str(e)),
            )

    async def delete(self, key: str, namespace: Optional[str] = None) -> bool:
        """Delete a value from cache."""
        return await self._backend.delete(self._full_key(key, namespace))

    async def clear(self, namespace: Optional[str] = None) -> int:
        """Clear all entries, or only those of ``namespace``."""
        return await self._backend.clear(namespace)

    async def stats(self) -> CacheStats:
        return await self._backend.stats()

    # ── Advanced Operations ──────────────────────────────────────────

    async def get_or_set(
        self,
        key: str,
        loader: Callable[[], Union[T, Awaitable[T]]],
        ttl: Optional[float] = None,
        namespace: Optional[str] = None,
    ) -> T:
        """
        Cache-aside pattern with stampede prevention.

        On a cache miss only ONE concurrent caller runs ``loader``; other
        callers for the same key wait for that result (or its error).

        Args:
            key: Cache key
            loader: Callable producing the value (sync or async)
            ttl: TTL in seconds
            namespace: Optional namespace

        Returns:
            Cached or freshly computed value
        """
        value = await self.get(key, namespace=namespace, default=_MISSING)
        if value is not _MISSING:
            return value

        if not self._config.stampede_prevention:
            value = await _call(loader)
            await self.set(key, value, ttl=ttl, namespace=namespace)
            return value

        full_key = self._full_key(key, namespace)

        async with self._inflight_lock:
            future = self._inflight.get(full_key)
            leader = future is None
            if leader:
                future = asyncio.get_running_loop().create_future()
                self._inflight[full_key] = future

        if not leader:
            stats = await self._backend.stats()
            stats.stampede_joins += 1
            return await asyncio.wait_for(
                asyncio.shield(future),
                timeout=self._config.stampede_timeout,
            )

        try:
            value = await _call(loader)
            await self.set(key, value, ttl=ttl, namespace=namespace)
            future.set_result(value)
            return value
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved: the leader re-raises it, waiters (if any) get it too
            future.exception()
            raise
        finally:
            async with self._inflight_lock:
                self._inflight.pop(full_key, None)


async def _call(loader: Callable[[], Any]) -> Any:
    """Call a sync or async loader."""
    result = loader()
    if inspect.isawaitable(result):
        return await result
    return result
