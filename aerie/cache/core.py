"""
Aerie cache - Core types, protocols, and data structures.

Defines the storage contract, configuration and per-method cache
policies used by the server method table.
"""

from __future__ import annotations

import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from .faults import CacheConfigFault


# ============================================================================
# Eviction Policies
# ============================================================================

class EvictionPolicy(str, Enum):
    """Cache eviction strategies."""
    LRU = "lru"       # Least Recently Used
    FIFO = "fifo"     # First In First Out


# ============================================================================
# Cache Entry
# ============================================================================

@dataclass(slots=True)
class CacheEntry:
    """
    Single cache entry with metadata.

    Compact, slotted dataclass for minimal memory overhead.
    """
    key: str
    value: Any
    created_at: float = field(default_factory=time.monotonic)
    expires_at: Optional[float] = None
    access_count: int = 0
    namespace: str = "default"

    @property
    def is_expired(self) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return time.monotonic() >= self.expires_at

    @property
    def ttl_remaining(self) -> Optional[float]:
        """Remaining TTL in seconds, or None if no expiry."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - time.monotonic())

    def touch(self) -> None:
        """Update access metadata."""
        self.access_count += 1

    def __repr__(self) -> str:
        ttl = f", ttl={self.ttl_remaining:.1f}s" if self.ttl_remaining else ""
        return f"<CacheEntry key={self.key!r} ns={self.namespace!r} hits={self.access_count}{ttl}>"


# ============================================================================
# Cache Stats
# ============================================================================

@dataclass
class CacheStats:
    """Aggregate cache statistics for observability."""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    stampede_joins: int = 0      # Times a stampede was prevented
    size: int = 0                # Current number of entries
    max_size: int = 0            # Maximum capacity
    backend: str = "unknown"

    @property
    def hit_rate(self) -> float:
        """Cache hit rate as a percentage."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100.0

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for diagnostics."""
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "stampede_joins": self.stampede_joins,
            "hit_rate": round(self.hit_rate, 2),
            "size": self.size,
            "max_size": self.max_size,
            "backend": self.backend,
        }


# ============================================================================
# Cache Configuration
# ============================================================================

@dataclass
class CacheConfig:
    """
    Cache subsystem configuration.

    Loaded from the environment via ``ConfigLoader.get_cache_config()``.
    """
    max_size: int = 10000            # Max entries for memory backend
    eviction_policy: str = "lru"     # "lru", "fifo"
    default_ttl: int = 300           # Default TTL in seconds (5 minutes)
    namespace: str = "default"       # Default namespace
    key_prefix: str = "aerie:"       # Key prefix for all entries

    # TTL jitter - prevents thundering herd on mass expiry
    ttl_jitter: bool = False
    ttl_jitter_percent: float = 0.1  # ±10% when enabled

    # Stampede prevention - singleflight for get_or_set
    stampede_prevention: bool = True  # Coalesce concurrent loads for same key
    stampede_timeout: float = 30.0    # Max wait for in-flight computation

    def __post_init__(self):
        try:
            EvictionPolicy(self.eviction_policy)
        except ValueError:
            raise CacheConfigFault(f"unknown eviction policy '{self.eviction_policy}'") from None
        if self.max_size <= 0:
            raise CacheConfigFault("max_size must be positive")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CacheConfig":
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise CacheConfigFault(f"unknown cache settings: {', '.join(unknown)}")
        return cls(**dict(data))

    def apply_jitter(self, ttl: Optional[float]) -> Optional[float]:
        """
        Apply TTL jitter to prevent thundering herd.

        Returns TTL with random ±jitter_percent variation.
        """
        if not self.ttl_jitter or not ttl or ttl <= 0:
            return ttl
        jitter = ttl * self.ttl_jitter_percent
        return ttl + random.uniform(-jitter, jitter)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


# ============================================================================
# Method cache policy
# ============================================================================

@dataclass(frozen=True)
class CachePolicy:
    """
    Memoization policy of one server method.

    Attributes:
        expires_in: Seconds a generated value stays cached (None = no expiry)
        generate_timeout: Seconds a generation may take before callers get
            a GenerateTimeoutFault; ``False`` disables the limit
    """
    expires_in: Optional[float] = None
    generate_timeout: Union[float, bool, None] = False

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> "CachePolicy":
        """
        Build a policy from method cache options.

        Raises:
            CacheConfigFault: On unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(options) - known)
        if unknown:
            raise CacheConfigFault(f"unknown method cache options: {', '.join(unknown)}")

        policy = cls(**dict(options))

        if policy.expires_in is not None and policy.expires_in <= 0:
            raise CacheConfigFault("expires_in must be positive")
        if policy.generate_timeout is True:
            raise CacheConfigFault("generate_timeout must be a number of seconds or False")
        if policy.generate_timeout and policy.generate_timeout <= 0:
            raise CacheConfigFault("generate_timeout must be positive")

        return policy


# ============================================================================
# Cache Backend Protocol
# ============================================================================

class CacheBackend(ABC):
    """
    Abstract cache backend - defines the storage contract.

    Backends are responsible for their own eviction and TTL enforcement.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name for diagnostics."""
        ...

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize backend resources."""
        ...

    @abstractmethod
    async def shutdown(self) -> None:
        """Clean up backend resources."""
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        """
        Retrieve entry by key.

        Returns None if key doesn't exist or has expired.
        """
        ...

    @abstractmethod
    async def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        namespace: str = "default",
    ) -> None:
        """
        Store a value with optional TTL.

        Args:
            key: Cache key
            value: Value to store
            ttl: Time-to-live in seconds (None = no expiry)
            namespace: Logical namespace
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Delete entry by key.

        Returns True if the key existed and was deleted.
        """
        ...

    @abstractmethod
    async def clear(self, namespace: Optional[str] = None) -> int:
        """
        Clear cache entries (all, or only those in ``namespace``).

        Returns:
            Number of entries cleared.
        """
        ...

    @abstractmethod
    async def stats(self) -> CacheStats:
        """Current statistics."""
        ...
