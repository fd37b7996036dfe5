"""
Aerie cache - async memoizing engine behind server methods.

Provides:
- **MemoryBackend**: LRU/FIFO store with TTL expiry and stats
- **CacheService**: namespaced get/set with single-flight ``get_or_set``
- **ServerMethods**: named method table with per-method cache policies
- **Fault domain**: typed cache faults

Usage::

    from aerie.cache import CacheService, ServerMethods

    methods = ServerMethods(CacheService())
    methods.add("sum", lambda a, b: a + b, cache={"expires_in": 60})
"""

from .core import (
    CacheBackend,
    CacheConfig,
    CacheEntry,
    CachePolicy,
    CacheStats,
    EvictionPolicy,
)
from .backends.memory import MemoryBackend
from .service import CacheService
from .key_builder import DefaultKeyBuilder
from .methods import ServerMethods
from .faults import (
    CacheBackendFault,
    CacheConfigFault,
    CacheFault,
    DuplicateMethodFault,
    GenerateTimeoutFault,
    MethodKeyFault,
    UnknownMethodFault,
)

__all__ = [
    # Core
    "CacheBackend",
    "CacheConfig",
    "CacheEntry",
    "CachePolicy",
    "CacheStats",
    "EvictionPolicy",
    # Backends
    "MemoryBackend",
    # Service
    "CacheService",
    "DefaultKeyBuilder",
    "ServerMethods",
    # Faults
    "CacheFault",
    "CacheBackendFault",
    "CacheConfigFault",
    "DuplicateMethodFault",
    "GenerateTimeoutFault",
    "MethodKeyFault",
    "UnknownMethodFault",
]
