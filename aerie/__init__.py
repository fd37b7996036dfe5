"""
Aerie - hierarchical service registry for async plugin servers

Complete integration of:
- Services: Named services registered per plugin realm, resolved by realm,
  plugin namespace or root
- Server: Plugin host with realms, decorations and lifecycle extensions
- Cache: Memoized server methods backing per-service method caching
- Faults: Structured error handling with fault domains
- Config: Layered configuration from .env files and the environment
"""

__version__ = "0.1.0"

# ============================================================================
# Core
# ============================================================================

from .config import ConfigError, ConfigLoader
from .server import DecorationExistsFault, Realm, RealmSettings, Server, ServerFault
from .lifecycle import ExtensionPoint, Lifecycle, LifecycleFault, LifecyclePhase

# ============================================================================
# Services
# ============================================================================

from .services import (
    NAME,
    SANDBOX,
    BoundInstance,
    Service,
    ServicesPlugin,
    bind_instance,
    configure_caching,
    derive_identity,
    plugin,
    with_name,
)
from .services.faults import (
    AlreadyConfiguredError,
    AmbiguousNamespaceError,
    DuplicateServiceError,
    InvalidNameError,
    InvalidServiceError,
    MissingIdentityError,
    MissingNameError,
    NameAlreadyAppliedError,
    SandboxAlreadyAppliedError,
    ServiceError,
    UnknownNamespaceError,
)

# ============================================================================
# Cache & Faults
# ============================================================================

from .cache import CacheConfig, CachePolicy, CacheService, MemoryBackend, ServerMethods
from .cache.faults import (
    CacheConfigFault,
    CacheFault,
    DuplicateMethodFault,
    GenerateTimeoutFault,
    MethodKeyFault,
    UnknownMethodFault,
)
from .faults import Fault, FaultDomain, Severity


__all__ = [
    "__version__",

    # Core
    "Server",
    "Realm",
    "RealmSettings",
    "ServerFault",
    "DecorationExistsFault",
    "ConfigLoader",
    "ConfigError",
    "ExtensionPoint",
    "Lifecycle",
    "LifecycleFault",
    "LifecyclePhase",

    # Services
    "NAME",
    "SANDBOX",
    "Service",
    "ServicesPlugin",
    "BoundInstance",
    "plugin",
    "with_name",
    "derive_identity",
    "bind_instance",
    "configure_caching",
    "ServiceError",
    "InvalidNameError",
    "NameAlreadyAppliedError",
    "SandboxAlreadyAppliedError",
    "MissingNameError",
    "InvalidServiceError",
    "DuplicateServiceError",
    "MissingIdentityError",
    "AlreadyConfiguredError",
    "UnknownNamespaceError",
    "AmbiguousNamespaceError",

    # Cache
    "CacheConfig",
    "CachePolicy",
    "CacheService",
    "MemoryBackend",
    "ServerMethods",
    "CacheFault",
    "CacheConfigFault",
    "DuplicateMethodFault",
    "GenerateTimeoutFault",
    "MethodKeyFault",
    "UnknownMethodFault",

    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
]
