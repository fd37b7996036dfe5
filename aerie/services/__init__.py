"""
Aerie services - hierarchical service registry.

Plugins register named services into the realm tree; any realm-bound
object resolves the services visible from its realm or from the root.

Key pieces:
- identity: instance keys, literal names, sandbox tags
- factory: class / factory / object descriptors -> ServiceRecord
- registry: registration, resolution, the server plugin
- binding: lazily bound method proxies
- caching: per-method memoization via server methods
- base: the Service base class
"""

from .base import Service
from .binding import BOUND_INSTANCE_ATTR, BoundInstance, bind_instance, method_names
from .caching import configure_caching, method_address, split_method_config
from .factory import DescriptorKind, ServiceRecord, classify_descriptor, resolve_descriptor
from .faults import (
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
from .identity import NAME, SANDBOX, derive_identity, normalize_sandbox, with_name
from .registry import (
    RegistryState,
    ServicesPlugin,
    plugin,
    register_at,
    register_service,
    resolve,
    resolve_by_owner,
    services_accessor,
)

__all__ = [
    # Base
    "Service",

    # Identity
    "NAME",
    "SANDBOX",
    "derive_identity",
    "normalize_sandbox",
    "with_name",

    # Factory
    "DescriptorKind",
    "ServiceRecord",
    "classify_descriptor",
    "resolve_descriptor",

    # Registry
    "RegistryState",
    "ServicesPlugin",
    "plugin",
    "register_at",
    "register_service",
    "resolve",
    "resolve_by_owner",
    "services_accessor",

    # Binding
    "BOUND_INSTANCE_ATTR",
    "BoundInstance",
    "bind_instance",
    "method_names",

    # Caching
    "configure_caching",
    "method_address",
    "split_method_config",

    # Faults
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
]
