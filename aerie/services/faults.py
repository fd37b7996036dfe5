"""
Service registry faults.

Every fault here signals caller misuse (a programming error), so none
of them are retryable and all are raised at the point of violation.
"""

from __future__ import annotations

from typing import Any, Optional

from aerie.faults.core import Fault, FaultDomain, Severity


class ServiceError(Fault):
    """Base class for all service registry faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.ERROR,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.SERVICES,
            severity=severity,
            retryable=False,
            metadata=metadata,
        )


class InvalidNameError(ServiceError):
    """A name could not be turned into an instance key."""

    def __init__(self, name: Any, reason: str = "must be a non-empty string"):
        super().__init__(
            code="SERVICE_NAME_INVALID",
            message=f"Invalid service name {name!r}: {reason}.",
            metadata={"name": name, "reason": reason},
        )


class NameAlreadyAppliedError(InvalidNameError):
    """with_name() was used on a target that already carries a name."""

    def __init__(self, name: Any):
        super().__init__(name, reason="cannot apply a name to a service that already has one")
        self.code = "SERVICE_NAME_ALREADY_APPLIED"


class SandboxAlreadyAppliedError(InvalidNameError):
    """with_name() tried to set a sandbox on a target that already has one."""

    def __init__(self, name: Any):
        super().__init__(
            name,
            reason="cannot apply a sandbox setting to a service that already has one",
        )
        self.code = "SERVICE_SANDBOX_ALREADY_APPLIED"


class MissingNameError(ServiceError):
    """No name could be found for a service class, factory result or object."""

    def __init__(self, kind: str):
        if kind == "class":
            message = "The service class must have a name."
        else:
            message = "The service must have a name."
        super().__init__(
            code="SERVICE_NAME_MISSING",
            message=message,
            metadata={"kind": kind},
        )


class InvalidServiceError(ServiceError):
    """A descriptor (or a factory's result) is not a usable service."""

    def __init__(self, value: Any, reason: str):
        super().__init__(
            code="SERVICE_INVALID",
            message=(
                f"Invalid service {type(value).__name__}: {reason}. "
                f"Register a class, a factory returning an object, or an object."
            ),
            metadata={"type": type(value).__name__, "reason": reason},
        )


class DuplicateServiceError(ServiceError):
    """An instance key is already taken where the service would be recorded."""

    def __init__(self, name: str, namespace: Optional[str] = None):
        if namespace is None:
            message = f"A service named {name} has already been registered."
        else:
            message = (
                f"A service named {name} has already been registered "
                f"in plugin namespace {namespace}."
            )
        super().__init__(
            code="SERVICE_DUPLICATE",
            message=message,
            metadata={"name": name, "namespace": namespace},
        )


class MissingIdentityError(ServiceError):
    """Caching was requested for an instance whose class has no name."""

    def __init__(self, instance: Any):
        super().__init__(
            code="SERVICE_IDENTITY_MISSING",
            message="The service class must have a name in order to configure caching.",
            metadata={"type": repr(type(instance))},
        )


class AlreadyConfiguredError(ServiceError):
    """Caching was configured a second time on the same instance."""

    def __init__(self, identity: str):
        super().__init__(
            code="SERVICE_CACHING_CONFIGURED",
            message=f"Caching config can only be specified once ({identity}).",
            metadata={"identity": identity},
        )


class UnknownNamespaceError(ServiceError):
    """No realm has registered services under the requested owner."""

    def __init__(self, namespace: str):
        super().__init__(
            code="SERVICE_NAMESPACE_UNKNOWN",
            message=f"The plugin namespace {namespace} does not exist.",
            metadata={"namespace": namespace},
        )


class AmbiguousNamespaceError(ServiceError):
    """More than one realm registered services under the requested owner."""

    def __init__(self, namespace: str, count: int):
        super().__init__(
            code="SERVICE_NAMESPACE_AMBIGUOUS",
            message=(
                f"The plugin namespace {namespace} is not unique: "
                f"is that plugin registered multiple times?"
            ),
            metadata={"namespace": namespace, "realms": count},
        )
