"""
Aerie cache - Fault domain integration.

Typed faults raised by the cache subsystem and the server method table.
"""

from __future__ import annotations

from typing import Any, Optional

from aerie.faults.core import Fault, FaultDomain, Severity


# Register cache fault domain
FaultDomain.CACHE = FaultDomain("cache", "Cache subsystem faults")


class CacheFault(Fault):
    """Base class for all cache faults."""

    def __init__(
        self,
        code: str,
        message: str,
        *,
        severity: Severity = Severity.WARN,
        retryable: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.CACHE,
            severity=severity,
            retryable=retryable,
            metadata=metadata,
        )


class CacheConfigFault(CacheFault):
    """Cache configuration error."""

    def __init__(self, reason: str):
        super().__init__(
            code="CACHE_CONFIG_INVALID",
            message=f"Invalid cache configuration: {reason}",
            severity=Severity.FATAL,
            metadata={"reason": reason},
        )


class CacheBackendFault(CacheFault):
    """Generic cache backend error."""

    def __init__(self, backend: str, operation: str, reason: str):
        super().__init__(
            code="CACHE_BACKEND_ERROR",
            message=f"Cache backend '{backend}' error during {operation}: {reason}",
            severity=Severity.ERROR,
            retryable=True,
            metadata={"backend": backend, "operation": operation, "reason": reason},
        )


class DuplicateMethodFault(CacheFault):
    """A server method with the same name already exists."""

    def __init__(self, name: str):
        super().__init__(
            code="METHOD_DUPLICATE",
            message=f"Server method function name already exists: {name}",
            severity=Severity.ERROR,
            metadata={"method": name},
        )


class UnknownMethodFault(CacheFault):
    """No server method is registered under the requested name."""

    def __init__(self, name: str):
        super().__init__(
            code="METHOD_UNKNOWN",
            message=f"Unknown server method: {name}",
            severity=Severity.ERROR,
            metadata={"method": name},
        )


class MethodKeyFault(CacheFault):
    """Arguments of a cached method call could not be turned into a key."""

    def __init__(self, name: str, reason: str):
        super().__init__(
            code="METHOD_KEY_INVALID",
            message=f"Invalid method key when invoking: {name} ({reason})",
            severity=Severity.ERROR,
            metadata={"method": name, "reason": reason},
        )


class GenerateTimeoutFault(CacheFault):
    """A cached method took longer than its generate_timeout."""

    def __init__(self, name: str, timeout: float):
        super().__init__(
            code="METHOD_GENERATE_TIMEOUT",
            message="Service Unavailable",
            severity=Severity.ERROR,
            retryable=True,
            metadata={"method": name, "timeout": timeout},
        )
