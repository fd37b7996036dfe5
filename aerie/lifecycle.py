"""
Lifecycle management - extension points run around server start and stop.

Hooks registered on a point run in priority order (higher first, then
registration order). Start-side hooks fail fast: the first error aborts
the phase. Stop-side hooks always all run; failures are logged.
"""

from __future__ import annotations

import inspect
import logging
import types
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from aerie.faults.core import Fault, FaultDomain

logger = logging.getLogger("aerie.lifecycle")


class ExtensionPoint(str, Enum):
    """Points in the server lifecycle hooks can attach to."""

    ON_PRE_START = "on_pre_start"    # Before the server is ready (initialize)
    ON_POST_START = "on_post_start"  # After the server has started
    ON_PRE_STOP = "on_pre_stop"      # Stop requested, nothing torn down yet
    ON_POST_STOP = "on_post_stop"    # After the server has stopped


_STOP_POINTS = frozenset((ExtensionPoint.ON_PRE_STOP, ExtensionPoint.ON_POST_STOP))


class LifecyclePhase(str, Enum):
    """Lifecycle phases."""

    INIT = "init"
    INITIALIZED = "initialized"
    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"


class LifecycleFault(Fault):
    """Raised for invalid extension points or illegal phase transitions."""

    def __init__(self, code: str, message: str, **metadata: Any):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.LIFECYCLE,
            metadata=metadata,
        )


@dataclass
class LifecycleHook:
    """
    Lifecycle hook registration.

    ``bind`` is the object a plain-function callback is bound to.
    """

    name: str
    callback: Callable[..., Any]
    point: ExtensionPoint
    bind: Any = None
    priority: int = 0  # Higher priority runs first

    def invoke(self) -> Any:
        callback = self.callback
        if self.bind is not None and inspect.isfunction(callback):
            callback = types.MethodType(callback, self.bind)
        return callback()


class Lifecycle:
    """
    Holds hooks per extension point and runs them.
    """

    __slots__ = ("_hooks",)

    def __init__(self):
        self._hooks: Dict[ExtensionPoint, List[LifecycleHook]] = {
            point: [] for point in ExtensionPoint
        }

    def add(
        self,
        point: str | ExtensionPoint,
        callback: Callable[..., Any],
        *,
        bind: Any = None,
        name: Optional[str] = None,
        priority: int = 0,
    ) -> LifecycleHook:
        """
        Register a hook.

        Args:
            point: Extension point name (e.g. ``"on_pre_start"``)
            callback: Sync or async callable taking no arguments
            bind: Object a plain-function callback is bound to
            name: Hook name for diagnostics
            priority: Higher priority runs first

        Raises:
            LifecycleFault: If ``point`` is not a known extension point
        """
        try:
            point = ExtensionPoint(point)
        except ValueError:
            raise LifecycleFault(
                "LIFECYCLE_UNKNOWN_POINT",
                f"Unknown extension point '{point}'",
                point=str(point),
            ) from None

        hook = LifecycleHook(
            name=name or getattr(callback, "__qualname__", repr(callback)),
            callback=callback,
            point=point,
            bind=bind,
            priority=priority,
        )
        hooks = self._hooks[point]
        hooks.append(hook)
        hooks.sort(key=lambda h: -h.priority)  # Stable: keeps registration order per priority
        return hook

    def hooks(self, point: str | ExtensionPoint) -> List[LifecycleHook]:
        """Registered hooks for a point, in run order."""
        return list(self._hooks[ExtensionPoint(point)])

    async def run(self, point: str | ExtensionPoint) -> None:
        """Run every hook registered on ``point``."""
        point = ExtensionPoint(point)
        tolerant = point in _STOP_POINTS

        for hook in self._hooks[point]:
            try:
                result = hook.invoke()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                if not tolerant:
                    logger.error(f"Lifecycle hook '{hook.name}' failed during {point.value}")
                    raise
                logger.error(
                    f"Lifecycle hook '{hook.name}' failed during {point.value}",
                    exc_info=True,
                )
