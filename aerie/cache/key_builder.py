"""
Aerie cache - Cache key builder.

Deterministic key generation with namespace isolation.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence
from urllib.parse import quote

from .faults import MethodKeyFault

# Argument types a method key can be derived from
_KEYABLE = (str, int, float, bool)


class DefaultKeyBuilder:
    """
    Default key builder using colon-separated segments.

    Pattern: ``{prefix}{namespace}:{key}``

    Example: ``aerie:services.userStore.find:42``
    """

    def build(self, namespace: str, key: str, prefix: str = "") -> str:
        """Build qualified cache key."""
        return f"{prefix}{namespace}:{key}"

    def from_args(
        self,
        method: str,
        args: Sequence[Any],
        kwargs: Optional[Mapping[str, Any]] = None,
    ) -> str:
        """
        Build a method key from call arguments.

        Every argument must be a string, number or boolean. Each one is
        percent-encoded, then they are joined with ``:``; keyword arguments
        follow in name order as ``name=value``.

        Raises:
            MethodKeyFault: If an argument cannot be part of a key
        """
        parts = [_encode(method, arg) for arg in args]
        for name in sorted(kwargs or {}):
            parts.append(f"{quote(name, safe='')}={_encode(method, kwargs[name])}")
        return ":".join(parts)


def _encode(method: str, value: Any) -> str:
    if not isinstance(value, _KEYABLE):
        raise MethodKeyFault(method, f"unsupported argument type {type(value).__name__}")
    return quote(str(value), safe="")
