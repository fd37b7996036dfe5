"""
Service factory resolution.

Normalizes a *service descriptor* into a :class:`ServiceRecord`. A
descriptor is one of:

- a class, instantiated as ``cls(owner, options)``
- a factory (a function, method or ``functools.partial``), called as
  ``factory(owner, options)``
- any other object or mapping, used as is; callable instances included

The shape is decided once, by :func:`classify_descriptor`; nothing past
this module inspects descriptor types again.
"""

from __future__ import annotations

import functools
import inspect
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .faults import InvalidServiceError, MissingNameError
from .identity import NAME, SANDBOX, derive_identity, get_tag, normalize_sandbox

# Values that are never services, neither as descriptors nor as factory results
_SCALARS = (str, bytes, bytearray, int, float, complex, bool)


class DescriptorKind(str, Enum):
    """Shapes a service descriptor may take."""

    CLASS = "class"
    FACTORY = "factory"
    OBJECT = "object"


@dataclass(frozen=True)
class ServiceRecord:
    """A resolved service, ready to be recorded in the registry."""

    name: str
    instance_key: str
    instance: Any
    sandboxed: bool = False


def classify_descriptor(descriptor: Any) -> DescriptorKind:
    """
    Decide which shape a descriptor has.

    Raises:
        InvalidServiceError: For ``None`` and scalar values
    """
    if descriptor is None or isinstance(descriptor, _SCALARS):
        raise InvalidServiceError(descriptor, "expected a class, a factory or an object")

    if inspect.isclass(descriptor):
        return DescriptorKind.CLASS

    if inspect.isroutine(descriptor) or isinstance(descriptor, functools.partial):
        return DescriptorKind.FACTORY

    return DescriptorKind.OBJECT


def resolve_descriptor(descriptor: Any, owner: Any, options: Any) -> ServiceRecord:
    """
    Build the service described by ``descriptor``.

    Args:
        descriptor: Class, factory, object or mapping
        owner: Passed as the first constructor/factory argument
        options: Passed as the second constructor/factory argument

    Returns:
        ServiceRecord with name, instance key, instance and sandbox flag

    Raises:
        InvalidServiceError: If the descriptor or factory result is unusable
        MissingNameError: If no name can be found
    """
    kind = classify_descriptor(descriptor)

    if kind is DescriptorKind.CLASS:
        return _from_class(descriptor, owner, options)

    if kind is DescriptorKind.FACTORY:
        service = descriptor(owner, options)
        if inspect.isawaitable(service):
            if inspect.iscoroutine(service):
                service.close()
            raise InvalidServiceError(
                service,
                "async factories cannot be registered eagerly; await the factory first",
            )
        if service is None or isinstance(service, _SCALARS) or inspect.isclass(service):
            raise InvalidServiceError(service, "a factory must return a service object")
        return _from_object(service)

    return _from_object(descriptor)


def _from_class(cls: type, owner: Any, options: Any) -> ServiceRecord:
    literal = get_tag(cls, NAME)
    name = literal or cls.__name__

    if not name or not isinstance(name, str):
        raise MissingNameError("class")

    return ServiceRecord(
        name=name,
        instance_key=name if literal else derive_identity(name),
        instance=cls(owner, options),
        sandboxed=_sandboxed(get_tag(cls, SANDBOX)),
    )


def _from_object(service: Any) -> ServiceRecord:
    literal = get_tag(service, NAME)
    name = literal or _field(service, "name") or _plugin_name(service)

    if not name or not isinstance(name, str):
        raise MissingNameError("object")

    return ServiceRecord(
        name=name,
        instance_key=name if literal else derive_identity(name),
        instance=service,
        sandboxed=_sandboxed(get_tag(service, SANDBOX)),
    )


def _sandboxed(value: Any) -> bool:
    return bool(normalize_sandbox(value))


def _field(service: Any, key: str) -> Optional[Any]:
    if isinstance(service, Mapping):
        return service.get(key)
    return getattr(service, key, None)


def _plugin_name(service: Any) -> Optional[Any]:
    """Name of the plugin a realm-bound object (e.g. a plugin server) belongs to."""
    realm = _field(service, "realm")
    if realm is None:
        return None
    return getattr(realm, "plugin", None)
