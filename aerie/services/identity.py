"""
Service identity - instance keys, literal names and sandbox tags.

A service is registered under an *instance key*. By default the key is
the camel-cased form of the service's name (``"user-store"`` becomes
``"userStore"``). A literal name stamped with :func:`with_name` is used
verbatim instead.
"""

from __future__ import annotations

import functools
import inspect
import re
from collections.abc import Mapping, MutableMapping
from typing import Any, Optional

from .faults import InvalidNameError, NameAlreadyAppliedError, SandboxAlreadyAppliedError

#: Tag holding a literal service name (attribute on objects/classes, key on mappings).
NAME = "__service_name__"

#: Tag holding a sandbox setting: ``"plugin"``, ``"server"`` or a boolean.
SANDBOX = "__service_sandbox__"

_SEPARATORS = re.compile(r"[-_ ]+(.?)")


def derive_identity(name: Any) -> str:
    """
    Fold a raw name into its camel-case instance key.

    Each run of separators (hyphen, underscore, space) is dropped and the
    character after it upper-cased; the first character is then lower-cased.

    Raises:
        InvalidNameError: If ``name`` is not a string or folds to nothing.
    """
    if not isinstance(name, str) or not name:
        raise InvalidNameError(name)

    folded = _SEPARATORS.sub(lambda m: m.group(1).upper(), name)
    if not folded:
        raise InvalidNameError(name, reason="contains no usable characters")

    return folded[0].lower() + folded[1:]


def normalize_sandbox(value: Any) -> Any:
    """Map ``"plugin"``/``"server"`` to booleans; other values pass through."""
    if value == "plugin":
        return True
    if value == "server":
        return False
    return value


def get_tag(target: Any, tag: str) -> Any:
    """
    Read an identity tag from a class, mapping or object.

    Classes are read from their own ``__dict__`` so a subclass never
    inherits its parent's literal name.
    """
    if inspect.isclass(target):
        return vars(target).get(tag)
    if isinstance(target, Mapping):
        return target.get(tag)
    return getattr(target, tag, None)


def _set_tag(target: Any, tag: str, value: Any) -> None:
    if isinstance(target, MutableMapping):
        target[tag] = value
    else:
        setattr(target, tag, value)


def _apply_name(name: str, sandbox: Any, target: Any) -> Any:
    if get_tag(target, NAME):
        raise NameAlreadyAppliedError(name)

    _set_tag(target, NAME, name)

    if sandbox is not None:
        if get_tag(target, SANDBOX) is not None:
            raise SandboxAlreadyAppliedError(name)
        _set_tag(target, SANDBOX, sandbox)

    return target


async def _apply_name_async(name: str, sandbox: Any, pending: Any) -> Any:
    return _apply_name(name, sandbox, await pending)


_UNSET = object()


def with_name(name: str, options: Any = None, factory: Any = _UNSET) -> Any:
    """
    Stamp a literal service name (and optional sandbox) onto a service.

    Accepts an object, a mapping, a class, or a factory. Factories are
    wrapped so the name is applied to whatever they return; an async
    factory's wrapper returns an awaitable that applies the name once
    the factory resolves.

    Usage::

        server.register_service(with_name("user-store", UserStore))
        server.register_service(with_name("cache", {"sandbox": "plugin"}, make_cache))

    Args:
        name: Literal instance key, used without camel-case folding
        options: Optional mapping; ``{"sandbox": ...}`` is supported
        factory: The service, class or factory (``options`` may be omitted)

    Raises:
        InvalidNameError: If the target already carries a name or sandbox
    """
    if factory is _UNSET:
        factory = options
        options = None

    sandbox: Optional[Any] = (options or {}).get("sandbox")

    if inspect.isroutine(factory) or isinstance(factory, functools.partial):
        @functools.wraps(factory)
        def named_factory(*args: Any, **kwargs: Any) -> Any:
            service = factory(*args, **kwargs)
            if inspect.isawaitable(service):
                return _apply_name_async(name, sandbox, service)
            return _apply_name(name, sandbox, service)

        return named_factory

    return _apply_name(name, sandbox, factory)
