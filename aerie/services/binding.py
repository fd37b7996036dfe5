"""
Lazy self-binding.

``bind_instance(service)`` returns a proxy whose methods are already
bound to ``service``, so they can be pulled off and passed around::

    get_user = bind_instance(users).get_user
    await get_user(42)

The proxy is built once per instance and cached on it. Building it
never calls the constructor and never evaluates properties: class
dictionaries are read raw, and non-method attributes are looked up on
the instance only when accessed through the proxy.
"""

from __future__ import annotations

import inspect
from typing import Any, Dict, Tuple

#: Attribute the bound proxy is cached under on the original instance.
BOUND_INSTANCE_ATTR = "_aerie_bound_instance"

# Module-level cache: class -> ordered method names along its MRO
_method_names_cache: Dict[type, Tuple[str, ...]] = {}


class BoundInstance:
    """
    Proxy exposing pre-bound methods of ``target``.

    Attributes not captured at bind time are read from the target on
    access, so properties stay lazy.
    """

    def __init__(self, target: Any):
        object.__setattr__(self, "_target", target)

    def __getattr__(self, name: str) -> Any:
        return getattr(object.__getattribute__(self, "_target"), name)

    def __repr__(self) -> str:
        return f"<BoundInstance of {object.__getattribute__(self, '_target')!r}>"


def method_names(cls: type) -> Tuple[str, ...]:
    """
    Names of the plain functions defined along ``cls.__mro__``.

    Subclass definitions come first; ``object``, ``__init__`` and other
    dunder methods are skipped. Computed once per class.
    """
    names = _method_names_cache.get(cls)
    if names is not None:
        return names

    # name -> whether its nearest definition is a plain function
    seen: Dict[str, bool] = {}
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, value in vars(klass).items():
            if name.startswith("__") and name.endswith("__"):
                continue
            seen.setdefault(name, inspect.isfunction(value))

    names = tuple(name for name, is_function in seen.items() if is_function)
    _method_names_cache[cls] = names
    return names


def bind_instance(instance: Any) -> BoundInstance:
    """
    Get the cached bound proxy of ``instance``, creating it on first use.

    Returns:
        The same BoundInstance on every call for a given instance
    """
    bound = vars(instance).get(BOUND_INSTANCE_ATTR)
    if bound is not None:
        return bound

    bound = BoundInstance(instance)
    proxy_dict = vars(bound)

    own = vars(instance)
    for name, value in own.items():
        if inspect.isfunction(value) or inspect.ismethod(value):
            proxy_dict[name] = value

    for name in method_names(type(instance)):
        if name not in own:
            # Functions on the class bind to the instance; no property is involved
            proxy_dict[name] = getattr(instance, name)

    setattr(instance, BOUND_INSTANCE_ATTR, bound)
    return bound
