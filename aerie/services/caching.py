"""
Per-method caching for service instances.

``configure_caching(service, config)`` turns selected methods of one
instance into memoized server methods. ``config`` maps method names to
either a flat cache policy::

    {"get_user": {"expires_in": 60, "generate_timeout": 2}}

or a policy plus a key generator::

    {"add": {"cache": {"expires_in": 60}, "generate_key": lambda a, b: f"{min(a, b)}:{max(a, b)}"}}

Each method is registered on the server as ``services.<identity>.<method>``
and the instance attribute is replaced by the memoized wrapper. Whether
results are actually memoized (e.g. not before startup) is up to the
server's method table.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from .faults import AlreadyConfiguredError, InvalidNameError, MissingIdentityError
from .identity import derive_identity

logger = logging.getLogger("aerie.services.caching")

#: Namespace every service method is registered under.
METHOD_NAMESPACE = "services"

#: Instance attribute marking that caching was configured.
CACHING_FLAG = "_aerie_caching"


def split_method_config(options: Mapping[str, Any]) -> tuple[Dict[str, Any], Optional[Any]]:
    """
    Separate the key generator from the cache policy.

    Returns:
        ``(policy, generate_key)``; ``policy`` never contains ``generate_key``
    """
    generate_key = options.get("generate_key")

    if options.get("cache") is not None:
        policy = dict(options["cache"])
    else:
        policy = dict(options)

    policy.pop("generate_key", None)
    return policy, generate_key


def method_address(identity: str, method_name: str) -> str:
    """Server method name for one cached service method."""
    return f"{METHOD_NAMESPACE}.{identity}.{method_name}"


def configure_caching(instance: Any, config: Mapping[str, Any], server: Any = None) -> None:
    """
    Configure caching for methods of ``instance``.

    Args:
        instance: Service instance whose methods are memoized
        config: Method name -> cache options
        server: Server owning the method table (defaults to ``instance.server``)

    Raises:
        MissingIdentityError: If the instance's class has no usable name
        AlreadyConfiguredError: If caching was configured on this instance before
    """
    try:
        identity = derive_identity(type(instance).__name__)
    except InvalidNameError:
        raise MissingIdentityError(instance) from None

    if vars(instance).get(CACHING_FLAG):
        raise AlreadyConfiguredError(identity)

    setattr(instance, CACHING_FLAG, True)

    server = server if server is not None else instance.server

    for method_name, options in config.items():
        policy, generate_key = split_method_config(options)
        address = method_address(identity, method_name)

        server.method(
            address,
            getattr(instance, method_name),
            bind=instance,
            generate_key=generate_key,
            cache=policy,
        )
        setattr(instance, method_name, server.methods[address])

        logger.debug(f"Cached service method '{address}' (policy={policy})")
