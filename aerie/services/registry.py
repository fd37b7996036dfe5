"""
Realm tree registry.

Services are recorded per realm. A realm's own map holds every service
visible from it: the ones it registered plus the ones its descendants
propagated upward. Non-sandboxed services are propagated from the
registering realm up to the root; sandboxed services stay in the
registering realm.

The registry never creates realms. It only needs ``parent``, ``plugin``,
``plugin_options`` and a ``plugins`` mapping to keep its state in.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Union

from .factory import ServiceRecord, resolve_descriptor
from .faults import AmbiguousNamespaceError, DuplicateServiceError, UnknownNamespaceError

logger = logging.getLogger("aerie.services.registry")

#: Key under which registry state is stored in ``realm.plugins``.
STATE_KEY = "aerie"


@dataclass(eq=False)
class RegistryState:
    """Registry state attached to one realm."""

    services: Dict[str, Any] = field(default_factory=dict)
    # Only populated on the root realm's state
    namespaces: Dict[Optional[str], Set[Any]] = field(default_factory=lambda: defaultdict(set))


# ============================================================================
# State access
# ============================================================================

def state(realm: Any) -> RegistryState:
    """Get (creating on first use) the registry state of a realm."""
    current = realm.plugins.get(STATE_KEY)
    if current is None:
        current = realm.plugins[STATE_KEY] = RegistryState()
    return current


def root_of(realm: Any) -> Any:
    """Walk ``parent`` links to the root realm."""
    while realm.parent is not None:
        realm = realm.parent
    return realm


def root_state(realm: Any) -> RegistryState:
    """Registry state of the root realm."""
    return state(root_of(realm))


def ancestors(realm: Any) -> Iterator[Any]:
    """Yield ``realm`` followed by each ancestor up to the root."""
    while realm is not None:
        yield realm
        realm = realm.parent


# ============================================================================
# Registration
# ============================================================================

def register_at(realm: Any, descriptors: Any, owner: Any = None) -> None:
    """
    Register one descriptor or an ordered sequence of descriptors.

    All descriptors are resolved and checked before anything is recorded,
    so a failing batch leaves the registry untouched.

    Args:
        realm: Realm the services are registered from
        descriptors: A descriptor or a list/tuple of descriptors
        owner: First argument for class and factory descriptors

    Raises:
        DuplicateServiceError: If an instance key is already taken
        InvalidServiceError: If a descriptor is not a service
        MissingNameError: If a service has no name
    """
    if not isinstance(descriptors, (list, tuple)):
        descriptors = [descriptors]

    records = [
        resolve_descriptor(descriptor, owner, realm.plugin_options)
        for descriptor in descriptors
    ]

    _check_batch(realm, records)

    root = root_state(realm)
    for record in records:
        root.namespaces[realm.plugin].add(realm)
        targets = [realm] if record.sandboxed else list(ancestors(realm))
        for target in targets:
            state(target).services[record.instance_key] = record.instance

        logger.debug(
            f"Registered service '{record.instance_key}' "
            f"(plugin={realm.plugin}, sandboxed={record.sandboxed}, realms={len(targets)})"
        )


def _check_batch(realm: Any, records: List[ServiceRecord]) -> None:
    """Validate a batch against the registry and against itself."""
    root_services = root_state(realm).services
    # Keys this batch will add, per realm
    pending: Dict[int, Set[str]] = defaultdict(set)

    for record in records:
        key = record.instance_key

        if not record.sandboxed and key in root_services:
            raise DuplicateServiceError(record.name)

        targets = [realm] if record.sandboxed else list(ancestors(realm))
        for target in targets:
            if key in state(target).services or key in pending[id(target)]:
                if target.parent is None and not record.sandboxed:
                    raise DuplicateServiceError(record.name)
                raise DuplicateServiceError(key, target.plugin)

        for target in targets:
            pending[id(target)].add(key)


# ============================================================================
# Resolution
# ============================================================================

def resolve(realm: Any, scoped: bool = False) -> Dict[str, Any]:
    """
    Services visible from a realm.

    Args:
        realm: Realm to resolve from
        scoped: When True, resolve root-wide instead of from ``realm``

    Returns:
        A fresh dict of instance key -> service (empty if none)
    """
    target = root_of(realm) if scoped else realm
    return dict(state(target).services)


def resolve_by_owner(realm: Any, owner: str) -> Dict[str, Any]:
    """
    Services visible from the single realm registered under ``owner``.

    Raises:
        UnknownNamespaceError: If no realm registered services as ``owner``
        AmbiguousNamespaceError: If several realms did
    """
    realms = root_state(realm).namespaces.get(owner)
    if not realms:
        raise UnknownNamespaceError(owner)
    if len(realms) != 1:
        raise AmbiguousNamespaceError(owner, len(realms))

    (owner_realm,) = realms
    return dict(state(owner_realm).services)


def services_accessor(get_realm: Callable[[Any], Any]) -> Callable[..., Dict[str, Any]]:
    """
    Build a ``services()`` method for any realm-bound object.

    The returned function takes the bound object first, then a
    ``namespace``: ``None``/``False`` for the object's realm, ``True``
    for the root, or a plugin name.
    """
    def services(bound: Any, namespace: Union[None, bool, str] = None) -> Dict[str, Any]:
        realm = get_realm(bound)

        if not namespace:
            return resolve(realm)

        if isinstance(namespace, str):
            return resolve_by_owner(realm, namespace)

        return resolve(realm, scoped=True)

    return services


def register_service(server: Any, services: Any) -> None:
    """Server decoration: register services from the server's realm."""
    register_at(server.realm, services, owner=server)


# ============================================================================
# Plugin
# ============================================================================

class ServicesPlugin:
    """
    Host plugin installing the ``register_service`` and ``services``
    decorations on every server view.

    Usage::

        server = Server()
        await server.register(aerie.plugin)
        server.register_service(UserStore)
        server.services()  # {"userStore": <UserStore>}
    """

    name = "aerie"
    once = True

    def register(self, server: Any, options: Any = None) -> None:
        server.decorate("register_service", register_service)
        server.decorate("services", services_accessor(lambda srv: srv.realm))
        logger.debug("Service registry decorations installed")


plugin = ServicesPlugin()


def iter_services(realm: Any, scoped: bool = False) -> List[str]:
    """Instance keys visible from a realm, sorted."""
    return sorted(resolve(realm, scoped=scoped))
