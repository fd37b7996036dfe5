"""
Shared test fixtures and helpers for the Aerie test suite.
"""

from types import SimpleNamespace
from typing import Any, Callable, List, Optional

import pytest

import aerie
from aerie.server import Realm, Server


# ============================================================================
# Servers
# ============================================================================


@pytest.fixture
def make_server():
    """Async builder: a Server with the services plugin registered."""

    async def _make(config: Any = None) -> Server:
        server = Server(config)
        await server.register(aerie.plugin)
        return server

    return _make


@pytest.fixture
def make_plugin():
    """
    Build a plugin that registers child plugins, then services, and
    exposes its own ``services`` accessor.
    """

    def _make(
        name: str,
        services: Optional[List[Any]] = None,
        plugins: Optional[List[Any]] = None,
        **attrs: Any,
    ) -> SimpleNamespace:
        async def register(srv: Server, options: Any) -> None:
            await srv.register(plugins or [])
            srv.register_service(services or [])
            srv.expose("services", lambda namespace=None: srv.services(namespace))
            srv.expose("server", srv)

        return SimpleNamespace(name=name, register=register, **attrs)

    return _make


# ============================================================================
# Realms
# ============================================================================


@pytest.fixture
def realm_tree():
    """
    Bare realm tree for registry tests::

        root
        └── pluginA
            ├── pluginA1
            └── pluginX
                └── pluginX1
    """
    root = Realm()
    a = Realm(plugin="pluginA", parent=root)
    a1 = Realm(plugin="pluginA1", parent=a)
    x = Realm(plugin="pluginX", parent=a)
    x1 = Realm(plugin="pluginX1", parent=x)
    return SimpleNamespace(root=root, a=a, a1=a1, x=x, x1=x1)


def _record_args(self, *args: Any) -> None:
    self.args = args


def make_class(name: str, base: type = object, **attrs: Any) -> type:
    """
    Create a class with an arbitrary (possibly unusual) name.

    Unless ``base`` is given, instances record their constructor
    arguments as ``args``.
    """
    if base is object:
        attrs.setdefault("__init__", _record_args)
    return type(name, (base,), dict(attrs))


@pytest.fixture
def class_factory() -> Callable[..., type]:
    return make_class
