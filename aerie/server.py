"""
Aerie Server - plugin host with realms, decorations and lifecycle.

The server is a tree of realms. The root server owns the root realm;
every registered plugin gets a child realm of the realm it was
registered from, and a server view bound to that realm. All views share
one core (lifecycle, method table, decorations, exposed plugin values).

Usage::

    server = Server()
    await server.register(aerie.plugin)

    async def register(srv, options):
        srv.register_service(UserStore)

    await server.register(SimpleNamespace(name="users", register=register))
    await server.initialize()
"""

from __future__ import annotations

import inspect
import logging
import types
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .cache import CacheConfig, CacheService, ServerMethods
from .config import ConfigLoader
from .faults.core import Fault, FaultDomain
from .lifecycle import Lifecycle, LifecycleFault, LifecyclePhase

logger = logging.getLogger("aerie.server")


# ============================================================================
# Faults
# ============================================================================

class ServerFault(Fault):
    """Misuse of the server API (plugins, decorations, exposures)."""

    def __init__(self, code: str, message: str, **metadata: Any):
        super().__init__(
            code=code,
            message=message,
            domain=FaultDomain.SYSTEM,
            metadata=metadata,
        )


class DecorationExistsFault(ServerFault):
    """A server decoration with the same name is already registered."""

    def __init__(self, name: str):
        super().__init__(
            "SERVER_DECORATION_EXISTS",
            f"Server decoration already defined: {name}",
            decoration=name,
        )


# ============================================================================
# Realms
# ============================================================================

@dataclass
class RealmSettings:
    """Per-realm settings; ``bind`` is the context set with ``server.bind()``."""

    bind: Any = None


@dataclass(eq=False)
class Realm:
    """
    One node of the plugin tree.

    Attributes:
        plugin: Name of the plugin owning the realm (None for the root)
        parent: Realm the plugin was registered from (None for the root)
        plugin_options: Options the plugin was registered with
        plugins: Per-realm plugin state, keyed by plugin name
        settings: Realm settings
    """

    plugin: Optional[str] = None
    parent: Optional["Realm"] = None
    plugin_options: Any = field(default_factory=dict)
    plugins: Dict[str, Any] = field(default_factory=dict)
    settings: RealmSettings = field(default_factory=RealmSettings)

    def __repr__(self) -> str:
        return f"<Realm plugin={self.plugin!r}>"


class _Core:
    """State shared by every server view."""

    def __init__(self, cache_config: CacheConfig, config: Optional[ConfigLoader]):
        self.config = config
        self.lifecycle = Lifecycle()
        self.cache = CacheService(config=cache_config)
        self.methods = ServerMethods(self.cache)
        self.decorations: Dict[str, Callable[..., Any]] = {}
        self.plugins: Dict[str, Dict[str, Any]] = {}
        self.registrations: Dict[str, Any] = {}
        self.realms: List[Realm] = []
        self.phase = LifecyclePhase.INIT


# ============================================================================
# Server
# ============================================================================

class Server:
    """
    Plugin host.

    Args:
        config: A ``CacheConfig`` or a ``ConfigLoader`` (cache settings are
            read from its ``cache`` section); defaults apply when omitted
    """

    def __init__(self, config: Union[CacheConfig, ConfigLoader, None] = None):
        loader = None
        if isinstance(config, ConfigLoader):
            loader = config
            cache_config = config.get_cache_config()
        else:
            cache_config = config or CacheConfig()

        self._core = _Core(cache_config, loader)
        self.realm = Realm()
        self._core.realms.append(self.realm)

    @classmethod
    def _view(cls, core: _Core, realm: Realm) -> "Server":
        view = cls.__new__(cls)
        view._core = core
        view.realm = realm
        return view

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__"):
            raise AttributeError(name)
        core = self.__dict__.get("_core")
        if core is not None and name in core.decorations:
            return types.MethodType(core.decorations[name], self)
        raise AttributeError(f"'{type(self).__name__}' object has no attribute '{name}'")

    def __repr__(self) -> str:
        return f"<Server realm={self.realm.plugin!r}>"

    # ── Plugins ──────────────────────────────────────────────────────

    async def register(self, plugins: Any, options: Any = None) -> None:
        """
        Register one plugin or a list of plugins.

        A plugin is any object (or mapping) with a ``name`` and a
        ``register(server, options)`` callable, sync or async. It may set
        ``once = True`` (later registrations are skipped) or
        ``multiple = True`` (may be registered repeatedly). Items may also
        be ``{"plugin": plugin, "options": options}``.

        Raises:
            ServerFault: If a plugin is malformed or already registered
        """
        items = plugins if isinstance(plugins, (list, tuple)) else [plugins]

        for item in items:
            plugin, plugin_options = item, options
            if isinstance(item, Mapping) and "plugin" in item:
                plugin = item["plugin"]
                plugin_options = item.get("options", options)
            await self._register_plugin(plugin, plugin_options)

    async def _register_plugin(self, plugin: Any, options: Any) -> None:
        name = _plugin_attr(plugin, "name")
        register = _plugin_attr(plugin, "register")

        if not isinstance(name, str) or not name:
            raise ServerFault("SERVER_PLUGIN_INVALID", "Plugin must have a name", plugin=repr(plugin))
        if not callable(register):
            raise ServerFault(
                "SERVER_PLUGIN_INVALID",
                f"Plugin {name} must have a register function",
                plugin=name,
            )

        if name in self._core.registrations:
            if _plugin_attr(plugin, "once"):
                logger.debug(f"Plugin '{name}' already registered, skipping")
                return
            if not _plugin_attr(plugin, "multiple"):
                raise ServerFault(
                    "SERVER_PLUGIN_DUPLICATE",
                    f"Plugin {name} already registered",
                    plugin=name,
                )

        self._core.registrations[name] = plugin

        realm = Realm(
            plugin=name,
            parent=self.realm,
            plugin_options=options if options is not None else {},
        )
        self._core.realms.append(realm)

        result = register(Server._view(self._core, realm), realm.plugin_options)
        if inspect.isawaitable(result):
            await result

        logger.info(f"Registered plugin '{name}' (parent={self.realm.plugin})")

    # ── Decorations & exposure ───────────────────────────────────────

    def decorate(self, name: str, method: Callable[..., Any]) -> None:
        """
        Add a method to every server view; it receives the view first.

        Raises:
            DecorationExistsFault: If ``name`` is already decorated
            ServerFault: If ``name`` clashes with a built-in server attribute
        """
        if name in self._core.decorations:
            raise DecorationExistsFault(name)
        if hasattr(type(self), name) or name in ("realm", "_core"):
            raise ServerFault(
                "SERVER_DECORATION_RESERVED",
                f"Cannot override built-in server interface method: {name}",
                decoration=name,
            )
        self._core.decorations[name] = method

    @property
    def decorations(self) -> List[str]:
        return list(self._core.decorations)

    def expose(self, key: str, value: Any) -> None:
        """Expose a value as ``server.plugins[<plugin name>][key]``."""
        if self.realm.plugin is None:
            raise ServerFault("SERVER_EXPOSE_ROOT", "Cannot expose values outside of a plugin")
        self._core.plugins.setdefault(self.realm.plugin, {})[key] = value

    @property
    def plugins(self) -> Dict[str, Dict[str, Any]]:
        return self._core.plugins

    @property
    def realms(self) -> List[Realm]:
        """Every realm, root first, in registration order."""
        return list(self._core.realms)

    @property
    def config(self) -> Optional[ConfigLoader]:
        return self._core.config

    # ── Context & extensions ─────────────────────────────────────────

    def bind(self, context: Any) -> None:
        """Set the context object of this view's realm."""
        self.realm.settings.bind = context

    def ext(self, point: str, callback: Callable[..., Any], bind: Any = None) -> None:
        """
        Register a lifecycle extension.

        Plain functions are bound to ``bind``, or to the realm context
        when ``bind`` is omitted.
        """
        self._core.lifecycle.add(
            point,
            callback,
            bind=bind if bind is not None else self.realm.settings.bind,
        )

    # ── Methods ──────────────────────────────────────────────────────

    def method(
        self,
        name: str,
        method: Callable[..., Any],
        *,
        bind: Any = None,
        generate_key: Optional[Callable[..., Any]] = None,
        cache: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Register a server method (see ``ServerMethods.add``)."""
        self._core.methods.add(
            name,
            method,
            bind=bind,
            generate_key=generate_key,
            cache=cache,
        )

    @property
    def methods(self) -> ServerMethods:
        return self._core.methods

    @property
    def cache(self) -> CacheService:
        return self._core.cache

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def phase(self) -> LifecyclePhase:
        return self._core.phase

    async def initialize(self) -> None:
        """
        Start the cache and run ``on_pre_start`` extensions.

        Calling it again once initialized (or started) does nothing.
        """
        core = self._core
        if core.phase in (LifecyclePhase.INITIALIZED, LifecyclePhase.STARTED):
            return
        if core.phase is LifecyclePhase.STOPPING:
            raise LifecycleFault(
                "LIFECYCLE_INVALID_PHASE",
                "Cannot initialize server while it is stopping",
                phase=core.phase.value,
            )

        await core.cache.initialize()
        try:
            await core.lifecycle.run("on_pre_start")
        except Exception:
            await core.cache.shutdown()
            raise

        core.phase = LifecyclePhase.INITIALIZED
        logger.info(f"Server initialized ({len(core.realms)} realms)")

    async def start(self) -> None:
        """Initialize if needed, then run ``on_post_start`` extensions."""
        core = self._core
        if core.phase is LifecyclePhase.STARTED:
            return

        await self.initialize()
        await core.lifecycle.run("on_post_start")

        core.phase = LifecyclePhase.STARTED
        logger.info("Server started")

    async def stop(self) -> None:
        """
        Run ``on_pre_stop``, stop the cache, then run ``on_post_stop``.

        Stop-side extension failures are logged, never raised.
        """
        core = self._core
        if core.phase in (LifecyclePhase.INIT, LifecyclePhase.STOPPED, LifecyclePhase.STOPPING):
            return

        core.phase = LifecyclePhase.STOPPING
        await core.lifecycle.run("on_pre_stop")
        await core.cache.shutdown()
        await core.lifecycle.run("on_post_stop")

        core.phase = LifecyclePhase.STOPPED
        logger.info("Server stopped")


def _plugin_attr(plugin: Any, attr: str) -> Any:
    if isinstance(plugin, Mapping):
        return plugin.get(attr)
    return getattr(plugin, attr, None)
