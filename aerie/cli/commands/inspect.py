"""Inspection commands - load a server and show its realms, services and config."""

import asyncio
import importlib
import inspect
import sys
from pathlib import Path
from typing import Any, Optional

import click

from aerie.config import ConfigLoader
from aerie.server import Realm, Server
from aerie.services.registry import iter_services

from ..utils.colors import _CHECK, bold, dim, info, kv, section, success, tree_item


def load_server(target: str) -> Server:
    """
    Import ``module:attr`` and return the server it names.

    ``attr`` may be a Server, or a sync/async callable returning one.
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Invalid target '{target}' (expected MODULE:ATTR)")

    cwd = str(Path.cwd())
    if cwd not in sys.path:
        sys.path.insert(0, cwd)

    module = importlib.import_module(module_name)
    try:
        obj = getattr(module, attr)
    except AttributeError:
        raise ValueError(f"Module '{module_name}' has no attribute '{attr}'") from None

    if callable(obj) and not isinstance(obj, Server):
        obj = obj()
        if inspect.isawaitable(obj):
            obj = asyncio.run(_await(obj))

    if not isinstance(obj, Server):
        raise ValueError(f"'{target}' is not a Server (got {type(obj).__name__})")
    return obj


async def _await(awaitable: Any) -> Any:
    return await awaitable


def _depth(realm: Realm) -> int:
    depth = 0
    while realm.parent is not None:
        depth += 1
        realm = realm.parent
    return depth


def inspect_services(target: str, scoped: bool = False, verbose: bool = False) -> None:
    """Show every realm of the server and the services visible from it."""
    server = load_server(target)

    if scoped:
        section("Services (root-wide)")
        keys = iter_services(server.realm, scoped=True)
        for i, key in enumerate(keys):
            tree_item(key, last=i == len(keys) - 1)
        if not keys:
            dim("  (no services)")
        return

    section("Realms")
    for realm in server.realms:
        depth = _depth(realm)
        label = realm.plugin if realm.plugin is not None else "(root)"
        info(f"{'    ' * depth}{bold(label)}")

        keys = iter_services(realm)
        for i, key in enumerate(keys):
            tree_item(key, last=i == len(keys) - 1, depth=depth)

    click.echo()
    total = len(iter_services(server.realm))
    success(f"  {_CHECK} {len(server.realms)} realms, {total} root-visible services")

    if verbose:
        click.echo()
        section("Server methods")
        for name in server.methods.names():
            tree_item(name)

        click.echo()
        section("Cache")
        stats = asyncio.run(server.cache.stats())
        for key, value in stats.to_dict().items():
            kv(key, value, key_width=22)


def inspect_config(env_file: Optional[str] = None, env_prefix: str = "AERIE_") -> None:
    """Show the resolved cache configuration."""
    config = ConfigLoader.load(env_prefix=env_prefix, env_file=env_file)
    cache_config = config.get_cache_config()

    section("Cache configuration")
    for key, value in cache_config.to_dict().items():
        kv(key, value, key_width=22)
