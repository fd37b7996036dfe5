"""
Aerie cache - Server method table.

Named, optionally memoized functions shared by every view of a server::

    server.method("sum", add, cache={"expires_in": 60})
    await server.methods["sum"](1, 2)
    await server.methods.drop("sum", 1, 2)       # forget one result
    await server.methods.clear("sum")            # forget them all

Memoization only happens once the backing CacheService is initialized;
before that, method calls go straight to the function.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
import types
from typing import Any, Callable, Dict, Iterator, Mapping, Optional

from .core import CachePolicy
from .faults import (
    DuplicateMethodFault,
    GenerateTimeoutFault,
    MethodKeyFault,
    UnknownMethodFault,
)
from .key_builder import DefaultKeyBuilder
from .service import CacheService

logger = logging.getLogger("aerie.cache.methods")


class ServerMethods:
    """
    Registry of server methods backed by a CacheService.

    Each added method is stored as a coroutine function wrapper; callers
    always ``await`` it, whether or not the underlying function is async.
    """

    def __init__(self, cache: CacheService):
        self._cache = cache
        self._methods: Dict[str, Callable[..., Any]] = {}
        self._key_generators: Dict[str, Optional[Callable[..., Any]]] = {}
        self._key_builder = DefaultKeyBuilder()

    @property
    def cache(self) -> CacheService:
        return self._cache

    def add(
        self,
        name: str,
        method: Callable[..., Any],
        *,
        bind: Any = None,
        generate_key: Optional[Callable[..., Any]] = None,
        cache: Optional[Mapping[str, Any]] = None,
    ) -> Callable[..., Any]:
        """
        Register a server method.

        Args:
            name: Unique method name (dotted names are allowed)
            method: Sync or async callable
            bind: Object a plain function is bound to (becomes ``self``)
            generate_key: Custom key function, called with the method's arguments
            cache: Cache policy options (``expires_in``, ``generate_timeout``)

        Returns:
            The wrapper stored under ``name``

        Raises:
            DuplicateMethodFault: If ``name`` is already registered
            CacheConfigFault: If the cache policy is invalid
        """
        if name in self._methods:
            raise DuplicateMethodFault(name)

        if bind is not None and isinstance(method, types.FunctionType):
            method = types.MethodType(method, bind)

        policy = CachePolicy.from_options(cache) if cache else None
        wrapper = self._wrap(name, method, policy, generate_key)

        self._methods[name] = wrapper
        self._key_generators[name] = generate_key
        logger.debug(f"Registered server method '{name}' (cached={policy is not None})")
        return wrapper

    def _wrap(
        self,
        name: str,
        method: Callable[..., Any],
        policy: Optional[CachePolicy],
        generate_key: Optional[Callable[..., Any]],
    ) -> Callable[..., Any]:
        cache = self._cache

        @functools.wraps(method)
        async def call(*args: Any, **kwargs: Any) -> Any:
            if policy is None or not cache.initialized:
                return await _invoke(method, args, kwargs)

            key = self._key(name, generate_key, args, kwargs)
            load = cache.get_or_set(
                key,
                loader=lambda: _invoke(method, args, kwargs),
                ttl=policy.expires_in or 0,
                namespace=name,
            )
            if not policy.generate_timeout:
                return await load

            task = asyncio.ensure_future(load)
            try:
                return await asyncio.wait_for(
                    asyncio.shield(task),
                    timeout=policy.generate_timeout,
                )
            except asyncio.TimeoutError:
                # Generation keeps running and still fills the cache
                task.add_done_callback(_consume)
                raise GenerateTimeoutFault(name, policy.generate_timeout) from None

        return call

    def _key(
        self,
        name: str,
        generate_key: Optional[Callable[..., Any]],
        args: tuple,
        kwargs: Dict[str, Any],
    ) -> str:
        if generate_key is None:
            return self._key_builder.from_args(name, args, kwargs)

        key = generate_key(*args, **kwargs)
        if not isinstance(key, str):
            raise MethodKeyFault(name, "generate_key must return a string")
        return key

    async def drop(self, name: str, *args: Any, **kwargs: Any) -> bool:
        """
        Forget the cached result of one call of method ``name``.

        Returns:
            True if a cached value was removed

        Raises:
            UnknownMethodFault: If ``name`` is not registered
        """
        if name not in self._methods:
            raise UnknownMethodFault(name)
        key = self._key(name, self._key_generators[name], args, kwargs)
        return await self._cache.delete(key, namespace=name)

    async def clear(self, name: str) -> int:
        """Forget every cached result of method ``name``."""
        if name not in self._methods:
            raise UnknownMethodFault(name)
        count = await self._cache.clear(namespace=name)
        logger.debug(f"Cleared {count} cached results of server method '{name}'")
        return count

    def __getitem__(self, name: str) -> Callable[..., Any]:
        try:
            return self._methods[name]
        except KeyError:
            raise UnknownMethodFault(name) from None

    def __contains__(self, name: object) -> bool:
        return name in self._methods

    def __iter__(self) -> Iterator[str]:
        return iter(self._methods)

    def __len__(self) -> int:
        return len(self._methods)

    def names(self) -> list[str]:
        return sorted(self._methods)


async def _invoke(method: Callable[..., Any], args: tuple, kwargs: Dict[str, Any]) -> Any:
    result = method(*args, **kwargs)
    if inspect.isawaitable(result):
        return await result
    return result


def _consume(task: asyncio.Future) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.warning(
            "Timed out server method generation failed",
            exc_info=task.exception(),
        )
