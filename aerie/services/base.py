"""
Service base class.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Mapping, Optional

from .binding import BoundInstance, bind_instance
from .caching import configure_caching


class Service:
    """
    Base class for registry services.

    Construction hooks the instance into its server:

    - an ``initialize()`` method runs once before the server starts
    - a ``teardown()`` method runs once after the server stops
    - a class-level ``caching`` mapping is applied with
      :meth:`configure_caching`

    Usage::

        class UserStore(Service):
            caching = {"find": {"expires_in": 60, "generate_timeout": 2}}

            async def initialize(self):
                self.db = await connect(self.options["dsn"])

            async def find(self, user_id):
                return await self.db.fetch_user(user_id)

        server.register_service(UserStore)
    """

    caching: ClassVar[Optional[Dict[str, Any]]] = None

    def __init__(self, server: Any, options: Any):
        self.server = server
        self.options = options

        initialize = getattr(self, "initialize", None)
        if callable(initialize):
            self.server.ext("on_pre_start", initialize, bind=self)

        teardown = getattr(self, "teardown", None)
        if callable(teardown):
            self.server.ext("on_post_stop", teardown, bind=self)

        if type(self).caching is not None:
            self.configure_caching(type(self).caching)

    @property
    def context(self) -> Any:
        """Context object bound to the server's realm, or None."""
        return self.server.realm.settings.bind

    def configure_caching(self, options: Mapping[str, Any]) -> None:
        """Memoize methods of this instance; allowed once per instance."""
        configure_caching(self, options)

    def bind(self) -> BoundInstance:
        """Proxy with this instance's methods pre-bound (cached)."""
        return bind_instance(self)
