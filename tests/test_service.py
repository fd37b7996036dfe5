"""
Tests for the Service base class and per-method caching.
"""

import asyncio

import pytest

from aerie.cache.faults import DuplicateMethodFault, GenerateTimeoutFault
from aerie.server import Server
from aerie.services.base import Service
from aerie.services.binding import BOUND_INSTANCE_ATTR
from aerie.services.caching import (
    CACHING_FLAG,
    configure_caching,
    method_address,
    split_method_config,
)
from aerie.services.faults import AlreadyConfiguredError, MissingIdentityError


class Adder(Service):

    def add(self, a, b):
        self.called = getattr(self, "called", 0) + 1
        return a + b


ADD_POLICY = {"add": {"expires_in": 2, "generate_timeout": False}}


async def exercise_add_caching(server, service):
    """Calls go through the wrapper; memoization starts with initialize()."""
    assert "add" in vars(service)
    assert await service.add(1, 2) == 3
    assert service.called == 1
    assert await service.add(1, 2) == 3
    assert service.called == 2

    await server.initialize()

    assert await service.add(1, 2) == 3
    assert service.called == 3
    assert await service.add(1, 2) == 3
    assert service.called == 3
    assert await service.add(2, 3) == 5
    assert service.called == 4
    assert await service.add(2, 3) == 5
    assert service.called == 4


# ============================================================================
# Construction & context
# ============================================================================


class TestServiceBasics:

    def test_sets_server_and_options(self):
        server = Server()
        service = Service(server, {"some": "option"})
        assert service.server is server
        assert service.options == {"some": "option"}

    def test_context_follows_server_bind(self):
        server = Server()
        service = Service(server, {})
        assert service.context is None

        ctx = {}
        server.bind(ctx)
        assert service.context is ctx

    def test_bind_uses_context(self):
        class ServiceX(Service):
            def org(self):
                return self.context["org"]

        server = Server()
        server.bind({"org": "aerie"})
        org = ServiceX(server, {}).bind().org
        assert org() == "aerie"

    def test_bind_is_lazy_and_cached(self):
        calls = {"init": 0, "getter": 0}

        class ServiceX(Service):
            def __init__(self, *args):
                super().__init__(*args)
                calls["init"] += 1

            @property
            def some_prop(self):
                calls["getter"] += 1
                return "value"

        service = ServiceX(Server(), {})
        assert BOUND_INSTANCE_ATTR not in vars(service)

        bound = service.bind()
        assert calls == {"init": 1, "getter": 0}
        assert vars(service)[BOUND_INSTANCE_ATTR] is bound
        assert service.bind() is bound

    def test_bind_up_the_class_chain(self):
        class ServiceX(Service):
            def __init__(self, *args):
                super().__init__(*args)
                self.a = "a"

            def get_b(self):
                return self.b

        class ServiceXX(ServiceX):
            def __init__(self, *args):
                super().__init__(*args)
                self.b = "b"

            def get_a(self):
                return self.a

        server = Server()
        server.bind({"org": "aerie"})
        service = ServiceXX(server, {})

        bound = service.bind()
        get_a, get_b = bound.get_a, bound.get_b
        assert bound.context == {"org": "aerie"}
        assert (bound.a, bound.b) == ("a", "b")
        assert (get_a(), get_b()) == ("a", "b")

        rebound = bound.bind()
        assert rebound is bound
        assert rebound.get_a() == "a"


# ============================================================================
# Lifecycle hooks
# ============================================================================


class TestServiceLifecycle:

    @pytest.mark.asyncio
    async def test_initialize_and_teardown(self):
        class ServiceX(Service):
            def __init__(self, server, options):
                super().__init__(server, options)
                self.initialized = False
                self.torn_down = False

            async def initialize(self):
                self.initialized = True
                await asyncio.sleep(0)

            async def teardown(self):
                self.torn_down = True
                await asyncio.sleep(0)

        server = Server()
        service = ServiceX(server, {})
        assert (service.initialized, service.torn_down) == (False, False)

        await server.initialize()
        assert (service.initialized, service.torn_down) == (True, False)

        seen = []
        server.ext("on_pre_stop", lambda: seen.append((service.initialized, service.torn_down)))

        await server.stop()
        assert seen == [(True, False)]
        assert (service.initialized, service.torn_down) == (True, True)

    @pytest.mark.asyncio
    async def test_sync_hooks(self):
        events = []

        class ServiceX(Service):
            def initialize(self):
                events.append(("initialize", self))

            def teardown(self):
                events.append(("teardown", self))

        server = Server()
        service = ServiceX(server, {})
        await server.start()
        await server.stop()

        assert events == [("initialize", service), ("teardown", service)]

    @pytest.mark.asyncio
    async def test_hooks_run_once_per_cycle(self):
        class ServiceX(Service):
            count = 0

            def initialize(self):
                type(self).count += 1

        server = Server()
        ServiceX(server, {})
        await server.initialize()
        await server.initialize()
        await server.start()

        assert ServiceX.count == 1

    @pytest.mark.asyncio
    async def test_registered_service_hooks(self, make_server):
        class UserStore(Service):
            ready = False

            async def initialize(self):
                self.ready = True

        server = await make_server()
        server.register_service(UserStore)
        await server.initialize()

        assert server.services()["userStore"].ready is True


# ============================================================================
# Caching
# ============================================================================


class TestServiceCaching:

    @pytest.mark.asyncio
    async def test_via_class_caching(self):
        class ServiceX(Adder):
            caching = ADD_POLICY

        server = Server()
        await exercise_add_caching(server, ServiceX(server, {}))

    @pytest.mark.asyncio
    async def test_via_configure_caching(self):
        class ServiceX(Adder):
            def __init__(self, server, options):
                super().__init__(server, options)
                self.configure_caching(ADD_POLICY)

        server = Server()
        await exercise_add_caching(server, ServiceX(server, {}))

    @pytest.mark.asyncio
    async def test_via_bound_configure_caching(self):
        class ServiceX(Adder):
            pass

        server = Server()
        service = ServiceX(server, {})
        configure = service.bind().configure_caching
        configure(ADD_POLICY)

        await exercise_add_caching(server, service)

    def test_only_once(self):
        class ServiceX(Adder):
            caching = ADD_POLICY

            def __init__(self, server, options):
                super().__init__(server, options)
                self.configure_caching(ADD_POLICY)

        with pytest.raises(AlreadyConfiguredError, match="Caching config can only be specified once"):
            ServiceX(Server(), {})

    def test_only_once_even_when_empty(self):
        service = Adder(Server(), {})
        service.configure_caching({})
        assert vars(service)[CACHING_FLAG] is True

        with pytest.raises(AlreadyConfiguredError):
            service.configure_caching({})

    def test_empty_class_declaration_counts(self):
        class Empty(Adder):
            caching = {}

        service = Empty(Server(), {})
        assert vars(service)[CACHING_FLAG] is True

        with pytest.raises(AlreadyConfiguredError):
            service.configure_caching({})

    @pytest.mark.asyncio
    async def test_keyword_calls_on_cached_methods(self):
        class Finder(Service):
            caching = {"find": {"expires_in": 60}}

            def find(self, user_id, deleted=False):
                self.called = getattr(self, "called", 0) + 1
                return (user_id, deleted)

        server = Server()
        service = Finder(server, {})
        await server.initialize()

        assert await service.find(user_id=1) == (1, False)
        assert await service.find(user_id=1) == (1, False)
        assert await service.find(1, deleted=True) == (1, True)
        assert service.called == 2

    def test_requires_a_class_name(self):
        Nameless = type("---", (Adder,), {})
        with pytest.raises(MissingIdentityError):
            Nameless(Server(), {}).configure_caching(ADD_POLICY)

    def test_registers_server_method(self):
        server = Server()
        service = Adder(server, {})
        service.configure_caching(ADD_POLICY)

        address = method_address("adder", "add")
        assert address == "services.adder.add"
        assert address in server.methods
        assert service.add is server.methods[address]

    def test_same_identity_twice_is_rejected(self):
        server = Server()
        Adder(server, {}).configure_caching(ADD_POLICY)

        with pytest.raises(DuplicateMethodFault):
            Adder(server, {}).configure_caching(ADD_POLICY)

    @pytest.mark.asyncio
    async def test_cache_and_generate_key_form(self):
        class ServiceX(Service):
            caching = {
                "add": {
                    "cache": {"expires_in": 0.1, "generate_timeout": 0.02},
                    # Addition is commutative
                    "generate_key": lambda a, b, fail=False: f"{min(a, b)}:{max(a, b)}",
                },
            }

            async def add(self, a, b, fail=False):
                self.called = getattr(self, "called", 0) + 1
                if fail:
                    await asyncio.sleep(0.1)
                return a + b

        server = Server()
        service = ServiceX(server, {})
        await server.initialize()
        assert not hasattr(service, "called")

        await service.add(1, 2)
        assert service.called == 1
        await service.add(2, 1)
        assert service.called == 1
        await service.add(1, 3)
        assert service.called == 2

        with pytest.raises(GenerateTimeoutFault, match="Service Unavailable"):
            await service.add(1, 4, True)

        await asyncio.sleep(0.15)
        await server.stop()

    @pytest.mark.asyncio
    async def test_flat_cache_form(self):
        class ServiceX(Service):
            caching = {"add": {"generate_timeout": 0.02}}

            async def add(self, a, b):
                await asyncio.sleep(0.1)
                return a + b

        server = Server()
        service = ServiceX(server, {})
        await server.initialize()

        with pytest.raises(GenerateTimeoutFault, match="Service Unavailable"):
            await service.add(1, 2)

        await asyncio.sleep(0.15)
        await server.stop()


class TestConfigureCaching:

    def test_split_flat_policy(self):
        assert split_method_config({"expires_in": 5}) == ({"expires_in": 5}, None)

    def test_split_cache_and_generate_key(self):
        key = lambda *args: "k"  # noqa: E731
        policy, generate_key = split_method_config({"cache": {"expires_in": 5}, "generate_key": key})
        assert policy == {"expires_in": 5}
        assert generate_key is key

    def test_split_strips_generate_key_from_flat_policy(self):
        key = lambda *args: "k"  # noqa: E731
        policy, generate_key = split_method_config({"expires_in": 5, "generate_key": key})
        assert policy == {"expires_in": 5}
        assert generate_key is key

    @pytest.mark.asyncio
    async def test_plain_object_with_explicit_server(self):
        class Calculator:
            def double(self, x):
                return x * 2

        server = Server()
        calc = Calculator()
        configure_caching(calc, {"double": {"expires_in": 1}}, server=server)

        assert "services.calculator.double" in server.methods
        assert await calc.double(4) == 8
