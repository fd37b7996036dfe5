"""
Tests for lifecycle extension points.
"""

import logging

import pytest

from aerie.lifecycle import (
    ExtensionPoint,
    Lifecycle,
    LifecycleFault,
    LifecycleHook,
)


class TestLifecycleRegistration:

    def test_unknown_point(self):
        with pytest.raises(LifecycleFault) as exc_info:
            Lifecycle().add("on_boot", lambda: None)
        assert exc_info.value.code == "LIFECYCLE_UNKNOWN_POINT"
        assert exc_info.value.metadata == {"point": "on_boot"}

    def test_accepts_enum_and_string(self):
        lifecycle = Lifecycle()
        lifecycle.add(ExtensionPoint.ON_PRE_START, lambda: None)
        lifecycle.add("on_pre_start", lambda: None)
        assert len(lifecycle.hooks("on_pre_start")) == 2

    def test_hook_name_defaults_to_qualname(self):
        def warm_up():
            pass

        hook = Lifecycle().add("on_post_start", warm_up)
        assert isinstance(hook, LifecycleHook)
        assert hook.name.endswith("warm_up")

    def test_priority_order(self):
        lifecycle = Lifecycle()
        lifecycle.add("on_pre_start", lambda: None, name="low")
        lifecycle.add("on_pre_start", lambda: None, name="high", priority=10)
        lifecycle.add("on_pre_start", lambda: None, name="low-2")

        assert [h.name for h in lifecycle.hooks("on_pre_start")] == ["high", "low", "low-2"]


class TestLifecycleRun:

    @pytest.mark.asyncio
    async def test_sync_and_async_hooks(self):
        events = []

        async def later():
            events.append("async")

        lifecycle = Lifecycle()
        lifecycle.add("on_pre_start", lambda: events.append("sync"))
        lifecycle.add("on_pre_start", later)
        await lifecycle.run("on_pre_start")

        assert events == ["sync", "async"]

    @pytest.mark.asyncio
    async def test_bind(self):
        class Store:
            ready = False

        def mark_ready(self):
            self.ready = True

        store = Store()
        lifecycle = Lifecycle()
        lifecycle.add("on_pre_start", mark_ready, bind=store)
        await lifecycle.run("on_pre_start")

        assert store.ready is True

    @pytest.mark.asyncio
    async def test_start_points_fail_fast(self):
        events = []

        def broken():
            raise RuntimeError("boom")

        lifecycle = Lifecycle()
        lifecycle.add("on_pre_start", broken)
        lifecycle.add("on_pre_start", lambda: events.append("after"))

        with pytest.raises(RuntimeError, match="boom"):
            await lifecycle.run("on_pre_start")
        assert events == []

    @pytest.mark.asyncio
    async def test_stop_points_run_every_hook(self, caplog):
        events = []

        def broken():
            raise RuntimeError("boom")

        lifecycle = Lifecycle()
        lifecycle.add("on_post_stop", broken, name="broken")
        lifecycle.add("on_post_stop", lambda: events.append("after"))

        with caplog.at_level(logging.ERROR, logger="aerie.lifecycle"):
            await lifecycle.run("on_post_stop")

        assert events == ["after"]
        assert "Lifecycle hook 'broken' failed during on_post_stop" in caplog.text
