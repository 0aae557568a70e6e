"""Tests for AppContext wiring and lifecycle."""

from __future__ import annotations

from pathlib import Path

import pytest

from digivent import AppContext
from digivent.backends import LocalResourceBackend, RemoteResourceBackend
from digivent.config import load_app_config
from digivent.seeds import TECHFEST
from digivent.storage import FileDurableStore, MemoryDurableStore

from fakes import FakeBackendClient, make_config


@pytest.mark.anyio
class TestAppContext:
    async def test_local_by_default(self) -> None:
        ctx = AppContext(make_config(), durable=MemoryDurableStore())
        assert ctx.mode == "local"
        assert isinstance(ctx.backend, LocalResourceBackend)
        await ctx.init()
        assert not ctx.session.state.is_authenticated
        assert ctx.notifications.items == []
        await ctx.dispose()

    async def test_url_without_client_falls_back_to_local(self) -> None:
        ctx = AppContext(make_config(backend_url="https://backend.test"), durable=MemoryDurableStore())
        assert ctx.mode == "local"
        await ctx.dispose()

    async def test_remote_with_client(self) -> None:
        ctx = AppContext(make_config(backend_url="https://backend.test"), client=FakeBackendClient(), durable=MemoryDurableStore())
        assert ctx.mode == "remote"
        assert isinstance(ctx.backend, RemoteResourceBackend)
        assert (await ctx.expenses.budget_for(TECHFEST)).value == 0.0
        await ctx.init()
        await ctx.dispose()

    async def test_async_context_manager(self) -> None:
        durable = MemoryDurableStore()
        async with AppContext(make_config(), durable=durable) as ctx:
            await ctx.session.sign_in("volunteer@demo.com", "pw")
            await ctx.settle()
            assert ctx.notifications.unread_count == 2
            board = ctx.board
            assert ctx.board is board
        assert ctx.session.state.is_authenticated

    async def test_contexts_are_independent(self) -> None:
        first = AppContext(make_config(), durable=MemoryDurableStore())
        second = AppContext(make_config(), durable=MemoryDurableStore())
        await first.init()
        await second.init()
        await first.session.sign_in("admin@demo.com", "pw")
        await first.settle()
        assert first.session.state.is_authenticated
        assert not second.session.state.is_authenticated
        await first.tasks.create({"title": "Only in first"})
        assert len((await second.tasks.list()).value) == 7
        await first.dispose()
        await second.dispose()

    async def test_notifications_follow_identity(self) -> None:
        ctx = AppContext(make_config(), durable=MemoryDurableStore())
        await ctx.init()
        await ctx.session.sign_in("organizer@demo.com", "pw")
        await ctx.settle()
        assert {n.user_id for n in ctx.notifications.items} == {"demo-organizer"}
        await ctx.session.sign_out()
        assert ctx.notifications.items == []
        await ctx.dispose()

    async def test_restored_session_loads_notifications(self) -> None:
        durable = MemoryDurableStore()
        ctx = AppContext(make_config(), durable=durable)
        await ctx.init()
        await ctx.session.sign_in("admin@demo.com", "pw")
        await ctx.dispose()

        again = AppContext(make_config(), durable=durable)
        await again.init()
        assert again.notifications.unread_count == 2
        await again.dispose()

    async def test_file_backed_context(self, tmp_path: Path) -> None:
        config = load_app_config(tmp_path / ".digivent", env={})
        ctx = AppContext(config)
        assert isinstance(ctx.durable, FileDurableStore)
        await ctx.init()
        await ctx.session.sign_in("organizer@demo.com", "pw")
        created = await ctx.tasks.create({"title": "Persist me"})
        await ctx.dispose()

        again = AppContext(load_app_config(tmp_path / ".digivent", env={}))
        await again.init()
        assert again.session.identity.id == "demo-organizer"
        listed = await again.tasks.list()
        assert listed.value[0].id == created.value.id
        assert (tmp_path / ".digivent" / "store" / "digivent__tasks.yaml").exists()
        await again.dispose()

    async def test_dispose_detaches_listeners(self) -> None:
        ctx = AppContext(make_config(), durable=MemoryDurableStore())
        await ctx.init()
        seen = []
        ctx.tasks.subscribe(seen.append)
        await ctx.dispose()
        await ctx.tasks.list()
        assert seen == []
