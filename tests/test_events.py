"""Tests for the event store and registrations."""

from __future__ import annotations

import pytest

from digivent.context import AppContext
from digivent.domain.models import EventStatus
from digivent.results import ErrorKind
from digivent.seeds import FOOD_DRIVE, TECHFEST, WORKSHOPS
from digivent.storage import MemoryDurableStore, storage_key

from fakes import FakeBackendClient, FlakyDurableStore, local_context, make_config

EVENTS_KEY = storage_key("events")
TS = "2025-01-01T00:00:00+00:00"


@pytest.mark.anyio
class TestEventListing:
    async def test_public_listing_signed_out(self) -> None:
        ctx = await local_context(None)
        result = await ctx.events.list(is_public=True)
        assert [e.id for e in result.value] == [TECHFEST, FOOD_DRIVE, WORKSHOPS]
        techfest = result.value[0]
        assert techfest.status == EventStatus.PUBLISHED
        assert techfest.budget_total == 50000
        assert techfest.amenities == ["WiFi", "Refreshments", "Parking"]
        await ctx.dispose()

    async def test_filters(self) -> None:
        ctx = await local_context()
        education = await ctx.events.list(category="Education")
        assert [e.id for e in education.value] == [WORKSHOPS]
        mine = await ctx.events.list(organizer_id="demo-organizer-2")
        assert [e.id for e in mine.value] == [FOOD_DRIVE]
        tagged = await ctx.events.list(tags="food")
        assert [e.id for e in tagged.value] == [FOOD_DRIVE]
        drafts = await ctx.events.list(status="draft")
        assert drafts.value == []
        await ctx.dispose()

    async def test_unknown_filter(self) -> None:
        ctx = await local_context()
        result = await ctx.events.list(event_id=TECHFEST)
        assert result.kind == ErrorKind.VALIDATION_FAILURE
        await ctx.dispose()


@pytest.mark.anyio
class TestEventCreate:
    async def test_create_stamps_organizer(self) -> None:
        durable = MemoryDurableStore()
        ctx = await local_context("organizer@demo.com", durable=durable)
        result = await ctx.events.create(
            {
                "title": "Beach Cleanup",
                "start_date": "2025-09-01T08:00:00Z",
                "end_date": "2025-09-01T12:00:00Z",
                "capacity": 40,
                "registered_count": 12,
                "organizer_id": "someone-else",
                "tags": ["outdoor", "outdoor"],
                "budget_total": 2000,
            }
        )
        event = result.value
        assert event.id.startswith("evt-")
        assert event.organizer_id == "demo-organizer"
        assert event.registered_count == 0
        assert event.status == EventStatus.DRAFT
        assert event.is_public is False
        assert event.tags == ["outdoor"]
        assert durable.read(EVENTS_KEY)[0]["id"] == event.id
        await ctx.dispose()

    async def test_end_before_start_rejected(self) -> None:
        ctx = await local_context("organizer@demo.com")
        result = await ctx.events.create(
            {"title": "Backwards", "start_date": "2025-09-02T08:00:00Z", "end_date": "2025-09-01T08:00:00Z"}
        )
        assert result.kind == ErrorKind.VALIDATION_FAILURE
        assert "end_date" in result.error.message
        await ctx.dispose()

    async def test_negative_budget_rejected(self) -> None:
        ctx = await local_context("organizer@demo.com")
        result = await ctx.events.create({"title": "Overdrawn", "budget_total": -1})
        assert result.kind == ErrorKind.VALIDATION_FAILURE
        await ctx.dispose()

    async def test_capacity_below_registrations_rejected(self) -> None:
        ctx = await local_context("organizer@demo.com")
        result = await ctx.events.update(WORKSHOPS, {"capacity": 10})
        assert result.kind == ErrorKind.VALIDATION_FAILURE
        assert (await ctx.events.update(WORKSHOPS, {"capacity": 0})).ok
        await ctx.dispose()

    async def test_delete(self) -> None:
        durable = MemoryDurableStore()
        ctx = await local_context("admin@demo.com", durable=durable)
        await ctx.events.list()
        assert (await ctx.events.delete(WORKSHOPS)).ok
        assert ctx.events.get_cached(WORKSHOPS) is None
        assert WORKSHOPS not in {row["id"] for row in durable.read(EVENTS_KEY)}
        await ctx.dispose()


@pytest.mark.anyio
class TestRegister:
    async def test_register_counts(self) -> None:
        durable = MemoryDurableStore()
        ctx = await local_context("volunteer@demo.com", durable=durable)
        await ctx.events.list()
        result = await ctx.events.register(TECHFEST)
        assert result.value.registered_count == 235
        assert ctx.events.get_cached(TECHFEST).registered_count == 235
        row = next(r for r in durable.read(EVENTS_KEY) if r["id"] == TECHFEST)
        assert row["registered_count"] == 235
        await ctx.dispose()

    async def test_full_event_refused(self) -> None:
        ctx = await local_context("organizer@demo.com")
        assert (await ctx.events.update(WORKSHOPS, {"capacity": 45})).ok
        result = await ctx.events.register(WORKSHOPS)
        assert result.kind == ErrorKind.VALIDATION_FAILURE
        assert "full" in result.error.message
        await ctx.dispose()

    async def test_closed_event_refused(self) -> None:
        ctx = await local_context("organizer@demo.com")
        draft = await ctx.events.create({"title": "Planning only"})
        assert (await ctx.events.register(draft.value.id)).kind == ErrorKind.VALIDATION_FAILURE
        await ctx.events.update(FOOD_DRIVE, {"status": "cancelled"})
        assert (await ctx.events.register(FOOD_DRIVE)).kind == ErrorKind.VALIDATION_FAILURE
        await ctx.dispose()

    async def test_requires_identity_and_event(self) -> None:
        ctx = await local_context(None)
        assert (await ctx.events.register(TECHFEST)).kind == ErrorKind.NOT_AUTHENTICATED
        await ctx.session.sign_in("volunteer@demo.com", "pw")
        assert (await ctx.events.register("no-such-event")).kind == ErrorKind.NOT_FOUND
        await ctx.dispose()

    async def test_write_failure_restores_count(self) -> None:
        durable = FlakyDurableStore()
        ctx = await local_context("volunteer@demo.com", durable=durable)
        await ctx.events.list()
        durable.fail_writes = True
        result = await ctx.events.register(TECHFEST)
        assert result.kind == ErrorKind.STORAGE_FAILURE
        assert ctx.events.get_cached(TECHFEST).registered_count == 234
        await ctx.dispose()


@pytest.mark.anyio
class TestRemoteEvents:
    async def test_remote_listing_and_register(self) -> None:
        client = FakeBackendClient()
        client.add_user("vol@example.org", "pw", "u-vol")
        client.tables["events"] = [
            {
                "id": "evt-remote",
                "title": "River Walk",
                "status": "published",
                "is_public": True,
                "capacity": 10,
                "registered_count": 3,
                "created_at": TS,
                "updated_at": TS,
            }
        ]
        ctx = AppContext(make_config(backend_url="https://backend.test"), client=client, durable=MemoryDurableStore())
        await ctx.init()
        listed = await ctx.events.list(is_public=True)
        assert [e.id for e in listed.value] == ["evt-remote"]
        await ctx.session.sign_in("vol@example.org", "pw")
        await ctx.settle()
        result = await ctx.events.register("evt-remote")
        assert result.value.registered_count == 4
        assert client.tables["events"][0]["registered_count"] == 4
        await ctx.dispose()
