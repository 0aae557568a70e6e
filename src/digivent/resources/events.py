from __future__ import annotations

from typing import Any

from loguru import logger

from ..constants import EVENTS
from ..domain.models import Event, Identity
from ..results import Result, validation_failure
from .base import ResourceStore, unique

_SET_FIELDS = ("tags", "requirements", "target_audience", "learning_objectives", "amenities")


def _dedupe(payload: dict[str, Any]) -> dict[str, Any]:
    for key in _SET_FIELDS:
        if key in payload:
            payload[key] = unique(payload[key] or [])
    return payload


class EventStore(ResourceStore[Event]):
    """Events shared by every identity; the public listing works signed out."""

    entity = EVENTS
    entity_cls = Event
    FILTERS = frozenset({"is_public", "category", "status", "organizer_id", "tags"})

    def _prepare_create(self, payload: dict[str, Any], identity: Identity) -> dict[str, Any]:
        # Registrations are only counted through register().
        payload["registered_count"] = 0
        return _dedupe(payload)

    def _prepare_update(self, current: Event, patch: dict[str, Any]) -> dict[str, Any]:
        capacity = patch.get("capacity", current.capacity)
        registered = patch.get("registered_count", current.registered_count)
        if isinstance(capacity, int) and isinstance(registered, int) and 0 < capacity < registered:
            raise validation_failure(f"Capacity {capacity} is below the {registered} registrations")
        return _dedupe(patch)

    async def register(self, event_id: str) -> Result[Event]:
        """Count one registration for the acting identity.

        Refused for events that are not open (draft, completed, cancelled)
        or already at capacity.
        """

        def _patch(current: Event) -> dict[str, Any]:
            if not current.status.accepts_registrations:
                raise validation_failure(f"Event {event_id} is {current.status.value}; registration is closed")
            if current.is_full:
                raise validation_failure(f"Event {event_id} is full")
            return {"registered_count": current.registered_count + 1}

        result = await self.update_with(event_id, _patch)
        if result.ok:
            logger.info("Registered for event {} ({} registered)", event_id, result.value.registered_count)
        return result
