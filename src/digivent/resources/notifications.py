"""Per-identity notifications.

The durable key carries the acting identity's id; with nobody signed in the
store is empty and every mutation is ``NOT_AUTHENTICATED``.
"""

from __future__ import annotations

from typing import Any

from ..constants import NOTIFICATIONS
from ..domain.models import Identity, Notification
from ..results import Result
from .base import ResourceStore


class NotificationStore(ResourceStore[Notification]):
    entity = NOTIFICATIONS
    entity_cls = Notification
    per_identity = True
    FILTERS = frozenset({"event_id", "type", "is_read"})

    @property
    def unread_count(self) -> int:
        """Number of cached notifications still unread, recomputed on every call."""
        return sum(1 for n in self._items if not n.is_read)

    def _prepare_create(self, payload: dict[str, Any], identity: Identity) -> dict[str, Any]:
        payload["is_read"] = bool(payload.get("is_read", False))
        return payload

    async def mark_read(self, notification_id: str) -> Result[Notification]:
        """Mark one notification read. Already-read entries are returned unchanged."""
        cached = self.get_cached(notification_id)
        if cached is not None and cached.is_read:
            return Result.success(cached)
        return await self.update(notification_id, {"is_read": True})

    async def mark_all_read(self) -> Result[list[Notification]]:
        return await self._update_where(lambda n: not n.is_read, {"is_read": True})
