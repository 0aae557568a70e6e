from __future__ import annotations

from typing import Any

from ..constants import PROGRESS_DONE, TASKS
from ..domain.models import Identity, Task, TaskStatus
from ..results import Result, not_authenticated, validation_failure
from .base import ResourceStore, unique

_SET_FIELDS = ("tags", "assignees", "accepted_by", "dependencies")


def _dedupe(payload: dict[str, Any]) -> dict[str, Any]:
    for key in _SET_FIELDS:
        if key in payload:
            payload[key] = unique(payload[key] or [])
    return payload


class TaskStore(ResourceStore[Task]):
    """Tasks of the event board, shared by every identity."""

    entity = TASKS
    entity_cls = Task
    FILTERS = frozenset({"event_id", "status", "priority", "category", "tags", "assignees", "created_by"})

    def _prepare_create(self, payload: dict[str, Any], identity: Identity) -> dict[str, Any]:
        payload.pop("accepted_by", None)
        return _dedupe(payload)

    def _prepare_update(self, current: Task, patch: dict[str, Any]) -> dict[str, Any]:
        return _dedupe(patch)

    async def assign(self, task_id: str, user_id: str) -> Result[Task]:
        """Add *user_id* to the task's assignees; already assigned is a no-op."""

        def _patch(current: Task) -> dict[str, Any]:
            return {"assignees": [*current.assignees, user_id]}

        return await self.update_with(task_id, _patch)

    async def unassign(self, task_id: str, user_id: str) -> Result[Task]:
        def _patch(current: Task) -> dict[str, Any]:
            return {
                "assignees": [a for a in current.assignees if a != user_id],
                "accepted_by": [a for a in current.accepted_by if a != user_id],
            }

        return await self.update_with(task_id, _patch)

    async def accept(self, task_id: str) -> Result[Task]:
        """Record that the acting identity accepts its assignment to *task_id*."""
        identity = self._identity()
        if identity is None:
            return Result.failure(not_authenticated())

        def _patch(current: Task) -> dict[str, Any]:
            if identity.id not in current.assignees:
                raise validation_failure(f"Task {task_id} is not assigned to {identity.id}")
            return {"accepted_by": [*current.accepted_by, identity.id]}

        return await self.update_with(task_id, _patch)

    async def complete(self, task_id: str) -> Result[Task]:
        return await self.update(task_id, {"status": TaskStatus.COMPLETED, "progress": PROGRESS_DONE})
