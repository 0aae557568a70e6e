"""Task workflow state machine.

``move_task`` is the only operation that changes a task's board status. It
validates the target, derives progress from the new status and writes the
change through the task store in one update.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from loguru import logger

from ..constants import PROGRESS_DONE, PROGRESS_IN_MOTION
from ..domain.models import Task, TaskStatus
from ..resources.tasks import TaskStore
from ..results import Result, validation_failure


# ---------------------------------------------------------------------------
# Valid status transitions
# ---------------------------------------------------------------------------

_VALID_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.BACKLOG: {TaskStatus.TODO, TaskStatus.BLOCKED},
    TaskStatus.TODO: {TaskStatus.PROGRESS, TaskStatus.BLOCKED},
    TaskStatus.PROGRESS: {TaskStatus.REVIEW, TaskStatus.BLOCKED},
    TaskStatus.REVIEW: {TaskStatus.COMPLETED, TaskStatus.BLOCKED},
    TaskStatus.BLOCKED: {TaskStatus.TODO},
    TaskStatus.COMPLETED: set(),  # terminal
}


def parse_status(value: Union[str, TaskStatus]) -> Optional[TaskStatus]:
    try:
        return TaskStatus(value)
    except ValueError:
        return None


def allowed_targets(status: Union[str, TaskStatus]) -> set[TaskStatus]:
    return set(_VALID_TRANSITIONS.get(TaskStatus(status), set()))


def is_valid_transition(src: Union[str, TaskStatus], dst: Union[str, TaskStatus]) -> bool:
    src_status, dst_status = parse_status(src), parse_status(dst)
    if src_status is None or dst_status is None:
        return False
    return src_status == dst_status or dst_status in _VALID_TRANSITIONS[src_status]


def derive_progress(target: TaskStatus, explicit: Optional[int] = None) -> Optional[int]:
    """Progress implied by moving to *target*; ``None`` leaves it unchanged."""
    if target == TaskStatus.COMPLETED:
        return PROGRESS_DONE
    if explicit is not None:
        return explicit
    if target == TaskStatus.PROGRESS:
        return PROGRESS_IN_MOTION
    return None


class TaskWorkflow:
    """Status transitions for tasks on the board.

    Parameters
    ----------
    tasks:
        The task store every move is written through.
    strict:
        Reject moves outside the transition table. The board lets a card be
        dropped on any column, so this is off by default.
    """

    def __init__(self, tasks: TaskStore, *, strict: bool = False) -> None:
        self.tasks = tasks
        self.strict = strict

    async def move_task(
        self,
        task_id: str,
        target: Union[str, TaskStatus],
        progress: Optional[int] = None,
    ) -> Result[Task]:
        status = parse_status(target)
        if status is None:
            return Result.failure(validation_failure(f"Unknown task status: {target!r}"))
        if progress is not None and (
            isinstance(progress, bool) or not isinstance(progress, int) or not 0 <= progress <= 100
        ):
            return Result.failure(validation_failure(f"Progress must be an integer between 0 and 100, got {progress!r}"))

        def _patch(current: Task) -> dict[str, Any]:
            if self.strict and not is_valid_transition(current.status, status):
                raise validation_failure(
                    f"Cannot move task from {current.status.value} to {status.value}"
                )
            patch: dict[str, Any] = {"status": status}
            derived = derive_progress(status, progress)
            if derived is not None:
                patch["progress"] = derived
            return patch

        result = await self.tasks.update_with(task_id, _patch)
        if result.ok:
            logger.debug("Moved task {} to {}", task_id, status.value)
        else:
            logger.info("Move of task {} to {} failed: {}", task_id, status.value, result.error)
        return result
