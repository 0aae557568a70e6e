"""Kanban board: columns of task ids, drag/drop and search.

The gesture layer only computes ``(task_id, target_status, index)`` and calls
:meth:`Board.drop`. A drop onto another column is shown immediately and
rolled back if the status change cannot be persisted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Optional, Union

from loguru import logger

from ..domain.models import Task, TaskPriority, TaskStatus
from ..events import Change, ChangeBus, Unsubscribe
from ..results import AppError, not_found, validation_failure
from ..resources.tasks import TaskStore
from ..utils import _parse_iso
from .workflow import TaskWorkflow, parse_status

COLUMN_ORDER: tuple[TaskStatus, ...] = (
    TaskStatus.BACKLOG,
    TaskStatus.TODO,
    TaskStatus.PROGRESS,
    TaskStatus.REVIEW,
    TaskStatus.COMPLETED,
    TaskStatus.BLOCKED,
)


class DropKind(str, Enum):
    NOOP = "noop"        # dropped where it started; nothing written
    REORDER = "reorder"  # same column, new position; local only
    MOVED = "moved"      # status change persisted
    FAILED = "failed"    # rejected or rolled back


@dataclass(frozen=True)
class DropOutcome:
    kind: DropKind
    task_id: str
    source: Optional[TaskStatus] = None
    target: Optional[TaskStatus] = None
    task: Optional[Task] = None
    error: Optional[AppError] = None

    @property
    def ok(self) -> bool:
        return self.kind != DropKind.FAILED


@dataclass(frozen=True)
class BoardFilter:
    """Visible-set filter; empty fields match everything.

    An unrecognised ``priority`` matches no task.
    """

    event_id: Optional[str] = None
    query: str = ""
    priority: Optional[Union[str, TaskPriority]] = None
    _wanted: Optional[TaskPriority] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.priority:
            return
        raw = self.priority.value if isinstance(self.priority, TaskPriority) else str(self.priority).strip().lower()
        try:
            object.__setattr__(self, "_wanted", TaskPriority(raw))
        except ValueError:
            logger.debug("Unknown priority filter {!r}", self.priority)

    def matches(self, task: Task) -> bool:
        if self.event_id and task.event_id != self.event_id:
            return False
        if self.priority and task.priority != self._wanted:
            return False
        needle = self.query.strip().lower()
        if needle:
            haystack = [task.title, task.description, *task.tags]
            if not any(needle in (text or "").lower() for text in haystack):
                return False
        return True


@dataclass(frozen=True)
class BoardAnalytics:
    total: int = 0
    completed: int = 0
    overdue: int = 0
    completion_rate: float = 0.0
    by_status: dict[str, int] = field(default_factory=dict)


_REFRESH_ON = {"listed", "created", "updated", "deleted", "rolled_back", "reset"}


class Board:
    """Column layout of the task board on top of a :class:`TaskWorkflow`."""

    def __init__(self, workflow: TaskWorkflow) -> None:
        self.workflow = workflow
        self._columns: dict[TaskStatus, list[str]] = {s: [] for s in COLUMN_ORDER}
        self._bus: ChangeBus[dict[str, list[str]]] = ChangeBus("board")
        self._unsubscribe: Optional[Unsubscribe] = self.tasks.subscribe(self._on_store_change)
        self.refresh()

    @property
    def tasks(self) -> TaskStore:
        return self.workflow.tasks

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._bus.clear()

    def subscribe(self, listener: Any) -> Unsubscribe:
        return self._bus.subscribe(listener)

    def _on_store_change(self, change: Change) -> None:
        if change.event_type in _REFRESH_ON:
            self.refresh()

    def _publish(self) -> None:
        self._bus.publish(self.columns)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def refresh(self) -> None:
        """Rebuild columns from the task cache.

        Ids that stay in their column keep their local order; new arrivals
        are appended in cache order.
        """
        by_status: dict[TaskStatus, list[str]] = {s: [] for s in COLUMN_ORDER}
        for task in self.tasks.items:
            by_status.setdefault(task.status, []).append(task.id)
        rebuilt: dict[TaskStatus, list[str]] = {}
        for status in COLUMN_ORDER:
            incoming = by_status[status]
            members = set(incoming)
            kept = [tid for tid in self._columns.get(status, []) if tid in members]
            kept_set = set(kept)
            rebuilt[status] = kept + [tid for tid in incoming if tid not in kept_set]
        self._columns = rebuilt
        self._publish()

    @property
    def columns(self) -> dict[str, list[str]]:
        return {status.value: list(ids) for status, ids in self._columns.items()}

    def column(self, status: Union[str, TaskStatus]) -> list[Task]:
        out = []
        for tid in self._columns[TaskStatus(status)]:
            task = self.tasks.get_cached(tid)
            if task is not None:
                out.append(task)
        return out

    def locate(self, task_id: str) -> Optional[tuple[TaskStatus, int]]:
        for status, ids in self._columns.items():
            if task_id in ids:
                return status, ids.index(task_id)
        return None

    # ------------------------------------------------------------------
    # Drag and drop
    # ------------------------------------------------------------------

    async def drop(
        self,
        task_id: str,
        target_status: Union[str, TaskStatus],
        index: Optional[int] = None,
    ) -> DropOutcome:
        """Apply a drop gesture.

        * same column, same (or no) position: nothing happens
        * same column, new position: local reorder only
        * other column: provisional move, then ``move_task``; the columns are
          restored if the move fails
        """
        target = parse_status(target_status)
        if target is None:
            return DropOutcome(
                DropKind.FAILED,
                task_id,
                error=validation_failure(f"Unknown task status: {target_status!r}"),
            )
        located = self.locate(task_id)
        if located is None:
            return DropOutcome(DropKind.FAILED, task_id, target=target, error=not_found(f"Task {task_id} is not on the board"))
        source, position = located

        if source == target:
            ids = self._columns[source]
            new_index = position if index is None else max(0, min(index, len(ids) - 1))
            if new_index == position:
                return DropOutcome(DropKind.NOOP, task_id, source, target)
            ids.pop(position)
            ids.insert(new_index, task_id)
            self._publish()
            return DropOutcome(DropKind.REORDER, task_id, source, target, task=self.tasks.get_cached(task_id))

        saved = {status: list(ids) for status, ids in self._columns.items()}
        self._columns[source].remove(task_id)
        dest = self._columns[target]
        dest.insert(len(dest) if index is None else max(0, min(index, len(dest))), task_id)
        self._publish()

        result = await self.workflow.move_task(task_id, target)
        if not result.ok:
            logger.warning("Drop of task {} onto {} rolled back: {}", task_id, target.value, result.error)
            self._columns = saved
            # Pick up store changes published while the move was in flight.
            self.refresh()
            return DropOutcome(DropKind.FAILED, task_id, source, target, error=result.error)
        return DropOutcome(DropKind.MOVED, task_id, source, target, task=result.value)

    # ------------------------------------------------------------------
    # Search and analytics
    # ------------------------------------------------------------------

    def visible_tasks(self, board_filter: Optional[BoardFilter] = None) -> list[Task]:
        """Tasks in column order that pass *board_filter*."""
        flt = board_filter or BoardFilter()
        out: list[Task] = []
        for status in COLUMN_ORDER:
            out.extend(t for t in self.column(status) if flt.matches(t))
        return out

    def visible_columns(self, board_filter: Optional[BoardFilter] = None) -> dict[str, list[Task]]:
        flt = board_filter or BoardFilter()
        return {status.value: [t for t in self.column(status) if flt.matches(t)] for status in COLUMN_ORDER}

    def analytics(self, today: Optional[date] = None) -> BoardAnalytics:
        today = today or date.today()
        by_status = {status.value: len(ids) for status, ids in self._columns.items()}
        total = sum(by_status.values())
        completed = by_status[TaskStatus.COMPLETED.value]
        overdue = 0
        for status in COLUMN_ORDER:
            if status == TaskStatus.COMPLETED:
                continue
            for task in self.column(status):
                due = _parse_iso(task.due_date)
                if due is not None and due.date() < today:
                    overdue += 1
        return BoardAnalytics(
            total=total,
            completed=completed,
            overdue=overdue,
            completion_rate=(completed / total * 100) if total else 0.0,
            by_status=by_status,
        )
