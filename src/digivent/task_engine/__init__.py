"""Task workflow engine: status state machine and the Kanban board."""

from .board import COLUMN_ORDER, Board, BoardAnalytics, BoardFilter, DropKind, DropOutcome
from .workflow import TaskWorkflow, allowed_targets, derive_progress, is_valid_transition

__all__ = [
    "Board",
    "BoardAnalytics",
    "BoardFilter",
    "COLUMN_ORDER",
    "DropKind",
    "DropOutcome",
    "TaskWorkflow",
    "allowed_targets",
    "derive_progress",
    "is_valid_transition",
]
