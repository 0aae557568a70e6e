"""Resource stores for events, tasks, expenses, feedback and notifications."""

from __future__ import annotations

from .base import ResourceStore, StoreStatus
from .events import EventStore
from .expenses import BudgetSummary, CategoryTotals, ExpenseStore, summarize_budget
from .feedback import FeedbackStats, FeedbackStore, summarize_feedback
from .notifications import NotificationStore
from .tasks import TaskStore

__all__ = [
    "BudgetSummary",
    "CategoryTotals",
    "EventStore",
    "ExpenseStore",
    "FeedbackStats",
    "FeedbackStore",
    "NotificationStore",
    "ResourceStore",
    "StoreStatus",
    "TaskStore",
    "summarize_budget",
    "summarize_feedback",
]
