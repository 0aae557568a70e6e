"""Domain entities and their record schemas."""

from __future__ import annotations

from .models import (
    Event,
    EventStatus,
    Expense,
    ExpenseStatus,
    Feedback,
    Identity,
    Notification,
    NotificationType,
    Profile,
    Recommendation,
    Record,
    RegistrationData,
    Role,
    Task,
    TaskPriority,
    TaskStatus,
)

__all__ = [
    "Event",
    "EventStatus",
    "Expense",
    "ExpenseStatus",
    "Feedback",
    "Identity",
    "Notification",
    "NotificationType",
    "Profile",
    "Recommendation",
    "Record",
    "RegistrationData",
    "Role",
    "Task",
    "TaskPriority",
    "TaskStatus",
]
