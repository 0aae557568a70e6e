"""Pydantic schemas used to decode durable and remote records.

Every collection read from the persistent store (or returned by a remote
backend) passes through :func:`decode_records`; any malformed entry makes the
whole read fail with :class:`RecordDecodeError` instead of leaking missing or
mistyped fields into the caches.
"""

from __future__ import annotations

from typing import Any, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..utils import _parse_iso
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
    Role,
    Task,
    TaskPriority,
    TaskStatus,
)

R = TypeVar("R", bound=Record)


class RecordDecodeError(ValueError):
    """A durable/remote record did not match its schema."""


class _RecordSchema(BaseModel):
    model_config = ConfigDict(extra="ignore", use_enum_values=False)

    id: str = Field(min_length=1)
    event_id: Optional[str] = None
    created_at: str = Field(min_length=1)
    updated_at: str = Field(min_length=1)


class EventRecord(_RecordSchema):
    title: str = Field(min_length=1, max_length=500)
    description: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    location_name: str = ""
    location_address: str = ""
    capacity: int = Field(default=0, ge=0)
    registered_count: int = Field(default=0, ge=0)
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    status: EventStatus = EventStatus.DRAFT
    is_public: bool = False
    price: float = Field(default=0, ge=0, allow_inf_nan=False)
    cover_image_url: Optional[str] = None
    organizer_id: Optional[str] = None
    requirements: list[str] = Field(default_factory=list)
    target_audience: list[str] = Field(default_factory=list)
    learning_objectives: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)
    budget_total: float = Field(default=0, ge=0, allow_inf_nan=False)
    budget_spent: float = Field(default=0, ge=0, allow_inf_nan=False)

    @model_validator(mode="after")
    def _ends_after_start(self) -> "EventRecord":
        start, end = _parse_iso(self.start_date), _parse_iso(self.end_date)
        if start is not None and end is not None and end < start:
            raise ValueError("end_date must not be before start_date")
        return self


class TaskRecord(_RecordSchema):
    title: str = Field(min_length=1, max_length=500)
    description: str = ""
    status: TaskStatus = TaskStatus.BACKLOG
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[str] = None
    estimated_hours: float = Field(default=0, ge=0)
    actual_hours: float = Field(default=0, ge=0)
    progress: int = Field(default=0, ge=0, le=100)
    tags: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    assignees: list[str] = Field(default_factory=list)
    accepted_by: list[str] = Field(default_factory=list)
    category: Optional[str] = None
    created_by: Optional[str] = None


class ExpenseRecord(_RecordSchema):
    title: str = ""
    description: str = ""
    category: str = Field(min_length=1)
    amount: float = Field(gt=0, allow_inf_nan=False)
    vendor: Optional[str] = None
    receipt_url: Optional[str] = None
    status: ExpenseStatus = ExpenseStatus.PENDING
    submitted_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None


class FeedbackRecord(_RecordSchema):
    user_id: Optional[str] = None
    overall_rating: Optional[int] = Field(default=None, ge=1, le=5)
    organization_rating: Optional[int] = Field(default=None, ge=1, le=5)
    content_rating: Optional[int] = Field(default=None, ge=1, le=5)
    venue_rating: Optional[int] = Field(default=None, ge=1, le=5)
    staff_rating: Optional[int] = Field(default=None, ge=1, le=5)
    recommend: Optional[Recommendation] = None
    comments: str = ""
    highlights: str = ""
    improvements: str = ""


class NotificationRecord(_RecordSchema):
    user_id: Optional[str] = None
    title: str = Field(min_length=1)
    message: str = ""
    type: NotificationType = NotificationType.INFO
    is_read: bool = False
    action_url: Optional[str] = None


class IdentityRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str = Field(min_length=1)
    email: str = Field(min_length=1)
    full_name: str = ""
    role: Role = Role.VOLUNTEER
    avatar_url: Optional[str] = None


class ProfileRecord(IdentityRecord):
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    date_of_birth: Optional[str] = None
    experience_level: Optional[str] = None
    availability_status: str = "available"
    total_hours: float = Field(default=0, ge=0)
    events_completed: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    xp: int = Field(default=0, ge=0)
    streak: int = Field(default=0, ge=0)
    impact_score: int = Field(default=0, ge=0)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


SCHEMAS: dict[type[Record], type[_RecordSchema]] = {
    Event: EventRecord,
    Task: TaskRecord,
    Expense: ExpenseRecord,
    Feedback: FeedbackRecord,
    Notification: NotificationRecord,
}


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "record"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


def validate_record(entity_cls: type[R], data: dict[str, Any]) -> R:
    """Validate *data* against the schema for *entity_cls* and build the entity.

    Raises:
        pydantic.ValidationError: if the data does not match the schema.
    """
    schema = SCHEMAS[entity_cls]
    model = schema.model_validate(data)
    return entity_cls.from_dict(model.model_dump())  # type: ignore[return-value]


def validation_message(exc: ValidationError) -> str:
    return _describe(exc)


def decode_records(entity_cls: type[R], raw: Any) -> list[R]:
    """Decode a serialized collection into entities.

    Raises:
        RecordDecodeError: if *raw* is not a list of valid records.
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise RecordDecodeError(f"{entity_cls.__name__} collection: expected list, got {type(raw).__name__}")
    out: list[R] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise RecordDecodeError(f"{entity_cls.__name__}[{idx}]: expected object, got {type(item).__name__}")
        try:
            out.append(validate_record(entity_cls, item))
        except ValidationError as exc:
            raise RecordDecodeError(f"{entity_cls.__name__}[{idx}]: {_describe(exc)}") from exc
    return out


def decode_identity(raw: Any) -> Identity:
    try:
        return Identity.from_dict(IdentityRecord.model_validate(raw).model_dump())
    except ValidationError as exc:
        raise RecordDecodeError(f"identity: {_describe(exc)}") from exc


def decode_profile(raw: Any) -> Profile:
    try:
        model = ProfileRecord.model_validate(raw)
    except ValidationError as exc:
        raise RecordDecodeError(f"profile: {_describe(exc)}") from exc
    data = {k: v for k, v in model.model_dump().items() if v is not None or k not in ("created_at", "updated_at")}
    return Profile.from_dict(data)
