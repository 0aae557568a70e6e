"""Domain entities for identities, profiles and the resource collections.

Entities are plain dataclasses that serialize to YAML/JSON-friendly dicts.
Field validation lives in :mod:`digivent.domain.schemas`; ``from_dict`` here
only coerces already-validated data back into entity instances.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, ClassVar, Optional

from ..utils import _new_id, _now_iso


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Role(str, Enum):
    ADMIN = "admin"
    ORGANIZER = "organizer"
    VOLUNTEER = "volunteer"


class EventStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ONGOING = "ongoing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def accepts_registrations(self) -> bool:
        return self in (EventStatus.PUBLISHED, EventStatus.ONGOING)


class TaskStatus(str, Enum):
    """Board-level status used for Kanban columns."""

    BACKLOG = "backlog"
    TODO = "todo"
    PROGRESS = "progress"
    REVIEW = "review"
    COMPLETED = "completed"
    BLOCKED = "blocked"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def sort_key(self) -> int:
        return {"urgent": 0, "high": 1, "medium": 2, "low": 3}[self.value]


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class Recommendation(str, Enum):
    YES = "yes"
    NO = "no"
    MAYBE = "maybe"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    TASK = "task"
    EVENT = "event"
    EXPENSE = "expense"


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


# ---------------------------------------------------------------------------
# Identity / Profile
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Identity:
    """The authenticated actor. Replaced wholesale on sign-in/out."""

    id: str
    email: str
    full_name: str = ""
    role: Role = Role.VOLUNTEER
    avatar_url: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {k: _enum_value(v) for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Identity":
        return cls(
            id=str(data["id"]),
            email=str(data.get("email") or ""),
            full_name=str(data.get("full_name") or ""),
            role=Role(data.get("role") or Role.VOLUNTEER.value),
            avatar_url=data.get("avatar_url"),
        )


@dataclass
class Profile:
    """Mutable extension of :class:`Identity` owned by the session manager."""

    id: str
    email: str
    full_name: str = ""
    role: Role = Role.VOLUNTEER
    avatar_url: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    date_of_birth: Optional[str] = None
    experience_level: Optional[str] = None
    availability_status: str = "available"

    # Gamification counters
    total_hours: float = 0
    events_completed: int = 0
    level: int = 1
    xp: int = 0
    streak: int = 0
    impact_score: int = 0

    created_at: str = field(default_factory=_now_iso)
    updated_at: str = field(default_factory=_now_iso)

    READ_ONLY_FIELDS: ClassVar[frozenset[str]] = frozenset({"id", "created_at"})

    def to_dict(self) -> dict[str, Any]:
        return {k: _enum_value(v) for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Profile":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["role"] = Role(values.get("role") or Role.VOLUNTEER.value)
        return cls(**values)

    def merged(self, changes: dict[str, Any]) -> "Profile":
        """Return a copy with *changes* applied and ``updated_at`` bumped."""
        data = self.to_dict()
        data.update({k: _enum_value(v) for k, v in changes.items() if k not in self.READ_ONLY_FIELDS})
        data["updated_at"] = _now_iso()
        return Profile.from_dict(data)

    def identity(self) -> Identity:
        return Identity(
            id=self.id,
            email=self.email,
            full_name=self.full_name,
            role=self.role,
            avatar_url=self.avatar_url,
        )


@dataclass(frozen=True)
class RegistrationData:
    """Fields collected by the registration form."""

    email: str
    password: str
    full_name: str
    role: Role = Role.VOLUNTEER
    phone: Optional[str] = None
    location: Optional[str] = None
    date_of_birth: Optional[str] = None
    experience_level: Optional[str] = None

    def metadata(self) -> dict[str, Any]:
        """Registration metadata forwarded for later profile provisioning."""
        return {
            "full_name": self.full_name,
            "role": _enum_value(self.role),
            "phone": self.phone,
            "location": self.location,
            "date_of_birth": self.date_of_birth,
            "experience_level": self.experience_level,
        }


# ---------------------------------------------------------------------------
# Resource entities
# ---------------------------------------------------------------------------

@dataclass
class Record:
    """Fields shared by every resource entity.

    Subclasses declare ``ID_PREFIX`` (used for fresh ids), ``CREATOR_FIELD``
    (stamped from the acting identity on create) and ``ENUM_FIELDS`` (coerced
    back into enums by :meth:`from_dict`).
    """

    id: str = ""
    event_id: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    ID_PREFIX: ClassVar[str] = "rec"
    CREATOR_FIELD: ClassVar[str] = "created_by"
    ENUM_FIELDS: ClassVar[dict[str, type[Enum]]] = {}
    LIST_FIELDS: ClassVar[frozenset[str]] = frozenset()

    @classmethod
    def system_fields(cls) -> frozenset[str]:
        """Fields a partial update may never overwrite."""
        return frozenset({"id", "created_at", cls.CREATOR_FIELD})

    @classmethod
    def new_id(cls) -> str:
        return _new_id(cls.ID_PREFIX)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        for k, v in asdict(self).items():
            data[k] = _enum_value(v)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Record":
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, raw in data.items():
            if key not in known:
                continue
            enum_cls = cls.ENUM_FIELDS.get(key)
            if enum_cls is not None and raw is not None and not isinstance(raw, enum_cls):
                raw = enum_cls(str(raw))
            elif key in cls.LIST_FIELDS:
                raw = list(raw or [])
            values[key] = raw
        return cls(**values)

    def touch(self) -> None:
        """Bump ``updated_at`` to now."""
        self.updated_at = _now_iso()

    def creator(self) -> Optional[str]:
        return getattr(self, self.CREATOR_FIELD, None)

    def copy(self, **changes: Any) -> "Record":
        return replace(self, **changes)


@dataclass
class Event(Record):
    """A volunteer event; ``budget_total`` backs the expense budget summary."""

    title: str = ""
    description: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    location_name: str = ""
    location_address: str = ""
    capacity: int = 0
    registered_count: int = 0
    category: str = ""
    tags: list[str] = field(default_factory=list)
    status: EventStatus = EventStatus.DRAFT
    is_public: bool = False
    price: float = 0.0
    cover_image_url: Optional[str] = None
    organizer_id: Optional[str] = None
    requirements: list[str] = field(default_factory=list)
    target_audience: list[str] = field(default_factory=list)
    learning_objectives: list[str] = field(default_factory=list)
    amenities: list[str] = field(default_factory=list)
    budget_total: float = 0.0
    budget_spent: float = 0.0

    ID_PREFIX: ClassVar[str] = "evt"
    CREATOR_FIELD: ClassVar[str] = "organizer_id"
    ENUM_FIELDS: ClassVar[dict[str, type[Enum]]] = {"status": EventStatus}
    LIST_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"tags", "requirements", "target_audience", "learning_objectives", "amenities"}
    )

    @property
    def is_full(self) -> bool:
        """A capacity of 0 means unlimited."""
        return self.capacity > 0 and self.registered_count >= self.capacity


@dataclass
class Task(Record):
    """A card on the event task board."""

    title: str = ""
    description: str = ""
    status: TaskStatus = TaskStatus.BACKLOG
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[str] = None
    estimated_hours: float = 0
    actual_hours: float = 0
    progress: int = 0
    tags: list[str] = field(default_factory=list)
    dependencies: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)
    accepted_by: list[str] = field(default_factory=list)
    category: Optional[str] = None
    created_by: Optional[str] = None

    ID_PREFIX: ClassVar[str] = "task"
    CREATOR_FIELD: ClassVar[str] = "created_by"
    ENUM_FIELDS: ClassVar[dict[str, type[Enum]]] = {"status": TaskStatus, "priority": TaskPriority}
    LIST_FIELDS: ClassVar[frozenset[str]] = frozenset({"tags", "dependencies", "assignees", "accepted_by"})

    @property
    def is_terminal(self) -> bool:
        return self.status == TaskStatus.COMPLETED


@dataclass
class Expense(Record):
    """A submitted expense with a secondary approval lifecycle."""

    title: str = ""
    description: str = ""
    category: str = ""
    amount: float = 0.0
    vendor: Optional[str] = None
    receipt_url: Optional[str] = None
    status: ExpenseStatus = ExpenseStatus.PENDING
    submitted_by: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None

    ID_PREFIX: ClassVar[str] = "exp"
    CREATOR_FIELD: ClassVar[str] = "submitted_by"
    ENUM_FIELDS: ClassVar[dict[str, type[Enum]]] = {"status": ExpenseStatus}

    @property
    def is_spent(self) -> bool:
        return self.status in (ExpenseStatus.APPROVED, ExpenseStatus.PAID)


@dataclass
class Feedback(Record):
    """Post-event feedback from a participant."""

    user_id: Optional[str] = None
    overall_rating: Optional[int] = None
    organization_rating: Optional[int] = None
    content_rating: Optional[int] = None
    venue_rating: Optional[int] = None
    staff_rating: Optional[int] = None
    recommend: Optional[Recommendation] = None
    comments: str = ""
    highlights: str = ""
    improvements: str = ""

    ID_PREFIX: ClassVar[str] = "fb"
    CREATOR_FIELD: ClassVar[str] = "user_id"
    ENUM_FIELDS: ClassVar[dict[str, type[Enum]]] = {"recommend": Recommendation}


@dataclass
class Notification(Record):
    """A per-user notification; ``is_read`` drives the unread counter."""

    user_id: Optional[str] = None
    title: str = ""
    message: str = ""
    type: NotificationType = NotificationType.INFO
    is_read: bool = False
    action_url: Optional[str] = None

    ID_PREFIX: ClassVar[str] = "ntf"
    CREATOR_FIELD: ClassVar[str] = "user_id"
    ENUM_FIELDS: ClassVar[dict[str, type[Enum]]] = {"type": NotificationType}
