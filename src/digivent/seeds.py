"""Canonical starting datasets written on first use of an empty scope.

Seeds only apply in local (offline/demo) mode; a remote backend is the
authority for its own data.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from .constants import EVENTS, EXPENSES, FEEDBACK, NOTIFICATIONS, TASKS

_SEED_TS = "2025-01-01T00:00:00+00:00"

TECHFEST = "techfest-2025"
FOOD_DRIVE = "community-food-drive"
WORKSHOPS = "workshop-series"


def _stamp(record: dict[str, Any]) -> dict[str, Any]:
    record.setdefault("created_at", _SEED_TS)
    record.setdefault("updated_at", _SEED_TS)
    return record


def _event(event_id: str, title: str, organizer_id: str, **fields: Any) -> dict[str, Any]:
    return _stamp({
        "id": event_id,
        "title": title,
        "status": "published",
        "is_public": True,
        "price": 0,
        "organizer_id": organizer_id,
        **fields,
    })


def seed_events(owner_id: Optional[str] = None) -> list[dict[str, Any]]:
    return [
        _event(
            TECHFEST, "TechFest 2025", "demo-organizer",
            description="Annual technology festival featuring workshops, demos, and networking opportunities.",
            start_date="2025-08-10T10:00:00Z", end_date="2025-08-10T18:00:00Z",
            location_name="Convention Center", location_address="123 Main St, Downtown",
            capacity=500, registered_count=234, category="Technology",
            tags=["tech", "networking", "workshops"],
            requirements=["Laptop recommended", "Basic programming knowledge"],
            target_audience=["Developers", "Students", "Tech enthusiasts"],
            learning_objectives=["Learn new technologies", "Network with peers", "Hands-on workshops"],
            amenities=["WiFi", "Refreshments", "Parking"],
            budget_total=50000, budget_spent=25000,
        ),
        _event(
            FOOD_DRIVE, "Community Food Drive", "demo-organizer-2",
            description="Monthly food distribution event serving local families in need.",
            start_date="2025-08-15T08:00:00Z", end_date="2025-08-15T14:00:00Z",
            location_name="Central Park Pavilion", location_address="Central Park, City Center",
            capacity=150, registered_count=89, category="Community Service",
            tags=["community", "food", "volunteer"],
            requirements=["Physical activity tolerance"],
            target_audience=["Community volunteers", "Local residents"],
            learning_objectives=["Community service", "Teamwork", "Social impact"],
            amenities=["Parking", "Restrooms", "Water stations"],
            budget_total=15000, budget_spent=8500,
        ),
        _event(
            WORKSHOPS, "Youth Workshop Series", "demo-organizer-3",
            description="Educational workshop series designed to empower local youth with valuable skills.",
            start_date="2025-08-20T13:00:00Z", end_date="2025-08-20T17:00:00Z",
            location_name="Community Learning Center", location_address="456 Education Ave, Learning District",
            capacity=75, registered_count=45, category="Education",
            tags=["education", "youth", "skills"],
            requirements=["Age 16-25", "Interest in learning"],
            target_audience=["Youth", "Students", "Career seekers"],
            learning_objectives=["Skill development", "Career guidance", "Personal growth"],
            amenities=["Materials provided", "Certificates", "Refreshments"],
            budget_total=8000, budget_spent=3200,
        ),
    ]


def _task(
    task_id: str,
    title: str,
    status: str,
    priority: str,
    *,
    progress: int,
    tags: list[str],
    category: str,
    due_date: str,
    estimated_hours: float,
    assignees: Optional[list[str]] = None,
    description: str = "",
) -> dict[str, Any]:
    return _stamp({
        "id": task_id,
        "event_id": FOOD_DRIVE,
        "title": title,
        "description": description,
        "status": status,
        "priority": priority,
        "due_date": due_date,
        "estimated_hours": estimated_hours,
        "actual_hours": 0,
        "progress": progress,
        "tags": tags,
        "dependencies": [],
        "assignees": assignees or [],
        "category": category,
        "created_by": "demo-organizer",
    })


def seed_tasks(owner_id: Optional[str] = None) -> list[dict[str, Any]]:
    return [
        _task("task-seed-001", "Setup registration booth", "backlog", "medium", progress=0,
              tags=["setup", "registration"], category="Setup", due_date="2024-02-15", estimated_hours=4,
              description="Tables, signage and check-in laptops at the main entrance."),
        _task("task-seed-002", "Order catering supplies", "backlog", "high", progress=0,
              tags=["catering", "supplies"], category="Logistics", due_date="2024-02-10", estimated_hours=2),
        _task("task-seed-003", "Create volunteer schedule", "todo", "high", progress=0,
              tags=["scheduling", "volunteers"], category="Planning", due_date="2024-02-12", estimated_hours=6,
              assignees=["demo-volunteer"]),
        _task("task-seed-004", "Design event flyers", "progress", "medium", progress=60,
              tags=["design", "marketing"], category="Marketing", due_date="2024-02-08", estimated_hours=8),
        _task("task-seed-005", "Venue safety inspection", "review", "urgent", progress=100,
              tags=["safety", "venue"], category="Safety", due_date="2024-02-05", estimated_hours=3),
        _task("task-seed-006", "Book event venue", "completed", "high", progress=100,
              tags=["venue", "booking"], category="Logistics", due_date="2024-01-30", estimated_hours=4),
        _task("task-seed-007", "Confirm food bank delivery window", "blocked", "urgent", progress=0,
              tags=["logistics", "partners"], category="Setup", due_date="2024-02-09", estimated_hours=1,
              description="Waiting on the partner warehouse to confirm a truck."),
    ]


def seed_expenses(owner_id: Optional[str] = None) -> list[dict[str, Any]]:
    return [
        _stamp({
            "id": "exp-seed-001",
            "event_id": TECHFEST,
            "title": "Main auditorium rental",
            "description": "For TechFest 2025 main event",
            "category": "Venue",
            "amount": 45000.0,
            "vendor": "Convention Center",
            "receipt_url": "/receipts/venue-receipt.pdf",
            "status": "approved",
            "submitted_by": "demo-admin",
            "approved_by": "demo-organizer",
            "approved_at": "2025-07-12T00:00:00+00:00",
        }),
        _stamp({
            "id": "exp-seed-002",
            "event_id": TECHFEST,
            "title": "Lunch for 200 attendees",
            "description": "Cuisine + beverages",
            "category": "Catering",
            "amount": 28000.0,
            "vendor": "Spice Garden Catering",
            "status": "pending",
            "submitted_by": "demo-organizer",
        }),
        _stamp({
            "id": "exp-seed-003",
            "event_id": WORKSHOPS,
            "title": "Social media promotion",
            "description": "Facebook and Instagram ads",
            "category": "Marketing",
            "amount": 12500.0,
            "vendor": "Digital Marketing Agency",
            "receipt_url": "/receipts/marketing-receipt.pdf",
            "status": "paid",
            "submitted_by": "demo-organizer",
            "approved_by": "demo-admin",
            "approved_at": "2025-07-19T00:00:00+00:00",
        }),
    ]


def seed_feedback(owner_id: Optional[str] = None) -> list[dict[str, Any]]:
    return [
        _stamp({
            "id": "fb-seed-001",
            "event_id": FOOD_DRIVE,
            "user_id": "demo-volunteer",
            "overall_rating": 5,
            "organization_rating": 5,
            "content_rating": 4,
            "venue_rating": 4,
            "staff_rating": 5,
            "recommend": "yes",
            "comments": "Well organised and the team was welcoming.",
            "highlights": "Clear shift briefings",
            "improvements": "More shade at the pavilion",
        }),
        _stamp({
            "id": "fb-seed-002",
            "event_id": FOOD_DRIVE,
            "user_id": "demo-volunteer-2",
            "overall_rating": 4,
            "organization_rating": 3,
            "content_rating": 4,
            "venue_rating": 5,
            "staff_rating": 4,
            "recommend": "maybe",
            "comments": "Good event, check-in was slow.",
            "highlights": "",
            "improvements": "Faster registration",
        }),
    ]


def seed_notifications(owner_id: Optional[str] = None) -> list[dict[str, Any]]:
    owner = owner_id or ""
    return [
        _stamp({
            "id": f"ntf-seed-001-{owner}",
            "user_id": owner,
            "title": "Welcome to Digi-Vent",
            "message": "Browse upcoming events and sign up for your first shift.",
            "type": "info",
            "is_read": False,
            "action_url": "/events",
        }),
        _stamp({
            "id": f"ntf-seed-002-{owner}",
            "event_id": FOOD_DRIVE,
            "user_id": owner,
            "title": "New task available",
            "message": "Create volunteer schedule needs an owner.",
            "type": "task",
            "is_read": False,
            "action_url": "/tasks",
        }),
        _stamp({
            "id": f"ntf-seed-003-{owner}",
            "user_id": owner,
            "title": "Profile complete",
            "message": "Thanks for filling in your availability.",
            "type": "success",
            "is_read": True,
        }),
    ]


SEEDS: dict[str, Callable[[Optional[str]], list[dict[str, Any]]]] = {
    EVENTS: seed_events,
    TASKS: seed_tasks,
    EXPENSES: seed_expenses,
    FEEDBACK: seed_feedback,
    NOTIFICATIONS: seed_notifications,
}


def seed_for(entity: str, owner_id: Optional[str] = None) -> list[dict[str, Any]]:
    factory = SEEDS.get(entity)
    return factory(owner_id) if factory else []
