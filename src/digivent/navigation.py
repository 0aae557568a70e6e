"""Navigation intents emitted to the presentation layer.

The core never navigates. It hands one of these to a navigator callback and
the UI decides how to execute it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .constants import (
    AUTH_ONLY_SURFACES,
    FORBIDDEN_PATH,
    MANAGEMENT_LANDING_PATH,
    SIGN_IN_PATH,
    VOLUNTEER_LANDING_PATH,
)
from .domain.models import Role


class IntentKind(str, Enum):
    SIGN_IN = "sign_in"
    FORBIDDEN = "forbidden"
    LANDING = "landing"


@dataclass(frozen=True)
class NavigationIntent:
    kind: IntentKind
    target: str
    # Where the user was heading; only set for sign-in redirects.
    origin: Optional[str] = None


Navigator = Callable[[NavigationIntent], None]


def landing_for_role(role: Role) -> str:
    if role in (Role.ADMIN, Role.ORGANIZER):
        return MANAGEMENT_LANDING_PATH
    return VOLUNTEER_LANDING_PATH


def landing_intent(role: Role) -> NavigationIntent:
    return NavigationIntent(IntentKind.LANDING, landing_for_role(role))


def sign_in_intent(origin: Optional[str] = None) -> NavigationIntent:
    return NavigationIntent(IntentKind.SIGN_IN, SIGN_IN_PATH, origin)


def forbidden_intent() -> NavigationIntent:
    return NavigationIntent(IntentKind.FORBIDDEN, FORBIDDEN_PATH)


def is_auth_only_surface(path: Optional[str]) -> bool:
    if not path:
        return False
    return path.split("?", 1)[0].rstrip("/") in AUTH_ONLY_SURFACES
