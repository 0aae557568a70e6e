"""Role-based access decisions for guarded surfaces.

Everything here is pure: callers pass the session flags in and get a
decision back, so route guards can be tested without a UI.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Literal, Optional, Union

from .domain.models import Role
from .navigation import NavigationIntent, forbidden_intent, sign_in_intent

if TYPE_CHECKING:
    from .session import SessionState

ANY_AUTHENTICATED = "any-authenticated"

RequiredRole = Union[Role, Literal["any-authenticated"], None]


class AccessDecision(str, Enum):
    PENDING = "pending"                  # session still resolving
    UNAUTHENTICATED = "unauthenticated"  # redirect to sign-in
    FORBIDDEN = "forbidden"              # redirect to access-denied
    ALLOWED = "allowed"


# Roles that satisfy each explicit requirement.
ROLE_SATISFIES: dict[str, set[str]] = {
    Role.ADMIN.value: {Role.ADMIN.value},
    Role.ORGANIZER.value: {Role.ADMIN.value, Role.ORGANIZER.value},
    Role.VOLUNTEER.value: {Role.VOLUNTEER.value},
}


def _normalize_requirement(required_role: RequiredRole) -> Optional[Role]:
    if required_role is None or required_role == ANY_AUTHENTICATED:
        return None
    return Role(required_role)


def decide_access(
    is_loading: bool,
    is_authenticated: bool,
    profile_role: Optional[Role],
    required_role: RequiredRole = None,
) -> AccessDecision:
    """Decide whether the acting identity may enter a guarded surface.

    Rules are evaluated in order:

    1. still loading -> ``PENDING``
    2. no identity -> ``UNAUTHENTICATED``
    3. identity but no profile role yet -> ``PENDING``
    4. explicit requirement -> ``ALLOWED`` only for a role in
       :data:`ROLE_SATISFIES` for that requirement, else ``FORBIDDEN``
    5. no requirement and the role is volunteer -> ``FORBIDDEN``
       (volunteer surfaces opt in with an explicit requirement)
    6. otherwise ``ALLOWED``
    """
    if is_loading:
        return AccessDecision.PENDING
    if not is_authenticated:
        return AccessDecision.UNAUTHENTICATED
    if profile_role is None:
        return AccessDecision.PENDING

    role = Role(profile_role)
    required = _normalize_requirement(required_role)
    if required is not None:
        if role.value in ROLE_SATISFIES[required.value]:
            return AccessDecision.ALLOWED
        return AccessDecision.FORBIDDEN
    if role == Role.VOLUNTEER:
        return AccessDecision.FORBIDDEN
    return AccessDecision.ALLOWED


def access_intent(decision: AccessDecision, origin: Optional[str] = None) -> Optional[NavigationIntent]:
    """Map a decision to the redirect the UI should perform, if any."""
    if decision == AccessDecision.UNAUTHENTICATED:
        return sign_in_intent(origin)
    if decision == AccessDecision.FORBIDDEN:
        return forbidden_intent()
    return None


def gate_for_session(state: "SessionState", required_role: RequiredRole = None) -> AccessDecision:
    profile_role = state.profile.role if state.profile is not None else None
    return decide_access(state.is_loading, state.identity is not None, profile_role, required_role)
