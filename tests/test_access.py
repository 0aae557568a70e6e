"""Tests for the role-based access decision."""

from __future__ import annotations

import pytest

from digivent.access import (
    AccessDecision,
    access_intent,
    decide_access,
    gate_for_session,
)
from digivent.domain.models import Profile, Role
from digivent.navigation import IntentKind
from digivent.session import SessionState

A = AccessDecision.ALLOWED
F = AccessDecision.FORBIDDEN

# role -> requirement -> decision
EXPECTED = {
    Role.ADMIN: {None: A, Role.VOLUNTEER: F, Role.ORGANIZER: A, Role.ADMIN: A},
    Role.ORGANIZER: {None: A, Role.VOLUNTEER: F, Role.ORGANIZER: A, Role.ADMIN: F},
    Role.VOLUNTEER: {None: F, Role.VOLUNTEER: A, Role.ORGANIZER: F, Role.ADMIN: F},
}


class TestDecideAccess:
    @pytest.mark.parametrize(
        "role,required,expected",
        [(role, req, decision) for role, row in EXPECTED.items() for req, decision in row.items()],
    )
    def test_role_table(self, role: Role, required, expected: AccessDecision) -> None:
        assert decide_access(False, True, role, required) == expected

    def test_loading_wins_over_everything(self) -> None:
        assert decide_access(True, False, None, Role.ADMIN) == AccessDecision.PENDING
        assert decide_access(True, True, Role.ADMIN, None) == AccessDecision.PENDING

    def test_unauthenticated(self) -> None:
        assert decide_access(False, False, None, None) == AccessDecision.UNAUTHENTICATED
        assert decide_access(False, False, Role.ADMIN, Role.ADMIN) == AccessDecision.UNAUTHENTICATED

    def test_profile_not_resolved_is_pending(self) -> None:
        assert decide_access(False, True, None, Role.VOLUNTEER) == AccessDecision.PENDING

    def test_any_authenticated_behaves_like_no_requirement(self) -> None:
        for role in Role:
            assert decide_access(False, True, role, "any-authenticated") == decide_access(False, True, role, None)

    def test_accepts_plain_strings(self) -> None:
        assert decide_access(False, True, "organizer", "organizer") == AccessDecision.ALLOWED


class TestAccessIntent:
    def test_unauthenticated_preserves_origin(self) -> None:
        intent = access_intent(AccessDecision.UNAUTHENTICATED, "/tasks?event=1")
        assert intent is not None
        assert intent.kind == IntentKind.SIGN_IN
        assert intent.target == "/login"
        assert intent.origin == "/tasks?event=1"

    def test_forbidden(self) -> None:
        intent = access_intent(AccessDecision.FORBIDDEN, "/admin/dashboard")
        assert intent is not None
        assert intent.kind == IntentKind.FORBIDDEN
        assert intent.target == "/403"

    def test_no_redirect_for_allowed_or_pending(self) -> None:
        assert access_intent(AccessDecision.ALLOWED) is None
        assert access_intent(AccessDecision.PENDING) is None


class TestGateForSession:
    def test_reads_session_state(self) -> None:
        profile = Profile(id="u1", email="v@example.com", role=Role.VOLUNTEER)
        state = SessionState(identity=profile.identity(), profile=profile, is_loading=False)
        assert gate_for_session(state, Role.VOLUNTEER) == AccessDecision.ALLOWED
        assert gate_for_session(state) == AccessDecision.FORBIDDEN

    def test_initial_state_is_pending(self) -> None:
        assert gate_for_session(SessionState(is_loading=True), Role.ADMIN) == AccessDecision.PENDING
