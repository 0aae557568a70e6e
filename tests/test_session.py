"""Tests for the session manager in local and remote mode."""

from __future__ import annotations

import pytest

from digivent.backends import AuthEvent, BackendSession
from digivent.backends.local import LocalAuthBackend, local_identity_id
from digivent.constants import DEFAULT_AVATAR_URL
from digivent.context import AppContext
from digivent.domain.models import Identity, RegistrationData, Role
from digivent.navigation import IntentKind
from digivent.results import ErrorKind
from digivent.session import SESSION_STORAGE_KEY
from digivent.storage import MemoryDurableStore

from fakes import FakeBackendClient, FlakyDurableStore, local_context, make_config


class Recorder:
    def __init__(self) -> None:
        self.intents = []

    def __call__(self, intent) -> None:
        self.intents.append(intent)


async def _remote(client: FakeBackendClient, **overrides) -> AppContext:
    ctx = AppContext(make_config(backend_url="https://backend.test", **overrides), client=client, durable=MemoryDurableStore())
    await ctx.init()
    return ctx


@pytest.mark.anyio
class TestLocalSignIn:
    async def test_demo_account_preset(self) -> None:
        ctx = await local_context("admin@demo.com")
        state = ctx.session.state
        assert state.is_authenticated
        assert state.identity.id == "demo-admin"
        assert state.profile.full_name == "Admin User"
        assert state.profile.level == 7
        assert state.role == Role.ADMIN
        await ctx.dispose()

    async def test_role_inferred_from_email(self) -> None:
        ctx = await local_context("site.admin@example.org")
        assert ctx.session.state.role == Role.ADMIN
        assert ctx.session.identity.id == local_identity_id("site.admin@example.org")
        await ctx.session.sign_out()
        await ctx.session.sign_in("team.organizer@example.org", "pw")
        assert ctx.session.state.role == Role.ORGANIZER
        await ctx.session.sign_in("alice@example.org", "pw")
        assert ctx.session.state.role == Role.VOLUNTEER
        assert ctx.session.state.profile.full_name == "alice"
        await ctx.dispose()

    async def test_same_email_same_identity(self) -> None:
        ctx = await local_context("Alice@Example.org")
        first = ctx.session.identity.id
        await ctx.session.sign_out()
        await ctx.session.sign_in("alice@example.org ", "other-password")
        assert ctx.session.identity.id == first
        await ctx.dispose()

    async def test_local_profile_lookup(self) -> None:
        auth = LocalAuthBackend()
        demo = await auth.fetch_profile(
            Identity(id="demo-organizer", email="Organizer@demo.com", full_name="Event Organizer", role=Role.ORGANIZER)
        )
        assert demo.id == "demo-organizer"
        assert demo.role == Role.ORGANIZER
        assert demo.level == 7
        assert demo.avatar_url == DEFAULT_AVATAR_URL
        other = await auth.fetch_profile(Identity(id="local-1", email="bob@example.org", full_name="bob"))
        assert other.id == "local-1"
        assert other.level == 1
        assert other.role == Role.VOLUNTEER

    async def test_empty_credentials_rejected(self) -> None:
        ctx = await local_context(None)
        result = await ctx.session.sign_in("", "secret")
        assert result.kind == ErrorKind.AUTH_ERROR
        assert result.error.message == "Invalid credentials"
        result = await ctx.session.sign_in("a@b.c", "")
        assert result.kind == ErrorKind.AUTH_ERROR
        assert not ctx.session.state.is_authenticated
        assert ctx.session.state.error == "Invalid credentials"
        await ctx.dispose()

    async def test_landing_intent_only_from_auth_surface(self) -> None:
        nav = Recorder()
        ctx = await local_context(None, navigator=nav)
        ctx.session.set_surface("/events")
        await ctx.session.sign_in("volunteer@demo.com", "pw")
        assert nav.intents == []

        await ctx.session.sign_out()
        nav.intents.clear()
        ctx.session.set_surface("/login/")
        await ctx.session.sign_in("organizer@demo.com", "pw")
        assert [(i.kind, i.target) for i in nav.intents] == [(IntentKind.LANDING, "/admin/dashboard")]

        nav.intents.clear()
        await ctx.session.sign_in("volunteer@demo.com", "pw")
        assert nav.intents[-1].target == "/dashboard/volunteer"
        await ctx.dispose()

    async def test_navigator_failure_does_not_break_sign_in(self) -> None:
        def broken(intent) -> None:
            raise RuntimeError("router gone")

        ctx = await local_context(None, navigator=broken)
        ctx.session.set_surface("/login")
        result = await ctx.session.sign_in("admin@demo.com", "pw")
        assert result.ok
        assert ctx.session.state.is_authenticated
        await ctx.dispose()


@pytest.mark.anyio
class TestLocalPersistence:
    async def test_session_restored_by_init(self) -> None:
        durable = MemoryDurableStore()
        ctx = await local_context("organizer@demo.com", durable=durable)
        await ctx.dispose()
        assert durable.read(SESSION_STORAGE_KEY)["profile"]["id"] == "demo-organizer"

        again = AppContext(make_config(), durable=durable)
        await again.init()
        assert again.session.state.is_loading is False
        assert again.session.identity.id == "demo-organizer"
        assert again.session.state.role == Role.ORGANIZER
        await again.dispose()

    async def test_sign_out_clears_snapshot(self) -> None:
        durable = MemoryDurableStore()
        nav = Recorder()
        ctx = await local_context("admin@demo.com", durable=durable, navigator=nav)
        await ctx.session.sign_out()
        state = ctx.session.state
        assert state.identity is None and state.profile is None
        assert nav.intents[-1].kind == IntentKind.SIGN_IN
        assert nav.intents[-1].target == "/login"
        assert durable.read(SESSION_STORAGE_KEY) is None
        await ctx.dispose()

    async def test_malformed_snapshot_discarded(self) -> None:
        durable = MemoryDurableStore({SESSION_STORAGE_KEY: {"profile": {"email": "no-id@example.org"}}})
        ctx = AppContext(make_config(), durable=durable)
        await ctx.init()
        assert not ctx.session.state.is_authenticated
        assert durable.read(SESSION_STORAGE_KEY) is None
        await ctx.dispose()

    async def test_unreadable_snapshot_starts_signed_out(self) -> None:
        durable = FlakyDurableStore()
        durable.fail_reads = True
        ctx = AppContext(make_config(), durable=durable)
        await ctx.init()
        assert ctx.session.state.is_loading is False
        assert not ctx.session.state.is_authenticated
        await ctx.dispose()

    async def test_write_failure_keeps_session_in_memory(self) -> None:
        durable = FlakyDurableStore()
        durable.fail_writes = True
        ctx = AppContext(make_config(), durable=durable)
        await ctx.init()
        result = await ctx.session.sign_in("admin@demo.com", "pw")
        assert result.ok
        assert ctx.session.state.is_authenticated
        await ctx.dispose()


@pytest.mark.anyio
class TestRegister:
    async def test_validation(self) -> None:
        ctx = await local_context(None)
        cases = [
            (RegistrationData(email="nope", password="secret1", full_name="A"), "valid email"),
            (RegistrationData(email="a@b.c", password="123", full_name="A"), "at least 6"),
            (RegistrationData(email="a@b.c", password="secret1", full_name="  "), "Full name"),
        ]
        for data, fragment in cases:
            result = await ctx.session.register(data)
            assert result.kind == ErrorKind.AUTH_ERROR
            assert fragment in result.error.message
        assert not ctx.session.state.is_authenticated
        await ctx.dispose()

    async def test_local_register_builds_profile(self) -> None:
        ctx = await local_context(None)
        data = RegistrationData(
            email="new.person@example.org",
            password="secret1",
            full_name="New Person",
            role=Role.ORGANIZER,
            location="Pune",
            experience_level="beginner",
        )
        result = await ctx.session.register(data)
        assert result.ok
        profile = ctx.session.state.profile
        assert profile.full_name == "New Person"
        assert profile.role == Role.ORGANIZER
        assert profile.location == "Pune"
        assert profile.experience_level == "beginner"
        await ctx.dispose()

    async def test_remote_register_forwards_metadata(self) -> None:
        client = FakeBackendClient()
        ctx = await _remote(client)
        data = RegistrationData(email="org@example.org", password="secret1", full_name="Org Person", role=Role.ORGANIZER)
        result = await ctx.session.register(data)
        await ctx.settle()
        assert result.ok
        name, payload = next(c for c in client.calls if c[0] == "sign_up")
        assert payload["role"] == "organizer"
        assert payload["full_name"] == "Org Person"
        assert ctx.session.state.role == Role.ORGANIZER
        await ctx.dispose()


@pytest.mark.anyio
class TestUpdateProfile:
    async def test_requires_session(self) -> None:
        ctx = await local_context(None)
        result = await ctx.session.update_profile({"phone": "555"})
        assert result.kind == ErrorKind.NOT_AUTHENTICATED
        await ctx.dispose()

    async def test_local_update_persists(self) -> None:
        durable = MemoryDurableStore()
        ctx = await local_context("volunteer@demo.com", durable=durable)
        result = await ctx.session.update_profile({"phone": "555-0100", "id": "hijack"})
        assert result.ok
        assert result.value.phone == "555-0100"
        assert result.value.id == "demo-volunteer"
        assert ctx.session.state.profile.phone == "555-0100"
        assert durable.read(SESSION_STORAGE_KEY)["profile"]["phone"] == "555-0100"
        await ctx.dispose()

    async def test_invalid_change_rejected(self) -> None:
        ctx = await local_context("volunteer@demo.com")
        result = await ctx.session.update_profile({"level": 0})
        assert result.kind == ErrorKind.AUTH_ERROR
        assert ctx.session.state.profile.level == 7
        await ctx.dispose()

    async def test_remote_update(self) -> None:
        client = FakeBackendClient()
        client.add_user("v@example.org", "pw", "u-1")
        ctx = await _remote(client)
        await ctx.session.sign_in("v@example.org", "pw")
        await ctx.settle()
        result = await ctx.session.update_profile({"bio": "Weekend helper"})
        assert result.ok
        assert client.profiles["u-1"]["bio"] == "Weekend helper"
        assert ctx.session.state.profile.bio == "Weekend helper"
        await ctx.dispose()


@pytest.mark.anyio
class TestRemoteSession:
    async def test_sign_in_resolves_profile_from_push(self) -> None:
        client = FakeBackendClient()
        client.add_user("org@example.org", "pw", "u-7", role="organizer", full_name="Olga")
        nav = Recorder()
        ctx = AppContext(make_config(backend_url="https://backend.test"), client=client, durable=MemoryDurableStore(), navigator=nav)
        await ctx.init()
        ctx.session.set_surface("/login")
        result = await ctx.session.sign_in("org@example.org", "pw")
        await ctx.settle()
        assert result.ok
        state = ctx.session.state
        assert state.identity.id == "u-7"
        assert state.profile.full_name == "Olga"
        assert state.role == Role.ORGANIZER
        assert state.is_loading is False
        assert nav.intents[-1].target == "/admin/dashboard"
        await ctx.dispose()

    async def test_sign_in_without_push(self) -> None:
        client = FakeBackendClient()
        client.push_on_sign_in = False
        client.add_user("v@example.org", "pw", "u-2")
        ctx = await _remote(client)
        result = await ctx.session.sign_in("v@example.org", "pw")
        assert result.ok
        assert ctx.session.state.profile.id == "u-2"
        await ctx.dispose()

    async def test_bad_credentials(self) -> None:
        client = FakeBackendClient()
        client.add_user("v@example.org", "pw", "u-2")
        ctx = await _remote(client)
        result = await ctx.session.sign_in("v@example.org", "wrong")
        assert result.kind == ErrorKind.AUTH_ERROR
        assert result.error.message == "Invalid login credentials"
        assert not ctx.session.state.is_authenticated
        await ctx.dispose()

    async def test_existing_session_resolved_on_init(self) -> None:
        client = FakeBackendClient()
        client.add_user("a@example.org", "pw", "u-3", role="admin")
        client.session = BackendSession(user_id="u-3", email="a@example.org", user_metadata={"role": "admin"})
        ctx = await _remote(client)
        assert ctx.session.state.role == Role.ADMIN
        await ctx.dispose()

    async def test_profile_failure_keeps_identity(self) -> None:
        client = FakeBackendClient()
        client.add_user("v@example.org", "pw", "u-4")
        client.fail["fetch_profile"] = "profiles table unavailable"
        ctx = await _remote(client)
        await ctx.session.sign_in("v@example.org", "pw")
        await ctx.settle()
        state = ctx.session.state
        assert state.identity is not None and state.identity.id == "u-4"
        assert state.profile is None
        assert state.error == "profiles table unavailable"
        assert state.is_loading is False
        await ctx.dispose()

    async def test_profile_for_other_user_rejected(self) -> None:
        client = FakeBackendClient()
        client.add_user("v@example.org", "pw", "u-5")
        client.profiles["u-5"]["id"] = "someone-else"
        ctx = await _remote(client)
        await ctx.session.sign_in("v@example.org", "pw")
        await ctx.settle()
        assert ctx.session.state.profile is None
        assert "does not match" in ctx.session.state.error
        await ctx.dispose()

    async def test_sign_out_wins_over_slow_profile(self) -> None:
        client = FakeBackendClient()
        client.add_user("v@example.org", "pw", "u-6")
        client.profile_delay = 0.05
        ctx = await _remote(client)
        await ctx.session.sign_in("v@example.org", "pw")
        await ctx.session.sign_out()
        await ctx.settle()
        state = ctx.session.state
        assert state.identity is None
        assert state.profile is None
        await ctx.dispose()

    async def test_later_push_wins(self) -> None:
        client = FakeBackendClient()
        client.add_user("first@example.org", "pw", "u-a")
        client.add_user("second@example.org", "pw", "u-b", role="organizer")
        client.profile_delay = 0.02
        ctx = await _remote(client)
        client.push(AuthEvent.SIGNED_IN, BackendSession(user_id="u-a", email="first@example.org"))
        client.push(AuthEvent.SIGNED_IN, BackendSession(user_id="u-b", email="second@example.org"))
        await ctx.settle()
        assert ctx.session.identity.id == "u-b"
        assert ctx.session.state.profile.id == "u-b"
        await ctx.dispose()

    async def test_profile_fetch_timeout(self) -> None:
        client = FakeBackendClient()
        client.add_user("v@example.org", "pw", "u-8")
        client.hang.add("fetch_profile")
        ctx = await _remote(client, remote_timeout=0.05)
        await ctx.session.sign_in("v@example.org", "pw")
        await ctx.settle()
        state = ctx.session.state
        assert state.identity.id == "u-8"
        assert state.profile is None
        assert "timed out" in state.error
        await ctx.dispose()

    async def test_sign_in_timeout(self) -> None:
        client = FakeBackendClient()
        client.hang.add("sign_in_with_password")
        ctx = await _remote(client, remote_timeout=0.05)
        result = await ctx.session.sign_in("v@example.org", "pw")
        assert result.kind == ErrorKind.AUTH_ERROR
        assert "timed out" in result.error.message
        await ctx.dispose()

    async def test_remote_sign_out_failure_still_clears(self) -> None:
        client = FakeBackendClient()
        client.add_user("v@example.org", "pw", "u-9")
        ctx = await _remote(client)
        await ctx.session.sign_in("v@example.org", "pw")
        await ctx.settle()
        client.fail["sign_out"] = "network down"
        await ctx.session.sign_out()
        assert not ctx.session.state.is_authenticated
        await ctx.dispose()

    async def test_dispose_stops_watching(self) -> None:
        client = FakeBackendClient()
        ctx = await _remote(client)
        assert len(client.listeners) == 1
        await ctx.dispose()
        assert client.listeners == []
