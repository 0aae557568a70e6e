"""Remote backends delegating to a :class:`~digivent.backends.ports.BackendClient`.

Every call is bounded by the configured timeout; a backend that never answers
surfaces as a :class:`BackendError` instead of hanging the caller.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ..constants import DEFAULT_REMOTE_TIMEOUT
from ..domain.models import Identity, Profile, RegistrationData, Role
from ..domain.schemas import RecordDecodeError, decode_profile
from .interfaces import AuthBackend, ResourceBackend, Scope
from .ports import AuthListener, BackendClient, BackendError, BackendSession

T = TypeVar("T")

_IMMUTABLE_ON_UPDATE = ("id", "created_at")


async def _bounded(awaitable: Awaitable[T], timeout: float, what: str) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise BackendError(f"{what} timed out after {timeout:g}s") from exc


def identity_from_session(session: BackendSession) -> Identity:
    meta = session.user_metadata or {}
    try:
        role = Role(meta.get("role") or Role.VOLUNTEER.value)
    except ValueError:
        role = Role.VOLUNTEER
    return Identity(
        id=session.user_id,
        email=session.email,
        full_name=str(meta.get("full_name") or session.email.split("@", 1)[0]),
        role=role,
        avatar_url=meta.get("avatar_url"),
    )


class RemoteResourceBackend(ResourceBackend):
    mode = "remote"

    def __init__(self, client: BackendClient, *, timeout: float = DEFAULT_REMOTE_TIMEOUT) -> None:
        self._client = client
        self._timeout = timeout

    def _call(self, awaitable: Awaitable[T], what: str) -> Awaitable[T]:
        return _bounded(awaitable, self._timeout, what)

    @staticmethod
    def _query(scope: Scope, filters: dict[str, Any]) -> dict[str, Any]:
        # Membership filters on list fields are applied client-side.
        query = {k: v for k, v in filters.items() if v is not None and not isinstance(v, (list, tuple, set))}
        _, owner_id = scope
        if owner_id is not None:
            query["user_id"] = owner_id
        return query

    async def fetch(self, scope: Scope, filters: dict[str, Any]) -> list[dict[str, Any]]:
        table = scope[0]
        rows = await self._call(self._client.select(table, self._query(scope, filters)), f"select {table}")
        if not isinstance(rows, list):
            raise BackendError(f"select {table}: expected a list of rows")
        return rows

    async def get(self, scope: Scope, record_id: str) -> Optional[dict[str, Any]]:
        table = scope[0]
        query = self._query(scope, {"id": record_id})
        rows = await self._call(self._client.select(table, query), f"select {table}")
        return rows[0] if rows else None

    async def insert(self, scope: Scope, record: dict[str, Any]) -> dict[str, Any]:
        table = scope[0]
        row = await self._call(self._client.insert(table, record), f"insert {table}")
        return row or record

    async def replace(self, scope: Scope, record: dict[str, Any]) -> dict[str, Any]:
        table = scope[0]
        changes = {k: v for k, v in record.items() if k not in _IMMUTABLE_ON_UPDATE}
        row = await self._call(self._client.update(table, record["id"], changes), f"update {table}")
        if row is None:
            raise BackendError(f"update {table}: record {record['id']} not found")
        return row

    async def remove(self, scope: Scope, record_id: str) -> bool:
        table = scope[0]
        return bool(await self._call(self._client.delete(table, record_id), f"delete {table}"))


class RemoteAuthBackend(AuthBackend):
    mode = "remote"

    def __init__(self, client: BackendClient, *, timeout: float = DEFAULT_REMOTE_TIMEOUT) -> None:
        self._client = client
        self._timeout = timeout

    async def sign_in(self, email: str, password: str) -> Optional[Profile]:
        await _bounded(self._client.sign_in_with_password(email, password), self._timeout, "sign in")
        return None

    async def register(self, data: RegistrationData) -> Optional[Profile]:
        await _bounded(
            self._client.sign_up(data.email, data.password, data.metadata()),
            self._timeout,
            "sign up",
        )
        return None

    async def sign_out(self) -> None:
        await _bounded(self._client.sign_out(), self._timeout, "sign out")

    async def current_identity(self) -> Optional[Identity]:
        session = await _bounded(self._client.get_session(), self._timeout, "get session")
        return identity_from_session(session) if session is not None else None

    async def fetch_profile(self, identity: Identity) -> Profile:
        raw = await _bounded(self._client.fetch_profile(identity.id), self._timeout, "fetch profile")
        try:
            return decode_profile(raw)
        except RecordDecodeError as exc:
            raise BackendError(str(exc)) from exc

    async def update_profile(self, profile: Profile, changes: dict[str, Any]) -> Profile:
        raw = await _bounded(
            self._client.update_profile(profile.id, changes),
            self._timeout,
            "update profile",
        )
        if not raw:
            return profile.merged(changes)
        try:
            return decode_profile(raw)
        except RecordDecodeError as exc:
            raise BackendError(str(exc)) from exc

    def watch(self, listener: AuthListener) -> Callable[[], None]:
        return self._client.on_auth_state_change(listener)
