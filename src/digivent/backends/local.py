"""Local (offline/demo) backends.

Collections live in a :class:`~digivent.storage.DurableStore` and identities
are synthesized from the email address without any network I/O.
"""

from __future__ import annotations

import asyncio
import hashlib
from typing import Any, Callable, Optional

from loguru import logger

from ..constants import DEFAULT_AVATAR_URL
from ..domain.models import Identity, Profile, RegistrationData, Role
from ..domain.schemas import RecordDecodeError, decode_profile
from ..seeds import seed_for
from ..storage import DurableStore, StorageError, storage_key
from ..utils import _now_iso
from .interfaces import AuthBackend, ResourceBackend, Scope
from .ports import BackendError

Collection = list[dict[str, Any]]


class LocalResourceBackend(ResourceBackend):
    """Read-modify-write of whole collections in the durable store.

    Each scope maps to one durable key. A scope without a durable copy is
    seeded with its canonical starting dataset on first access.
    """

    mode = "local"

    def __init__(self, durable: DurableStore, *, seed: bool = True) -> None:
        self._durable = durable
        self._seed = seed

    @property
    def durable(self) -> DurableStore:
        return self._durable

    def _load(self, scope: Scope) -> Collection:
        entity, owner_id = scope
        key = storage_key(entity, owner_id)
        raw = self._durable.read(key)
        if raw is None:
            raw = seed_for(entity, owner_id) if self._seed else []
            self._durable.write(key, raw)
            logger.info("Seeded {} with {} record(s)", key, len(raw))
        if not isinstance(raw, list):
            raise StorageError(f"{key}: expected a list, got {type(raw).__name__}")
        return raw

    def _mutate(self, scope: Scope, fn: Callable[[Collection], Any]) -> Any:
        items = self._load(scope)
        result = fn(items)
        self._durable.write(storage_key(*scope), items)
        return result

    async def fetch(self, scope: Scope, filters: dict[str, Any]) -> Collection:
        return await asyncio.to_thread(self._load, scope)

    async def get(self, scope: Scope, record_id: str) -> Optional[dict[str, Any]]:
        items = await asyncio.to_thread(self._load, scope)
        for item in items:
            if isinstance(item, dict) and item.get("id") == record_id:
                return item
        return None

    async def insert(self, scope: Scope, record: dict[str, Any]) -> dict[str, Any]:
        def _prepend(items: Collection) -> dict[str, Any]:
            items.insert(0, record)
            return record

        return await asyncio.to_thread(self._mutate, scope, _prepend)

    async def replace(self, scope: Scope, record: dict[str, Any]) -> dict[str, Any]:
        return (await self.replace_many(scope, [record]))[0]

    async def replace_many(self, scope: Scope, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        by_id = {r["id"]: r for r in records}

        def _swap(items: Collection) -> list[dict[str, Any]]:
            seen = set()
            for idx, item in enumerate(items):
                rid = item.get("id") if isinstance(item, dict) else None
                if rid in by_id:
                    items[idx] = by_id[rid]
                    seen.add(rid)
            missing = set(by_id) - seen
            if missing:
                raise StorageError(f"{storage_key(*scope)}: no record(s) {sorted(missing)}")
            return records

        return await asyncio.to_thread(self._mutate, scope, _swap)

    async def remove(self, scope: Scope, record_id: str) -> bool:
        def _drop(items: Collection) -> bool:
            before = len(items)
            items[:] = [i for i in items if not (isinstance(i, dict) and i.get("id") == record_id)]
            return len(items) != before

        return await asyncio.to_thread(self._mutate, scope, _drop)


# Demo accounts with display names and a populated gamification preset.
DEMO_ACCOUNTS: dict[str, tuple[Role, str]] = {
    "admin@demo.com": (Role.ADMIN, "Admin User"),
    "organizer@demo.com": (Role.ORGANIZER, "Event Organizer"),
    "volunteer@demo.com": (Role.VOLUNTEER, "Volunteer User"),
}

DEMO_GAMIFICATION: dict[str, Any] = {
    "total_hours": 156,
    "events_completed": 23,
    "level": 7,
    "xp": 1250,
    "streak": 5,
    "impact_score": 92,
}


def local_identity_id(email: str) -> str:
    """Deterministic id for an email, stable across sessions on one device."""
    digest = hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()
    return f"local-{digest[:12]}"


def infer_role(email: str) -> Role:
    lowered = email.lower()
    if "admin" in lowered:
        return Role.ADMIN
    if "organizer" in lowered:
        return Role.ORGANIZER
    return Role.VOLUNTEER


class LocalAuthBackend(AuthBackend):
    mode = "local"

    async def sign_in(self, email: str, password: str) -> Optional[Profile]:
        email = (email or "").strip()
        if not email or not password:
            raise BackendError("Invalid credentials")

        now = _now_iso()
        demo = DEMO_ACCOUNTS.get(email.lower())
        if demo is not None:
            role, name = demo
            return Profile(
                id=f"demo-{role.value}",
                email=email,
                full_name=name,
                role=role,
                avatar_url=DEFAULT_AVATAR_URL,
                created_at=now,
                updated_at=now,
                **DEMO_GAMIFICATION,
            )
        return Profile(
            id=local_identity_id(email),
            email=email,
            full_name=email.split("@", 1)[0],
            role=infer_role(email),
            avatar_url=DEFAULT_AVATAR_URL,
            created_at=now,
            updated_at=now,
        )

    async def fetch_profile(self, identity: Identity) -> Profile:
        """Rebuild a profile from the identity; demo accounts get their preset."""
        now = _now_iso()
        extra = DEMO_GAMIFICATION if identity.email.strip().lower() in DEMO_ACCOUNTS else {}
        return Profile(
            id=identity.id,
            email=identity.email,
            full_name=identity.full_name,
            role=identity.role,
            avatar_url=identity.avatar_url or DEFAULT_AVATAR_URL,
            created_at=now,
            updated_at=now,
            **extra,
        )

    async def register(self, data: RegistrationData) -> Optional[Profile]:
        now = _now_iso()
        return Profile(
            id=local_identity_id(data.email),
            email=data.email.strip(),
            full_name=data.full_name.strip(),
            role=Role(data.role),
            avatar_url=DEFAULT_AVATAR_URL,
            phone=data.phone,
            location=data.location,
            date_of_birth=data.date_of_birth,
            experience_level=data.experience_level,
            created_at=now,
            updated_at=now,
        )

    async def sign_out(self) -> None:
        return None

    async def update_profile(self, profile: Profile, changes: dict[str, Any]) -> Profile:
        try:
            return decode_profile(profile.merged(changes).to_dict())
        except RecordDecodeError as exc:
            raise BackendError(str(exc)) from exc
