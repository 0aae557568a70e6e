from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..domain.models import Identity, Profile, RegistrationData
from .ports import AuthListener

Scope = tuple[str, Optional[str]]  # (entity, owner identity id or None)


class ResourceBackend(ABC):
    """Where a resource store reads and writes its collection.

    Records cross this boundary as plain dicts; decoding into entities happens
    in the store. Implementations raise ``StorageError`` or ``BackendError``
    on failure.
    """

    mode: str = "local"

    @abstractmethod
    async def fetch(self, scope: Scope, filters: dict[str, Any]) -> list[dict[str, Any]]:
        """Return the collection for *scope*, newest first.

        ``filters`` is a hint; callers re-apply it to the result.
        """
        raise NotImplementedError

    @abstractmethod
    async def get(self, scope: Scope, record_id: str) -> Optional[dict[str, Any]]:
        raise NotImplementedError

    @abstractmethod
    async def insert(self, scope: Scope, record: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def replace(self, scope: Scope, record: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    async def remove(self, scope: Scope, record_id: str) -> bool:
        raise NotImplementedError

    async def replace_many(self, scope: Scope, records: list[dict[str, Any]]) -> list[dict[str, Any]]:
        out = []
        for record in records:
            out.append(await self.replace(scope, record))
        return out


class AuthBackend(ABC):
    """Identity issuance strategy: remote verification or local synthesis."""

    mode: str = "local"

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> Optional[Profile]:
        """Verify credentials.

        Returns the resolved profile when it is known immediately, or ``None``
        when it will arrive through :meth:`watch`.
        """
        raise NotImplementedError

    @abstractmethod
    async def register(self, data: RegistrationData) -> Optional[Profile]:
        raise NotImplementedError

    @abstractmethod
    async def sign_out(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def update_profile(self, profile: Profile, changes: dict[str, Any]) -> Profile:
        raise NotImplementedError

    async def current_identity(self) -> Optional[Identity]:
        return None

    @abstractmethod
    async def fetch_profile(self, identity: Identity) -> Profile:
        """Resolve the full profile of an already verified *identity*."""
        raise NotImplementedError

    def watch(self, listener: AuthListener) -> Callable[[], None]:
        """Subscribe to server-pushed session changes; no-op when local."""
        return lambda: None
