from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Optional, Protocol


class BackendError(Exception):
    """Error reported by the remote backend, carrying a display-safe message."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class AuthEvent(str, Enum):
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"


@dataclass(frozen=True)
class BackendSession:
    user_id: str
    email: str
    access_token: str = ""
    user_metadata: dict[str, Any] = field(default_factory=dict)


AuthListener = Callable[[AuthEvent, Optional[BackendSession]], None]


class BackendClient(Protocol):
    """Shape of the remote backend consumed by the resource layer.

    Every coroutine raises :class:`BackendError` when the backend reports a
    failure. The wire protocol behind it is not owned by this package.
    """

    async def sign_in_with_password(self, email: str, password: str) -> BackendSession:
        ...

    async def sign_up(self, email: str, password: str, metadata: dict[str, Any]) -> Optional[BackendSession]:
        ...

    async def sign_out(self) -> None:
        ...

    async def get_session(self) -> Optional[BackendSession]:
        ...

    def on_auth_state_change(self, callback: AuthListener) -> Callable[[], None]:
        ...

    async def fetch_profile(self, user_id: str) -> dict[str, Any]:
        ...

    async def update_profile(self, user_id: str, changes: dict[str, Any]) -> dict[str, Any]:
        ...

    async def select(self, table: str, filters: dict[str, Any]) -> list[dict[str, Any]]:
        ...

    async def insert(self, table: str, record: dict[str, Any]) -> dict[str, Any]:
        ...

    async def update(self, table: str, record_id: str, changes: dict[str, Any]) -> Optional[dict[str, Any]]:
        ...

    async def delete(self, table: str, record_id: str) -> bool:
        ...
