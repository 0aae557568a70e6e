"""Session manager: the single source of truth for who is acting now.

Every sign-in, registration, sign-out and pushed session change takes a new
generation number. Results are applied only while their generation is still
the latest, so a slow resolution can never overwrite a newer session.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from typing import Any, Callable, Optional

from loguru import logger

from .backends.interfaces import AuthBackend
from .backends.ports import AuthEvent, BackendError, BackendSession
from .backends.remote import identity_from_session
from .constants import MIN_PASSWORD_LENGTH, SESSION_KEY
from .domain.models import Identity, Profile, RegistrationData, Role
from .domain.schemas import RecordDecodeError, decode_profile
from .events import ChangeBus, Unsubscribe
from .navigation import Navigator, NavigationIntent, is_auth_only_surface, landing_intent, sign_in_intent
from .results import Result, auth_error, not_authenticated
from .storage import DurableStore, StorageError, storage_key

__all__ = ["RegistrationData", "SessionManager", "SessionState"]

SESSION_STORAGE_KEY = storage_key(SESSION_KEY)


@dataclass(frozen=True)
class SessionState:
    identity: Optional[Identity] = None
    profile: Optional[Profile] = None
    is_loading: bool = False
    error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @property
    def role(self) -> Optional[Role]:
        return self.profile.role if self.profile is not None else None


def _registration_error(data: RegistrationData) -> Optional[str]:
    if not data.email or "@" not in data.email:
        return "Please enter a valid email address"
    if not data.password or len(data.password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not (data.full_name or "").strip():
        return "Full name is required"
    return None


class SessionManager:
    """Own identity, profile and the session lifecycle.

    Parameters
    ----------
    auth:
        Identity issuance strategy (local synthesis or remote backend).
    durable:
        Durable store holding the local session snapshot.
    navigator:
        Optional callback receiving :class:`NavigationIntent` redirects.
    """

    def __init__(
        self,
        auth: AuthBackend,
        durable: DurableStore,
        *,
        navigator: Optional[Navigator] = None,
    ) -> None:
        self._auth = auth
        self._durable = durable
        self._navigator = navigator
        self._state = SessionState(is_loading=True)
        self._bus: ChangeBus[SessionState] = ChangeBus("session")
        self._generation = 0
        self._surface: Optional[str] = None
        self._unwatch: Optional[Callable[[], None]] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._pending: set[asyncio.Task[Any]] = set()

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._state.identity

    @property
    def is_local(self) -> bool:
        return self._auth.mode == "local"

    def subscribe(self, listener: Callable[[SessionState], None]) -> Unsubscribe:
        return self._bus.subscribe(listener)

    def set_surface(self, path: Optional[str]) -> None:
        """Record which surface the UI currently shows."""
        self._surface = path

    def _set(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        self._bus.publish(self._state)

    def _begin(self) -> int:
        self._generation += 1
        return self._generation

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _emit(self, intent: NavigationIntent) -> None:
        if self._navigator is None:
            return
        try:
            self._navigator(intent)
        except Exception:
            logger.exception("Navigator failed for {}", intent)

    def _maybe_land(self, role: Role) -> None:
        if is_auth_only_surface(self._surface):
            self._emit(landing_intent(role))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def init(self) -> None:
        """Resolve the initial session (restored snapshot or backend session)."""
        self._loop = asyncio.get_running_loop()
        gen = self._begin()
        if not self.is_local:
            self._unwatch = self._auth.watch(self._on_auth_event)
            try:
                identity = await self._auth.current_identity()
            except BackendError as exc:
                logger.warning("Session lookup failed: {}", exc.message)
                if self._is_current(gen):
                    self._set(is_loading=False, error=exc.message)
                return
            if identity is None:
                if self._is_current(gen):
                    self._set(identity=None, profile=None, is_loading=False, error=None)
                return
            await self._resolve_remote(identity, gen)
            return

        profile = await self._restore_local()
        if self._is_current(gen):
            self._set(
                identity=profile.identity() if profile else None,
                profile=profile,
                is_loading=False,
                error=None,
            )

    async def dispose(self) -> None:
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        self._bus.clear()

    async def wait_idle(self) -> None:
        """Wait until pushed session changes have been resolved."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _restore_local(self) -> Optional[Profile]:
        try:
            raw = await asyncio.to_thread(self._durable.read, SESSION_STORAGE_KEY)
        except StorageError as exc:
            logger.warning("Could not read persisted session: {}", exc)
            return None
        if raw is None:
            return None
        try:
            if not isinstance(raw, dict):
                raise RecordDecodeError(f"session: expected object, got {type(raw).__name__}")
            return decode_profile(raw.get("profile"))
        except RecordDecodeError as exc:
            logger.warning("Discarding malformed persisted session: {}", exc)
            await self._forget_local()
            return None

    async def _persist_local(self, profile: Profile) -> None:
        snapshot = {"identity": profile.identity().to_dict(), "profile": profile.to_dict()}
        try:
            await asyncio.to_thread(self._durable.write, SESSION_STORAGE_KEY, snapshot)
        except StorageError as exc:
            logger.warning("Could not persist session: {}", exc)

    async def _forget_local(self) -> None:
        try:
            await asyncio.to_thread(self._durable.delete, SESSION_STORAGE_KEY)
        except StorageError as exc:
            logger.warning("Could not clear persisted session: {}", exc)

    # ------------------------------------------------------------------
    # Remote session pushes
    # ------------------------------------------------------------------

    def _on_auth_event(self, event: AuthEvent, session: Optional[BackendSession]) -> None:
        gen = self._begin()
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._apply_auth_event(AuthEvent(event), session, gen))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _apply_auth_event(self, event: AuthEvent, session: Optional[BackendSession], gen: int) -> None:
        if event == AuthEvent.SIGNED_OUT or session is None:
            if self._is_current(gen):
                self._set(identity=None, profile=None, is_loading=False, error=None)
            return
        await self._resolve_remote(identity_from_session(session), gen)

    async def _resolve_remote(self, identity: Identity, gen: int) -> None:
        if not self._is_current(gen):
            return
        current = self._state.profile
        keep = current if current is not None and current.id == identity.id else None
        self._set(identity=identity, profile=keep, is_loading=keep is None, error=None)
        try:
            profile = await self._auth.fetch_profile(identity)
        except BackendError as exc:
            logger.warning("Profile fetch failed for {}: {}", identity.id, exc.message)
            if self._is_current(gen):
                self._set(is_loading=False, error=exc.message)
            return
        if not self._is_current(gen):
            return
        if profile.id != identity.id:
            self._set(is_loading=False, error="Profile does not match the signed-in user")
            return
        self._set(profile=profile, is_loading=False, error=None)
        logger.info("Signed in {} as {}", identity.email, profile.role.value)
        self._maybe_land(profile.role)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _complete(self, profile: Optional[Profile], gen: int) -> None:
        if profile is None:
            # Remote: the pushed change normally resolves the session; look it
            # up directly when no push has arrived yet.
            if not self._is_current(gen):
                return
            try:
                identity = await self._auth.current_identity()
            except BackendError as exc:
                if self._is_current(gen):
                    self._set(is_loading=False, error=exc.message)
                return
            if identity is None:
                if self._is_current(gen):
                    self._set(is_loading=False)
                return
            await self._resolve_remote(identity, gen)
            return

        if not self._is_current(gen):
            return
        await self._persist_local(profile)
        if not self._is_current(gen):
            return
        self._set(identity=profile.identity(), profile=profile, is_loading=False, error=None)
        logger.info("Signed in {} as {} (local)", profile.email, profile.role.value)
        self._maybe_land(profile.role)

    def _fail(self, gen: int, message: str) -> Result[None]:
        if self._is_current(gen):
            self._set(is_loading=False, error=message)
        return Result.failure(auth_error(message))

    async def sign_in(self, email: str, password: str) -> Result[None]:
        gen = self._begin()
        self._set(is_loading=True, error=None)
        try:
            profile = await self._auth.sign_in(email, password)
        except BackendError as exc:
            logger.info("Sign-in rejected for {}: {}", email, exc.message)
            return self._fail(gen, exc.message)
        await self._complete(profile, gen)
        return Result.success()

    async def register(self, data: RegistrationData) -> Result[None]:
        problem = _registration_error(data)
        if problem is not None:
            return Result.failure(auth_error(problem))
        gen = self._begin()
        self._set(is_loading=True, error=None)
        try:
            profile = await self._auth.register(data)
        except BackendError as exc:
            logger.info("Registration rejected for {}: {}", data.email, exc.message)
            return self._fail(gen, exc.message)
        await self._complete(profile, gen)
        return Result.success()

    async def sign_out(self) -> None:
        self._begin()
        previous = self._state.identity
        self._set(identity=None, profile=None, is_loading=False, error=None)
        self._emit(sign_in_intent())
        if self.is_local:
            await self._forget_local()
        else:
            try:
                await self._auth.sign_out()
            except BackendError as exc:
                logger.warning("Remote sign-out failed: {}", exc.message)
        if previous is not None:
            logger.info("Signed out {}", previous.email)

    async def update_profile(self, partial: dict[str, Any]) -> Result[Profile]:
        profile = self._state.profile
        if self._state.identity is None or profile is None:
            return Result.failure(not_authenticated())
        gen = self._generation
        try:
            updated = await self._auth.update_profile(profile, dict(partial))
        except BackendError as exc:
            return Result.failure(auth_error(exc.message))
        if not self._is_current(gen):
            return Result.failure(not_authenticated("Session changed during profile update"))
        self._set(profile=updated)
        if self.is_local:
            await self._persist_local(updated)
        return Result.success(updated)
