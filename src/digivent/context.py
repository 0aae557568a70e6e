"""Composition root for the resource layer.

An :class:`AppContext` owns one session manager, the five resource stores and
the task workflow, all sharing one backend strategy. Contexts are independent
of each other, so tests can run several side by side.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

from loguru import logger

from .backends import BackendClient, select_backends
from .config import AppConfig, load_app_config
from .domain.models import Identity
from .logging_utils import configure_logging
from .navigation import Navigator
from .resources import EventStore, ExpenseStore, FeedbackStore, NotificationStore, TaskStore
from .session import SessionManager, SessionState
from .storage import DurableStore, FileDurableStore
from .task_engine import Board, TaskWorkflow


class AppContext:
    """Explicitly constructed application context with ``init``/``dispose``.

    Parameters
    ----------
    config:
        Resolved configuration; loaded from the environment when omitted.
    client:
        Remote backend client. Without one the context runs in local mode.
    durable:
        Durable store override (defaults to a :class:`FileDurableStore`
        under ``config.state_dir``).
    navigator:
        Receives navigation intents from the session manager.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        *,
        client: Optional[BackendClient] = None,
        durable: Optional[DurableStore] = None,
        navigator: Optional[Navigator] = None,
    ) -> None:
        self.config = config or load_app_config()
        self.durable = durable if durable is not None else FileDurableStore(Path(self.config.state_dir))
        self.backend, self.auth = select_backends(self.config, self.durable, client)
        self.session = SessionManager(self.auth, self.durable, navigator=navigator)

        self.events = EventStore(self.backend, self._identity)
        self.tasks = TaskStore(self.backend, self._identity)
        self.expenses = ExpenseStore(
            self.backend, self._identity, events=self.events, budgets=self.config.event_budgets
        )
        self.feedback = FeedbackStore(self.backend, self._identity)
        self.notifications = NotificationStore(self.backend, self._identity)
        self.workflow = TaskWorkflow(self.tasks, strict=self.config.strict_transitions)

        self._board: Optional[Board] = None
        self._owner_id: Optional[str] = None
        self._unsubscribe_session: Optional[Any] = None
        self._pending: set[asyncio.Task[Any]] = set()
        self._initialized = False

    def _identity(self) -> Optional[Identity]:
        return self.session.identity

    @property
    def mode(self) -> str:
        return self.backend.mode

    @property
    def stores(self) -> tuple[EventStore, TaskStore, ExpenseStore, FeedbackStore, NotificationStore]:
        return (self.events, self.tasks, self.expenses, self.feedback, self.notifications)

    @property
    def board(self) -> Board:
        if self._board is None:
            self._board = Board(self.workflow)
        return self._board

    async def init(self, *, configure_logs: bool = False) -> "AppContext":
        """Resolve the session and load the signed-in user's notifications."""
        if self._initialized:
            return self
        if configure_logs:
            configure_logging(self.config.log_level)
        if self.config.error:
            logger.warning("Ignoring malformed config: {}", self.config.error)
        await self.session.init()
        self._unsubscribe_session = self.session.subscribe(self._on_session_change)
        self._owner_id = self.session.identity.id if self.session.identity else None
        if self._owner_id is not None:
            await self.notifications.list()
        self._initialized = True
        logger.info("Context ready ({} mode)", self.mode)
        return self

    def _on_session_change(self, state: SessionState) -> None:
        owner = state.identity.id if state.identity is not None else None
        if owner == self._owner_id:
            return
        self._owner_id = owner
        self.notifications.reset()
        if owner is not None:
            task = asyncio.get_running_loop().create_task(self.notifications.list())
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def settle(self) -> None:
        """Wait for session pushes, background reloads and durable writes."""
        await self.session.wait_idle()
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        for store in self.stores:
            await store.flush()

    async def dispose(self) -> None:
        if self._unsubscribe_session is not None:
            self._unsubscribe_session()
            self._unsubscribe_session = None
        await self.settle()
        if self._board is not None:
            self._board.close()
            self._board = None
        for store in self.stores:
            store.dispose()
        await self.session.dispose()
        self._initialized = False

    async def __aenter__(self) -> "AppContext":
        return await self.init()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()
