"""In-process change notifications for store and session subscribers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Generic, TypeVar

from loguru import logger

T = TypeVar("T")

Listener = Callable[[T], None]
Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class Change:
    """Payload published whenever a store's cache changes."""

    channel: str
    event_type: str
    entity_id: str = ""
    payload: dict[str, Any] = field(default_factory=dict)


class ChangeBus(Generic[T]):
    """Synchronous fan-out to registered listeners.

    A listener that raises is logged and skipped; the remaining listeners
    still run and the publisher is never interrupted.
    """

    def __init__(self, name: str) -> None:
        self._name = name
        self._listeners: dict[int, Listener[T]] = {}
        self._counter = 0

    def subscribe(self, listener: Listener[T]) -> Unsubscribe:
        self._counter += 1
        token = self._counter
        self._listeners[token] = listener

        def _unsubscribe() -> None:
            self._listeners.pop(token, None)

        return _unsubscribe

    def publish(self, message: T) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener(message)
            except Exception:
                logger.exception("Listener on {} failed", self._name)

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
