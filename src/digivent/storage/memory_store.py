from __future__ import annotations

import copy
import threading
from typing import Any, Optional

from .interfaces import DurableStore


class MemoryDurableStore(DurableStore):
    """Process-local durable store for tests and throwaway demo sessions.

    Values are deep-copied on the way in and out so callers can never mutate
    stored state by reference.
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial or {})
        self._lock = threading.RLock()

    def read(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._data.get(key)
            return copy.deepcopy(value)

    def write(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._data)
