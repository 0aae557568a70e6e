from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class StorageError(RuntimeError):
    """Raised by a durable store when a read or write cannot be completed."""


class DurableStore(ABC):
    """Key/value durable storage of serialized collections.

    Values are JSON/YAML-compatible structures (lists of dicts for entity
    collections, dicts for the session snapshot). ``read`` returns ``None``
    when nothing has been stored under the key yet.
    """

    @abstractmethod
    def read(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    @abstractmethod
    def write(self, key: str, value: Any) -> None:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        return self.read(key) is not None
