"""Persistent store adapters."""

from __future__ import annotations

from .file_store import FileDurableStore
from .interfaces import DurableStore, StorageError
from .keys import storage_key
from .memory_store import MemoryDurableStore

__all__ = ["DurableStore", "FileDurableStore", "MemoryDurableStore", "StorageError", "storage_key"]
