"""File-backed durable store: one YAML document per key.

Writes are atomic (write-tmp, fsync, rename) and serialized with an
exclusive file lock per key, following the same scheme as the runtime
collection repositories.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Optional

import yaml
from loguru import logger

from ..constants import STORE_DIR_NAME
from ..io_utils import FileLock, _atomic_write_yaml, _read_yaml
from .interfaces import DurableStore, StorageError
from .keys import key_to_filename

_FORMAT_VERSION = 1


class FileDurableStore(DurableStore):
    """Persist each key as ``<state_dir>/store/<key>.yaml``.

    Parameters
    ----------
    state_dir:
        Root state directory (usually ``.digivent/``).
    """

    def __init__(self, state_dir: Path) -> None:
        self._root = Path(state_dir) / STORE_DIR_NAME
        self._thread_lock = threading.RLock()

    @property
    def root(self) -> Path:
        return self._root

    def _paths(self, key: str) -> tuple[Path, Path]:
        name = key_to_filename(key)
        return self._root / name, self._root / f"{name}.lock"

    def read(self, key: str) -> Optional[Any]:
        path, lock_path = self._paths(key)
        with self._thread_lock:
            try:
                with FileLock(lock_path):
                    raw = _read_yaml(path)
            except (OSError, yaml.YAMLError) as exc:
                raise StorageError(f"read {key}: {exc.__class__.__name__}: {exc}") from exc
        if raw is None:
            return None
        if not isinstance(raw, dict) or "value" not in raw:
            raise StorageError(f"read {key}: unexpected document layout")
        logger.debug("Durable read {} ({})", key, path.name)
        return raw["value"]

    def write(self, key: str, value: Any) -> None:
        path, lock_path = self._paths(key)
        payload = {"version": _FORMAT_VERSION, "key": key, "value": value}
        with self._thread_lock:
            try:
                with FileLock(lock_path):
                    _atomic_write_yaml(path, payload)
            except (OSError, yaml.YAMLError) as exc:
                raise StorageError(f"write {key}: {exc.__class__.__name__}: {exc}") from exc
        logger.debug("Durable write {} ({})", key, path.name)

    def delete(self, key: str) -> bool:
        path, lock_path = self._paths(key)
        with self._thread_lock:
            try:
                with FileLock(lock_path):
                    if not path.exists():
                        return False
                    path.unlink()
            except OSError as exc:
                raise StorageError(f"delete {key}: {exc.__class__.__name__}: {exc}") from exc
        return True
