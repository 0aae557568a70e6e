"""Durable key naming.

Keys always carry the entity type; per-user collections additionally carry
the owning identity id so one user's notification state is never visible to
another identity on the same device.
"""

from __future__ import annotations

import re
from typing import Optional

from ..constants import STORAGE_KEY_PREFIX

_SAFE = re.compile(r"[^A-Za-z0-9_.@-]+")


def _clean(part: str) -> str:
    cleaned = _SAFE.sub("_", str(part).strip())
    if not cleaned:
        raise ValueError("storage key part must not be empty")
    return cleaned


def storage_key(entity: str, owner_id: Optional[str] = None) -> str:
    """Build ``digivent:<entity>`` or ``digivent:<entity>:<owner_id>``."""
    parts = [STORAGE_KEY_PREFIX, _clean(entity)]
    if owner_id is not None:
        parts.append(_clean(owner_id))
    return ":".join(parts)


def key_to_filename(key: str) -> str:
    """Map a storage key to a file name that is safe on every platform."""
    return _clean(key.replace(":", "__")) + ".yaml"
