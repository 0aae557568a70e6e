"""Generic optimistic resource store.

A :class:`ResourceStore` keeps an ordered in-memory cache of one entity
collection and writes every mutation through the injected backend strategy.

Ordering rules:

* Durable operations of one store run one at a time under an
  :class:`asyncio.Lock`, in issue order, so every operation observes the
  completed durable effect of the previous one.
* ``create`` prepends to the cache before its durable write starts.
  A ``list`` that completes meanwhile keeps such provisional records.
  ``update``/``delete`` change the cache as soon as they hold the lock.
* A failed durable write restores the cache entry the optimistic step
  replaced (or removes the provisional entry) and publishes again.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Generic, Iterable, Optional, TypeVar

from loguru import logger
from pydantic import ValidationError

from ..backends.interfaces import ResourceBackend, Scope
from ..backends.ports import BackendError
from ..domain.models import Identity, Record
from ..domain.schemas import RecordDecodeError, decode_records, validate_record, validation_message
from ..events import Change, ChangeBus, Unsubscribe
from ..results import AppError, Result, not_authenticated, not_found, storage_failure, validation_failure
from ..storage import StorageError
from ..utils import _now_iso

R = TypeVar("R", bound=Record)

IdentityProvider = Callable[[], Optional[Identity]]

# Adapter failures converted to STORAGE_FAILURE at the store boundary.
ADAPTER_ERRORS = (StorageError, BackendError, RecordDecodeError, OSError)


@dataclass(frozen=True)
class StoreStatus:
    loading: bool = False
    error: Optional[str] = None


def _plain(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def _describe(exc: BaseException) -> str:
    if isinstance(exc, BackendError):
        return exc.message
    return f"{exc.__class__.__name__}: {exc}"


class ResourceStore(Generic[R]):
    """Cache + durable write-through for one entity type.

    Subclasses set ``entity`` (durable key / table name), ``entity_cls`` and
    ``FILTERS``; stores of per-user data set ``per_identity``.
    """

    entity: ClassVar[str] = ""
    entity_cls: ClassVar[type[Record]] = Record
    per_identity: ClassVar[bool] = False
    FILTERS: ClassVar[frozenset[str]] = frozenset({"event_id"})

    def __init__(self, backend: ResourceBackend, identity: IdentityProvider) -> None:
        self._backend = backend
        self._identity = identity
        self._items: list[R] = []
        self._status = StoreStatus()
        self._filters: dict[str, Any] = {}
        self._lock = asyncio.Lock()
        # Creates shown in the cache whose durable write has not finished yet.
        self._provisional: dict[str, tuple[Scope, R]] = {}
        self._bus: ChangeBus[Change] = ChangeBus(self.entity)

    # ------------------------------------------------------------------
    # Cache access
    # ------------------------------------------------------------------

    @property
    def items(self) -> list[R]:
        return list(self._items)

    @property
    def status(self) -> StoreStatus:
        return self._status

    @property
    def filters(self) -> dict[str, Any]:
        return dict(self._filters)

    def get_cached(self, record_id: str) -> Optional[R]:
        for item in self._items:
            if item.id == record_id:
                return item
        return None

    def subscribe(self, listener: Callable[[Change], None]) -> Unsubscribe:
        return self._bus.subscribe(listener)

    def _publish(self, event_type: str, entity_id: str = "", **payload: Any) -> None:
        self._bus.publish(Change(self.entity, event_type, entity_id, payload))

    def _set_status(self, loading: bool, error: Optional[str] = None) -> None:
        self._status = StoreStatus(loading=loading, error=error)

    def reset(self) -> None:
        """Drop the cache, e.g. when the acting identity changes."""
        self._items = []
        self._filters = {}
        self._set_status(False)
        self._publish("reset")

    async def flush(self) -> None:
        """Wait for durable writes issued so far to finish."""
        async with self._lock:
            pass

    def dispose(self) -> None:
        self._bus.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _scope(self) -> Optional[Scope]:
        if not self.per_identity:
            return (self.entity, None)
        identity = self._identity()
        return (self.entity, identity.id) if identity is not None else None

    def _check_filters(self, filters: dict[str, Any]) -> Optional[AppError]:
        unknown = sorted(set(filters) - self.FILTERS)
        if unknown:
            return validation_failure(f"Unknown {self.entity} filter(s): {', '.join(unknown)}")
        return None

    def matches(self, record: R, filters: dict[str, Any]) -> bool:
        """Exact match on scalar fields, membership on list fields."""
        for key, expected in filters.items():
            if expected is None:
                continue
            value = getattr(record, key, None)
            if key in record.LIST_FIELDS:
                wanted = [expected] if isinstance(expected, str) else list(expected)
                if not all(w in (value or []) for w in wanted):
                    return False
            elif _plain(value) != _plain(expected):
                return False
        return True

    def _decode_one(self, raw: Any, fallback: R) -> R:
        if not isinstance(raw, dict):
            return fallback
        try:
            return decode_records(self.entity_cls, [raw])[0]  # type: ignore[return-value]
        except RecordDecodeError as exc:
            logger.warning("Backend returned malformed {} {}: {}", self.entity, fallback.id, exc)
            return fallback

    def _index(self, record_id: str) -> int:
        for idx, item in enumerate(self._items):
            if item.id == record_id:
                return idx
        return -1

    def _put_cached(self, record: R) -> Optional[R]:
        """Replace *record* in place; returns the previous cache entry."""
        idx = self._index(record.id)
        if idx < 0:
            return None
        previous = self._items[idx]
        self._items[idx] = record
        return previous

    def _drop_cached(self, record_id: str) -> None:
        self._items = [item for item in self._items if item.id != record_id]

    async def _load_scope(self, scope: Scope, filters: dict[str, Any]) -> list[R]:
        raw = await self._backend.fetch(scope, filters)
        records = decode_records(self.entity_cls, raw)
        logger.debug("Loaded {} {} record(s) for {}", len(records), self.entity, scope)
        return [r for r in records if self.matches(r, filters)]  # type: ignore[misc]

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def _prepare_create(self, payload: dict[str, Any], identity: Identity) -> dict[str, Any]:
        return payload

    def _prepare_update(self, current: R, patch: dict[str, Any]) -> dict[str, Any]:
        return patch

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def list(self, **filters: Any) -> Result[list[R]]:
        """Load the collection (seeding an empty scope) and cache the filtered view."""
        problem = self._check_filters(filters)
        if problem is not None:
            return Result.failure(problem)
        scope = self._scope()
        if scope is None:
            self._items = []
            self._filters = dict(filters)
            self._set_status(False)
            self._publish("listed")
            return Result.success([])

        self._set_status(True)
        async with self._lock:
            try:
                visible = await self._load_scope(scope, filters)
            except ADAPTER_ERRORS as exc:
                message = _describe(exc)
                logger.warning("Listing {} failed: {}", self.entity, message)
                self._set_status(False, message)
                self._publish("error")
                return Result.failure(storage_failure(message))

        if self._scope() != scope:
            # Identity changed while loading; the result belongs to another scope.
            return Result.success(list(visible))
        loaded = {r.id for r in visible}
        pending = [
            record
            for owner, record in self._provisional.values()
            if owner == scope and record.id not in loaded and self.matches(record, filters)
        ]
        self._items = pending[::-1] + visible
        self._filters = dict(filters)
        self._set_status(False)
        self._publish("listed", count=len(self._items))
        return Result.success(list(visible))

    async def get(self, record_id: str) -> Result[R]:
        """Durable read of one record; the cache is left untouched."""
        scope = self._scope()
        if scope is None:
            return Result.failure(not_authenticated())
        async with self._lock:
            try:
                raw = await self._backend.get(scope, record_id)
                if raw is None:
                    return Result.failure(not_found(f"{self.entity_cls.__name__} {record_id} not found"))
                return Result.success(decode_records(self.entity_cls, [raw])[0])  # type: ignore[arg-type]
            except ADAPTER_ERRORS as exc:
                message = _describe(exc)
                logger.warning("Reading {} {} failed: {}", self.entity, record_id, message)
                return Result.failure(storage_failure(message))

    async def snapshot(self, **filters: Any) -> Result[list[R]]:
        """Filtered durable read that leaves the cache untouched."""
        problem = self._check_filters(filters)
        if problem is not None:
            return Result.failure(problem)
        scope = self._scope()
        if scope is None:
            return Result.success([])
        async with self._lock:
            try:
                return Result.success(await self._load_scope(scope, filters))
            except ADAPTER_ERRORS as exc:
                message = _describe(exc)
                logger.warning("Reading {} failed: {}", self.entity, message)
                return Result.failure(storage_failure(message))

    async def set_scope(self, event_id: Optional[str]) -> Result[list[R]]:
        """Switch the owning-event filter and re-run :meth:`list`."""
        filters = {k: v for k, v in self._filters.items() if k != "event_id"}
        if event_id is not None:
            filters["event_id"] = event_id
        return await self.list(**filters)

    async def create(self, data: dict[str, Any]) -> Result[R]:
        identity = self._identity()
        scope = self._scope()
        if identity is None or scope is None:
            return Result.failure(not_authenticated())

        cls = self.entity_cls
        payload = {k: _plain(v) for k, v in dict(data).items() if k not in cls.system_fields() and k != "updated_at"}
        try:
            payload = self._prepare_create(payload, identity)
        except AppError as exc:
            return Result.failure(exc)
        now = _now_iso()
        payload.update(id=cls.new_id(), created_at=now, updated_at=now)
        payload[cls.CREATOR_FIELD] = identity.id
        try:
            record: R = validate_record(cls, payload)  # type: ignore[assignment]
        except ValidationError as exc:
            return Result.failure(validation_failure(validation_message(exc)))

        visible = self.matches(record, self._filters)
        self._provisional[record.id] = (scope, record)
        if visible:
            self._items.insert(0, record)
            self._publish("created", record.id)

        try:
            async with self._lock:
                try:
                    row = await self._backend.insert(scope, record.to_dict())
                except ADAPTER_ERRORS as exc:
                    message = _describe(exc)
                    logger.warning("Create {} {} failed, rolling back: {}", self.entity, record.id, message)
                    if self._index(record.id) >= 0:
                        self._drop_cached(record.id)
                        self._publish("rolled_back", record.id)
                    return Result.failure(storage_failure(message))
        finally:
            self._provisional.pop(record.id, None)

        stored = self._decode_one(row, record)
        if self._put_cached(stored) is None and self._scope() == scope and self.matches(stored, self._filters):
            # The cache was reset while the write was queued.
            self._items.insert(0, stored)
            self._publish("created", stored.id)
        logger.info("Created {} {}", self.entity, stored.id)
        return Result.success(stored)

    async def update(self, record_id: str, changes: dict[str, Any]) -> Result[R]:
        """Merge *changes* into the durable record and mirror it in place."""
        return await self.update_with(record_id, lambda current: dict(changes))

    async def update_with(self, record_id: str, make_patch: Callable[[R], dict[str, Any]]) -> Result[R]:
        """Read, patch and write one record while holding the store lock.

        *make_patch* receives the current durable record.
        """
        scope = self._scope()
        if self._identity() is None or scope is None:
            return Result.failure(not_authenticated())

        cls = self.entity_cls
        async with self._lock:
            try:
                raw = await self._backend.get(scope, record_id)
                if raw is None:
                    return Result.failure(not_found(f"{cls.__name__} {record_id} not found"))
                current: R = decode_records(cls, [raw])[0]  # type: ignore[assignment]
            except ADAPTER_ERRORS as exc:
                message = _describe(exc)
                logger.warning("Reading {} {} failed: {}", self.entity, record_id, message)
                return Result.failure(storage_failure(message))

            try:
                patch = {
                    k: _plain(v)
                    for k, v in make_patch(current).items()
                    if k not in cls.system_fields() and k != "updated_at"
                }
                patch = self._prepare_update(current, patch)
            except AppError as exc:
                return Result.failure(exc)
            merged = current.to_dict()
            merged.update(patch)
            merged["updated_at"] = _now_iso()
            try:
                updated: R = validate_record(cls, merged)  # type: ignore[assignment]
            except ValidationError as exc:
                return Result.failure(validation_failure(validation_message(exc)))

            previous = self._put_cached(updated)
            if previous is not None:
                self._publish("updated", updated.id, fields=sorted(patch))
            try:
                row = await self._backend.replace(scope, updated.to_dict())
            except ADAPTER_ERRORS as exc:
                message = _describe(exc)
                logger.warning("Update {} {} failed, rolling back: {}", self.entity, record_id, message)
                if previous is not None:
                    self._put_cached(previous)
                    self._publish("rolled_back", record_id)
                return Result.failure(storage_failure(message))

        stored = self._decode_one(row, updated)
        if stored is not updated:
            self._put_cached(stored)
        logger.debug("Updated {} {} ({})", self.entity, record_id, ", ".join(sorted(patch)) or "touch")
        return Result.success(stored)

    async def delete(self, record_id: str) -> Result[None]:
        scope = self._scope()
        if self._identity() is None or scope is None:
            return Result.failure(not_authenticated())

        async with self._lock:
            try:
                raw = await self._backend.get(scope, record_id)
            except ADAPTER_ERRORS as exc:
                return Result.failure(storage_failure(_describe(exc)))
            if raw is None:
                return Result.failure(not_found(f"{self.entity_cls.__name__} {record_id} not found"))

            idx = self._index(record_id)
            previous = self._items[idx] if idx >= 0 else None
            if previous is not None:
                self._drop_cached(record_id)
                self._publish("deleted", record_id)
            try:
                await self._backend.remove(scope, record_id)
            except ADAPTER_ERRORS as exc:
                message = _describe(exc)
                logger.warning("Delete {} {} failed, rolling back: {}", self.entity, record_id, message)
                if previous is not None:
                    self._items.insert(idx, previous)
                    self._publish("rolled_back", record_id)
                return Result.failure(storage_failure(message))
        logger.debug("Deleted {} {}", self.entity, record_id)
        return Result.success()

    async def _update_where(self, predicate: Callable[[R], bool], changes: dict[str, Any]) -> Result[list[R]]:
        """Apply the same *changes* to every durable record matching *predicate*."""
        scope = self._scope()
        if self._identity() is None or scope is None:
            return Result.failure(not_authenticated())

        async with self._lock:
            try:
                records = await self._load_scope(scope, {})
            except ADAPTER_ERRORS as exc:
                return Result.failure(storage_failure(_describe(exc)))
            now = _now_iso()
            targets: list[R] = [r.copy(**changes, updated_at=now) for r in records if predicate(r)]  # type: ignore[misc]
            if not targets:
                return Result.success([])

            previous = [(t, self._put_cached(t)) for t in targets]
            self._publish("updated", "", ids=[t.id for t in targets], fields=sorted(changes))
            try:
                await self._backend.replace_many(scope, [t.to_dict() for t in targets])
            except ADAPTER_ERRORS as exc:
                message = _describe(exc)
                logger.warning("Bulk update of {} failed, rolling back: {}", self.entity, message)
                for _, old in previous:
                    if old is not None:
                        self._put_cached(old)
                self._publish("rolled_back", "")
                return Result.failure(storage_failure(message))
        return Result.success(targets)


def unique(values: Iterable[str]) -> list[str]:
    """De-duplicate while keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            out.append(value)
    return out
