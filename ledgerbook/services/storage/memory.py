"""
In-Memory Storage Implementation

DESIGN DECISION: Each store is a repository that owns a dict of pydantic
models keyed by a monotonic integer id.

- Reads hand out deep copies, so report code works on a snapshot
  and callers can never mutate the stored state by accident.
- Writes are serialized by one asyncio.Lock per store.
- Every successful write bumps `version`, which the report engine
  uses as part of its cache key.
- An optional artificial delay imitates a remote API.

TRADEOFFS:
- Nothing survives the process (fine for a mock backend)
- Queries are linear scans (we're fine for a single set of books)
"""

import asyncio
import json
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, ClassVar, Generic, Optional, TypeVar, TYPE_CHECKING
from uuid import UUID

from pydantic import BaseModel

from ledgerbook.config import get_settings
from ledgerbook.errors import NotFoundError
from ledgerbook.models.accounts import utc_now
from ledgerbook.models.audit import AuditEvent, AuditOperation
from ledgerbook.services.storage.interface import (
    AuditStorageInterface,
    RepositoryInterface,
)

if TYPE_CHECKING:
    from ledgerbook.audit import AuditLogger

M = TypeVar("M", bound=BaseModel)


def dump_for_audit(item: Optional[BaseModel]) -> Optional[dict]:
    """JSON-safe dict of a model, for old/new values in the audit log."""
    if item is None:
        return None
    return item.model_dump(mode="json")


class InMemoryRepository(RepositoryInterface[M], Generic[M]):
    """
    Base class for the in-memory stores.

    Subclasses set `model`, `entity_type` and `entity_label`, and may
    override the `_prepare_create`, `_prepare_update` and `_check_delete`
    hooks. Hooks run while the store lock is held.
    """

    model: ClassVar[type[BaseModel]]
    entity_type: ClassVar[str] = "entity"
    entity_label: ClassVar[str] = "Record"

    def __init__(
        self,
        items: Optional[list] = None,
        audit_logger: Optional["AuditLogger"] = None,
        latency_ms: Optional[int] = None,
    ):
        """
        Initialize the store.

        Args:
            items: Seed data. Items keep their ids when they have one.
            audit_logger: Receives create/update/delete operations.
                         If None, writes are not audited.
            latency_ms: Artificial delay per call. Defaults to settings.
        """
        self._items: dict[int, M] = {}
        self._next_id = 1
        self._version = 0
        self._lock = asyncio.Lock()
        self._audit_logger = audit_logger

        if latency_ms is None:
            latency_ms = get_settings().app.simulated_latency_ms
        self._latency = latency_ms / 1000

        for item in items or []:
            self._seed(self._coerce(item))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def version(self) -> int:
        return self._version

    def _coerce(self, item: Any) -> M:
        if isinstance(item, dict):
            return self.model.model_validate(item)
        if not isinstance(item, self.model):
            raise TypeError(f"Expected {self.model.__name__}, got {type(item).__name__}")
        return item

    def _seed(self, item: M) -> None:
        item_id = item.id if item.id is not None else self._next_id
        stored = item.model_copy(update={"id": item_id}, deep=True)
        self._items[item_id] = stored
        self._next_id = max(self._next_id, item_id + 1)

    async def _delay(self) -> None:
        if self._latency:
            await asyncio.sleep(self._latency)

    def _snapshot(self, item: M) -> M:
        return item.model_copy(deep=True)

    def _require(self, item_id: int) -> M:
        item = self._items.get(item_id)
        if item is None:
            raise NotFoundError(
                f"{self.entity_label} not found: {item_id}",
                user_message=f"{self.entity_label} not found",
            )
        return item

    def _changes(self, item: M) -> dict:
        """Short summary recorded as the `changes` of an audit entry."""
        return {}

    async def _prepare_create(self, item: M) -> M:
        return item

    async def _prepare_update(self, existing: M, item: M) -> M:
        return item

    async def _check_delete(self, existing: M) -> None:
        return None

    async def _audit(
        self,
        entity_id: int,
        operation: AuditOperation,
        changes: Optional[dict] = None,
        old: Optional[M] = None,
        new: Optional[M] = None,
    ) -> None:
        if self._audit_logger is None:
            return
        await self._audit_logger.log_operation(
            entity_type=self.entity_type,
            entity_id=entity_id,
            operation=operation,
            changes=changes,
            old_values=dump_for_audit(old),
            new_values=dump_for_audit(new),
        )

    def _values(self) -> list[M]:
        """Stored items in id order (not copies: internal use only)."""
        return [self._items[k] for k in sorted(self._items)]

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def get_all(self) -> list[M]:
        await self._delay()
        return [self._snapshot(item) for item in self._values()]

    async def get_by_id(self, item_id: int) -> M:
        await self._delay()
        return self._snapshot(self._require(item_id))

    async def create(self, item: M) -> M:
        await self._delay()
        item = self._coerce(item)
        async with self._lock:
            prepared = await self._prepare_create(item)
            new_id = self._next_id
            stored = prepared.model_copy(update={"id": new_id}, deep=True)
            self._items[new_id] = stored
            self._next_id += 1
            self._version += 1

        await self._audit(new_id, AuditOperation.CREATE, self._changes(stored), None, stored)
        return self._snapshot(stored)

    async def update(self, item_id: int, item: M) -> M:
        await self._delay()
        item = self._coerce(item)
        async with self._lock:
            existing = self._require(item_id)
            prepared = await self._prepare_update(existing, item)
            stored = prepared.model_copy(update={"id": item_id}, deep=True)
            self._items[item_id] = stored
            self._version += 1

        await self._audit(item_id, AuditOperation.UPDATE, self._changes(stored), existing, stored)
        return self._snapshot(stored)

    async def delete(self, item_id: int) -> bool:
        await self._delay()
        async with self._lock:
            existing = self._require(item_id)
            await self._check_delete(existing)
            del self._items[item_id]
            self._version += 1

        await self._audit(item_id, AuditOperation.DELETE, None, existing, None)
        return True


class InMemoryAuditStorage(AuditStorageInterface):
    """
    Append-only audit log.

    Events are frozen models with ids from a monotonic counter.
    There is deliberately no update or delete method.
    """

    def __init__(self, events: Optional[list[AuditEvent]] = None):
        self._events: list[AuditEvent] = []
        self._next_id = 1
        self._lock = asyncio.Lock()
        for event in events or []:
            event_id = event.id if event.id is not None else self._next_id
            self._events.append(event.model_copy(update={"id": event_id}))
            self._next_id = max(self._next_id, event_id + 1)

    def __len__(self) -> int:
        return len(self._events)

    async def append_event(self, event: AuditEvent) -> AuditEvent:
        async with self._lock:
            stored = event.model_copy(update={"id": self._next_id}, deep=True)
            self._next_id += 1
            self._events.append(stored)
        return stored

    async def get_by_id(self, event_id: int) -> AuditEvent:
        for event in self._events:
            if event.id == event_id:
                return event
        raise NotFoundError(
            f"Audit log not found: {event_id}",
            user_message="Audit log not found",
        )

    def _newest_first(self, events: list[AuditEvent]) -> list[AuditEvent]:
        return sorted(events, key=lambda e: (e.timestamp, e.id), reverse=True)

    async def get_all(self) -> list[AuditEvent]:
        return self._newest_first(self._events)

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: (e.timestamp, e.id))

    async def get_by_entity(
        self,
        entity_type: str,
        entity_id: Optional[int] = None,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type
            and (entity_id is None or e.entity_id == entity_id)
        ]
        return self._newest_first(events)

    async def get_by_user(self, user_id: str) -> list[AuditEvent]:
        return self._newest_first([e for e in self._events if e.user_id == user_id])

    async def get_by_date_range(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[AuditEvent]:
        start = datetime.combine(date_from, time.min, tzinfo=timezone.utc) if date_from else None
        end = datetime.combine(date_to, time.max, tzinfo=timezone.utc) if date_to else None
        events = [
            e for e in self._events
            if (start is None or e.timestamp >= start)
            and (end is None or e.timestamp <= end)
        ]
        return self._newest_first(events)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return self._newest_first(self._events)[:limit]

    async def search(
        self,
        query: str = "",
        entity_type: Optional[str] = None,
        operation: Optional[AuditOperation] = None,
        user_id: Optional[str] = None,
    ) -> list[AuditEvent]:
        """Free text over entity type, operation, user and changes."""
        needle = query.strip().lower()
        results = []
        for event in self._events:
            if entity_type is not None and event.entity_type != entity_type:
                continue
            if operation is not None and event.operation != operation:
                continue
            if user_id is not None and event.user_id != user_id:
                continue
            if needle:
                haystack = " ".join([
                    event.entity_type,
                    event.operation.value,
                    event.user_name or "",
                    json.dumps(event.changes or {}, default=str),
                ]).lower()
                if needle not in haystack:
                    continue
            results.append(event)
        return self._newest_first(results)

    async def get_stats(self) -> dict:
        """Counts per day bucket, per operation and per entity type."""
        today = utc_now().date()
        yesterday = today - timedelta(days=1)
        week_ago = today - timedelta(days=7)

        operations: dict[str, int] = {}
        entities: dict[str, int] = {}
        for event in self._events:
            operations[event.operation.value] = operations.get(event.operation.value, 0) + 1
            entities[event.entity_type] = entities.get(event.entity_type, 0) + 1

        days = [e.timestamp.date() for e in self._events]
        return {
            "total": len(self._events),
            "today": sum(1 for d in days if d == today),
            "yesterday": sum(1 for d in days if d == yesterday),
            "last_7_days": sum(1 for d in days if d >= week_ago),
            "operations": operations,
            "entities": entities,
        }
