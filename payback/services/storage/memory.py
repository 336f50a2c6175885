"""
In-Memory Storage Implementations

Used for offline runs and tests. Snapshots are deep-copied on the way in
and out so callers never share state with the store.
"""

from typing import Optional
from uuid import UUID

from payback.models.audit import AuditEvent
from payback.models.ledger import AppData
from payback.services.storage.interface import AuditStorageInterface, PersistenceStore


class InMemoryPersistenceStore(PersistenceStore):
    """Keeps the last saved snapshot in memory."""

    def __init__(self, initial: Optional[AppData] = None):
        self._data = initial.model_copy(deep=True) if initial else None
        self.save_count = 0
        self.clear_count = 0

    @property
    def data(self) -> Optional[AppData]:
        return self._data

    async def save(self, data: AppData) -> None:
        self._data = data.model_copy(deep=True)
        self.save_count += 1

    async def load(self) -> AppData:
        if self._data is None:
            return AppData()
        return self._data.model_copy(deep=True)

    async def clear(self) -> None:
        self._data = None
        self.clear_count += 1


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    @property
    def events(self) -> list[AuditEvent]:
        return list(self._events)

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
