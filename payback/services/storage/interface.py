"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap the JSON file cache for another local store
2. Use in-memory storage for testing
3. Keep reconciliation logic decoupled from the on-disk format

The interface is intentionally small: the ledger is always written and
read as one AppData snapshot.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from payback.models.audit import AuditEvent
from payback.models.ledger import AppData


class PersistenceStore(ABC):
    """
    Abstract interface for the local ledger cache.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def save(self, data: AppData) -> None:
        """
        Replace the stored snapshot.

        Args:
            data: The full groups/expenses snapshot

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def load(self) -> AppData:
        """
        Load the stored snapshot.

        Returns:
            The stored snapshot, or an empty AppData when nothing
            usable is stored
        """
        pass

    @abstractmethod
    async def clear(self) -> None:
        """
        Remove the stored snapshot.

        Raises:
            PersistenceError: If the removal fails
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (one reconciliation cycle).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """Reading or writing the ledger snapshot failed."""
    pass
