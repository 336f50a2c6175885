"""
Storage Services Package

Provides abstract interfaces and concrete implementations for the local
ledger cache and the audit trail.
"""

from payback.services.storage.interface import (
    AuditStorageInterface,
    PersistenceError,
    PersistenceStore,
    StorageError,
)
from payback.services.storage.json_file import JsonFilePersistenceStore
from payback.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryPersistenceStore,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "PersistenceStore",
    # Exceptions
    "PersistenceError",
    "StorageError",
    # Implementations
    "InMemoryAuditStorage",
    "InMemoryPersistenceStore",
    "JsonFilePersistenceStore",
]
