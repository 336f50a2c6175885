"""Services package."""

from payback.services.remote import (
    ExpenseRemoteSource,
    FriendDirectory,
    FriendSyncError,
    GroupRemoteSource,
    InMemoryExpenseSource,
    InMemoryFriendDirectory,
    InMemoryGroupSource,
    RemoteSourceError,
    RemoteUnavailableError,
    call_with_retry,
)
from payback.services.storage import (
    AuditStorageInterface,
    InMemoryAuditStorage,
    InMemoryPersistenceStore,
    JsonFilePersistenceStore,
    PersistenceError,
    PersistenceStore,
    StorageError,
)

__all__ = [
    # Remote services
    "ExpenseRemoteSource",
    "FriendDirectory",
    "FriendSyncError",
    "GroupRemoteSource",
    "InMemoryExpenseSource",
    "InMemoryFriendDirectory",
    "InMemoryGroupSource",
    "RemoteSourceError",
    "RemoteUnavailableError",
    "call_with_retry",
    # Storage services
    "AuditStorageInterface",
    "InMemoryAuditStorage",
    "InMemoryPersistenceStore",
    "JsonFilePersistenceStore",
    "PersistenceError",
    "PersistenceStore",
    "StorageError",
]
