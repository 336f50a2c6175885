"""Remote collaborator services package."""

from payback.services.remote.interface import (
    ExpenseRemoteSource,
    FriendDirectory,
    FriendSyncError,
    GroupRemoteSource,
    RemoteSourceError,
    RemoteUnavailableError,
)
from payback.services.remote.memory import (
    InMemoryExpenseSource,
    InMemoryFriendDirectory,
    InMemoryGroupSource,
)
from payback.services.remote.retry import call_with_retry

__all__ = [
    # Interfaces
    "ExpenseRemoteSource",
    "FriendDirectory",
    "GroupRemoteSource",
    # Exceptions
    "FriendSyncError",
    "RemoteSourceError",
    "RemoteUnavailableError",
    # In-memory implementations
    "InMemoryExpenseSource",
    "InMemoryFriendDirectory",
    "InMemoryGroupSource",
    # Retry
    "call_with_retry",
]
