"""
Remote Collaborator Interfaces

The groups service, the expense service and the friend directory are
independent remote sources. They may disagree about member identity and
may fail independently; the reconciliation engine only relies on the
operations declared here.

Transport, authentication and timeouts belong to the implementations.
"""

from abc import ABC, abstractmethod
from uuid import UUID

from payback.models.ledger import Expense, ExpenseParticipant, Friend, Group


class GroupRemoteSource(ABC):
    """Remote store of groups."""

    @abstractmethod
    async def fetch_groups(self) -> list[Group]:
        """
        Fetch all groups visible to the session.

        Raises:
            RemoteSourceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def upsert_group(self, group: Group) -> None:
        """Create or replace a group by id."""
        pass

    @abstractmethod
    async def delete_groups(self, group_ids: list[UUID]) -> None:
        """Delete groups by id. Unknown ids are ignored."""
        pass


class ExpenseRemoteSource(ABC):
    """Remote store of expenses."""

    @abstractmethod
    async def fetch_expenses(self) -> list[Expense]:
        """
        Fetch all expenses visible to the session.

        Raises:
            RemoteSourceError: If the fetch fails
        """
        pass

    @abstractmethod
    async def upsert_expense(
        self,
        expense: Expense,
        participants: list[ExpenseParticipant],
    ) -> None:
        """
        Create or replace an expense by id.

        Args:
            expense: The expense to write
            participants: Display metadata for every involved member
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: UUID) -> None:
        """Delete an expense by id. Unknown ids are ignored."""
        pass


class FriendDirectory(ABC):
    """Per-account friend list."""

    @abstractmethod
    async def sync_friends(self, account_email: str, friends: list[Friend]) -> None:
        """Replace the account's friend list."""
        pass

    @abstractmethod
    async def fetch_friends(self, account_email: str) -> list[Friend]:
        """Fetch the account's friend list."""
        pass


class RemoteSourceError(Exception):
    """Base exception for remote collaborator failures."""
    pass


class RemoteUnavailableError(RemoteSourceError):
    """Transient failure (network down, service unavailable). Retryable."""
    pass


class FriendSyncError(RemoteSourceError):
    """The friend directory rejected or failed a sync."""
    pass
