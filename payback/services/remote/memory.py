"""
In-Memory Remote Sources

Dictionary-backed implementations of the remote collaborator interfaces.
Used when running offline and as test doubles: each source can be told to
fail its next N fetches to exercise partial-failure handling.
"""

import asyncio
from typing import Optional
from uuid import UUID

from payback.models.ledger import Expense, ExpenseParticipant, Friend, Group
from payback.services.remote.interface import (
    ExpenseRemoteSource,
    FriendDirectory,
    GroupRemoteSource,
)


class InMemoryGroupSource(GroupRemoteSource):

    def __init__(self, groups: Optional[list[Group]] = None):
        self._groups: dict[UUID, Group] = {g.id: g for g in groups or []}
        self.fetch_error: Optional[Exception] = None
        self.fetch_failures_remaining = 0
        self.fetch_count = 0
        self.fetch_delay = 0.0
        self.upserted: list[Group] = []
        self.deleted_ids: list[UUID] = []

    @property
    def groups(self) -> list[Group]:
        return list(self._groups.values())

    def fail_next_fetches(self, error: Exception, times: int = 1) -> None:
        self.fetch_error = error
        self.fetch_failures_remaining = times

    async def fetch_groups(self) -> list[Group]:
        self.fetch_count += 1
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fetch_failures_remaining > 0 and self.fetch_error is not None:
            self.fetch_failures_remaining -= 1
            raise self.fetch_error
        return list(self._groups.values())

    async def upsert_group(self, group: Group) -> None:
        self._groups[group.id] = group
        self.upserted.append(group)

    async def delete_groups(self, group_ids: list[UUID]) -> None:
        for group_id in group_ids:
            self._groups.pop(group_id, None)
            self.deleted_ids.append(group_id)


class InMemoryExpenseSource(ExpenseRemoteSource):

    def __init__(self, expenses: Optional[list[Expense]] = None):
        self._expenses: dict[UUID, Expense] = {e.id: e for e in expenses or []}
        self.fetch_error: Optional[Exception] = None
        self.fetch_failures_remaining = 0
        self.fetch_count = 0
        self.fetch_delay = 0.0
        self.upserted: list[tuple[Expense, list[ExpenseParticipant]]] = []
        self.deleted_ids: list[UUID] = []

    @property
    def expenses(self) -> list[Expense]:
        return list(self._expenses.values())

    def fail_next_fetches(self, error: Exception, times: int = 1) -> None:
        self.fetch_error = error
        self.fetch_failures_remaining = times

    async def fetch_expenses(self) -> list[Expense]:
        self.fetch_count += 1
        if self.fetch_delay:
            await asyncio.sleep(self.fetch_delay)
        if self.fetch_failures_remaining > 0 and self.fetch_error is not None:
            self.fetch_failures_remaining -= 1
            raise self.fetch_error
        return list(self._expenses.values())

    async def upsert_expense(
        self,
        expense: Expense,
        participants: list[ExpenseParticipant],
    ) -> None:
        self._expenses[expense.id] = expense
        self.upserted.append((expense, participants))

    async def delete_expense(self, expense_id: UUID) -> None:
        self._expenses.pop(expense_id, None)
        self.deleted_ids.append(expense_id)


class InMemoryFriendDirectory(FriendDirectory):

    def __init__(self, friends: Optional[dict[str, list[Friend]]] = None):
        self._friends: dict[str, list[Friend]] = dict(friends or {})
        self.sync_error: Optional[Exception] = None
        self.sync_calls: list[tuple[str, list[Friend]]] = []

    def friends_for(self, account_email: str) -> list[Friend]:
        return list(self._friends.get(account_email, []))

    async def sync_friends(self, account_email: str, friends: list[Friend]) -> None:
        self.sync_calls.append((account_email, list(friends)))
        if self.sync_error is not None:
            raise self.sync_error
        self._friends[account_email] = list(friends)

    async def fetch_friends(self, account_email: str) -> list[Friend]:
        return list(self._friends.get(account_email, []))
