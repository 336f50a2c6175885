"""
Shared fixtures for PayBack Ledger Sync tests.

No network and no disk (except tmp_path): every collaborator is the
in-memory implementation. Async code is driven with asyncio.run.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

import pytest

from payback.audit import AuditLogger
from payback.config import SyncSettings
from payback.models.ledger import (
    Expense,
    Group,
    Member,
    SessionContext,
    Split,
    UserAccount,
)
from payback.orchestrator import LedgerStore
from payback.services.remote import (
    InMemoryExpenseSource,
    InMemoryFriendDirectory,
    InMemoryGroupSource,
)
from payback.services.storage import (
    InMemoryAuditStorage,
    InMemoryPersistenceStore,
    PersistenceError,
)


BASE_DATE = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _make_expense(
    group_id: UUID,
    paid_by: UUID,
    shares: dict,
    description: str = "Dinner",
    settled: Optional[set] = None,
    days: int = 0,
    **extra,
) -> Expense:
    """Build an expense with one split per entry of `shares` (member id -> amount)."""
    settled = settled or set()
    splits = [
        Split(member_id=member_id, amount=Decimal(str(amount)), is_settled=member_id in settled)
        for member_id, amount in shares.items()
    ]
    return Expense(
        group_id=group_id,
        description=description,
        date=BASE_DATE + timedelta(days=days),
        total_amount=sum((s.amount for s in splits), Decimal("0")),
        paid_by_member_id=paid_by,
        involved_member_ids=list(shares.keys()),
        splits=splits,
        **extra,
    )


class FailingPersistenceStore(InMemoryPersistenceStore):
    """Persistence store whose saves fail while `fail` is set."""

    def __init__(self):
        super().__init__()
        self.fail = True

    async def save(self, data) -> None:
        if self.fail:
            raise PersistenceError("disk full")
        await super().save(data)


@pytest.fixture
def me() -> Member:
    return Member(name="Alex Morgan")


@pytest.fixture
def ctx(me) -> SessionContext:
    account = UserAccount(
        id="acct-1",
        email="Alex@Example.com",
        display_name="Alex Morgan",
        linked_member_id=me.id,
    )
    return SessionContext(current_user=me, account=account)


@pytest.fixture
def sam() -> Member:
    return Member(name="Sam")


@pytest.fixture
def jo() -> Member:
    return Member(name="Jo")


@pytest.fixture
def sync_settings() -> SyncSettings:
    return SyncSettings(
        debounce_ms=50,
        retry_attempts=2,
        retry_min_wait_s=0,
        retry_max_wait_s=0,
    )


@pytest.fixture
def group_source() -> InMemoryGroupSource:
    return InMemoryGroupSource()


@pytest.fixture
def expense_source() -> InMemoryExpenseSource:
    return InMemoryExpenseSource()


@pytest.fixture
def friend_directory() -> InMemoryFriendDirectory:
    return InMemoryFriendDirectory()


@pytest.fixture
def persistence() -> InMemoryPersistenceStore:
    return InMemoryPersistenceStore()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()


@pytest.fixture
def store(
    persistence,
    group_source,
    expense_source,
    friend_directory,
    audit_storage,
    sync_settings,
) -> LedgerStore:
    return LedgerStore(
        persistence=persistence,
        group_source=group_source,
        expense_source=expense_source,
        friend_directory=friend_directory,
        audit_logger=AuditLogger(audit_storage),
        sync_settings=sync_settings,
    )


def _make_group(name: str, *members: Member, group_id: Optional[UUID] = None) -> Group:
    return Group(id=group_id or uuid4(), name=name, members=list(members), created_at=BASE_DATE)


@pytest.fixture
def make_expense():
    return _make_expense


@pytest.fixture
def make_group():
    return _make_group


@pytest.fixture
def failing_persistence() -> FailingPersistenceStore:
    return FailingPersistenceStore()
