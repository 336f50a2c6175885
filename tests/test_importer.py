"""Tests for bulk import into a LedgerStore."""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from payback.importer import import_parsed_data
from payback.models.audit import AuditEventType
from payback.models.export import (
    ImportStatus,
    ParsedExpense,
    ParsedExpenseSplit,
    ParsedExportData,
    ParsedFriend,
    ParsedGroup,
    ParsedGroupMember,
    ParsedInvolvedMember,
    ParsedParticipantName,
)
from payback.orchestrator import LedgerStore
from payback.services.storage import PersistenceError


EXPORTED_AT = datetime(2024, 5, 1, tzinfo=timezone.utc)


@pytest.fixture
def parsed():
    """An export with one friend, one group and one expense paid by the friend."""
    me, sam, group_id, expense_id = uuid4(), uuid4(), uuid4(), uuid4()
    return ParsedExportData(
        exported_at=EXPORTED_AT,
        account_email="alex@example.com",
        current_user_id=me,
        current_user_name="Alex",
        friends=[ParsedFriend(member_id=sam, name="Sam")],
        groups=[ParsedGroup(id=group_id, name="Trip", created_at=EXPORTED_AT, member_count=2)],
        group_members=[
            ParsedGroupMember(group_id=group_id, member_id=me, member_name="Alex"),
            ParsedGroupMember(group_id=group_id, member_id=sam, member_name="Sam"),
        ],
        expenses=[
            ParsedExpense(
                id=expense_id,
                group_id=group_id,
                description="Fuel",
                date=EXPORTED_AT,
                total_amount=Decimal("20"),
                paid_by_member_id=sam,
            )
        ],
        expense_involved_members=[
            ParsedInvolvedMember(expense_id=expense_id, member_id=me),
            ParsedInvolvedMember(expense_id=expense_id, member_id=sam),
        ],
        expense_splits=[
            ParsedExpenseSplit(expense_id=expense_id, split_id=uuid4(), member_id=me, amount=Decimal("10")),
            ParsedExpenseSplit(expense_id=expense_id, split_id=uuid4(), member_id=sam, amount=Decimal("10")),
        ],
        participant_names=[
            ParsedParticipantName(expense_id=expense_id, member_id=sam, name="Sam"),
        ],
    )


class TestImport:
    """Tests for mapping export data onto the store."""

    def test_import_maps_exporting_user_to_current_user(self, store, parsed, persistence):
        result = asyncio.run(import_parsed_data(store, parsed))

        assert result.status == ImportStatus.SUCCESS
        assert result.summary.friends_added == 1
        assert result.summary.groups_added == 1
        assert result.summary.expenses_added == 1

        group = store.groups[0]
        me = store.current_user.id
        assert group.name == "Trip"
        assert me in group.member_ids
        assert parsed.groups[0].id != group.id

        expense = store.expenses[0]
        assert expense.id != parsed.expenses[0].id
        assert expense.group_id == group.id
        assert expense.paid_by_member_id != parsed.friends[0].member_id
        assert {s.member_id for s in expense.splits} == set(group.member_ids)
        assert store.net_balance(group) == Decimal("-10")

        # Foreground save
        assert persistence.save_count == 1
        assert persistence.data.expenses[0].id == expense.id

    def test_friend_matched_by_name(self, store, parsed):
        async def scenario():
            flat = await store.add_group("Flat", ["sam"])
            result = await import_parsed_data(store, parsed)
            return flat, result

        flat, result = asyncio.run(scenario())

        known_sam = flat.members[1].id
        assert result.summary.friends_added == 0
        assert store.expenses[0].paid_by_member_id == known_sam
        assert [f.member_id for f in store.friends] == [known_sam]

    def test_group_matched_by_name(self, store, parsed):
        async def scenario():
            trip = await store.add_group("trip", ["Jo"])
            result = await import_parsed_data(store, parsed)
            return trip, result

        trip, result = asyncio.run(scenario())

        assert result.summary.groups_added == 0
        assert len(store.groups) == 1
        assert store.expenses[0].group_id == trip.id

    def test_expense_without_group_is_reported(self, store, parsed):
        orphan = ParsedExpense(
            id=uuid4(),
            group_id=uuid4(),
            description="Taxi",
            date=EXPORTED_AT,
            total_amount=Decimal("8"),
            paid_by_member_id=parsed.current_user_id,
        )
        parsed = parsed.model_copy(update={"expenses": parsed.expenses + [orphan]})

        result = asyncio.run(import_parsed_data(store, parsed))

        assert result.status == ImportStatus.PARTIAL_SUCCESS
        assert result.errors == ["Skipped expense 'Taxi': group not found"]
        assert result.summary.expenses_added == 1

    def test_import_is_audited_and_pushed(self, store, parsed, audit_storage, group_source, expense_source):
        async def scenario():
            await import_parsed_data(store, parsed)
            await store.wait_for_background_tasks()

        asyncio.run(scenario())

        assert AuditEventType.IMPORT_COMPLETED in [e.event_type for e in audit_storage.events]
        assert [g.name for g in group_source.groups] == ["Trip"]
        assert len(expense_source.expenses) == 1

    def test_persistence_failure_propagates(self, failing_persistence, sync_settings, parsed):
        store = LedgerStore(persistence=failing_persistence, sync_settings=sync_settings)

        with pytest.raises(PersistenceError):
            asyncio.run(import_parsed_data(store, parsed))

    def test_summary_description(self, store, parsed):
        result = asyncio.run(import_parsed_data(store, parsed))
        assert result.summary.description == "Added 1 friend, 1 group, 1 expense"
