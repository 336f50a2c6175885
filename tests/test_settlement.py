"""Tests for the settlement engine."""

from decimal import Decimal
from uuid import uuid4

from payback.models.ledger import Member, SessionContext, UserAccount
from payback.settlement import (
    can_settle_for_all,
    can_settle_for_self,
    net_balance,
    overall_net_balance,
    settle_all_splits,
    settle_split,
)


class TestSettleSplit:
    """Tests for marking splits settled."""

    def test_settling_last_split_settles_expense(self, me, sam, make_expense):
        """Two $50 splits, one pre-settled: settling the other settles the expense."""
        expense = make_expense(uuid4(), me.id, {me.id: 50, sam.id: 50}, settled={me.id})

        updated = settle_split(expense, sam.id)

        assert updated.is_settled is True
        assert all(split.is_settled for split in updated.splits)

    def test_partial_settlement_leaves_expense_open(self, me, sam, jo, make_expense):
        """Three $50 splits, one settled: only that split is settled."""
        expense = make_expense(
            uuid4(), me.id, {me.id: 50, sam.id: 50, jo.id: 50}, settled={sam.id}
        )

        assert expense.is_settled is False
        assert [s.is_settled for s in expense.splits] == [False, True, False]

    def test_settle_returns_none_without_split(self, me, sam, make_expense):
        """Test that settling a member without a split changes nothing."""
        expense = make_expense(uuid4(), me.id, {me.id: 50})
        assert settle_split(expense, sam.id) is None

    def test_settle_does_not_mutate_original(self, me, sam, make_expense):
        """Test that settlement returns a copy."""
        expense = make_expense(uuid4(), me.id, {me.id: 50, sam.id: 50})
        settle_split(expense, sam.id)
        assert expense.split_for(sam.id).is_settled is False

    def test_settle_all_splits(self, me, sam, make_expense):
        expense = make_expense(uuid4(), me.id, {me.id: 10, sam.id: 10})
        assert settle_all_splits(expense).is_settled is True


class TestCanSettle:
    """Tests for settlement permissions."""

    def test_payer_can_settle_for_all(self, ctx, me, sam, make_expense):
        """Test that only the payer settles for everyone."""
        mine = make_expense(uuid4(), me.id, {me.id: 10, sam.id: 10})
        theirs = make_expense(uuid4(), sam.id, {me.id: 10, sam.id: 10})
        assert can_settle_for_all(mine, ctx) is True
        assert can_settle_for_all(theirs, ctx) is False

    def test_split_owner_can_settle_for_self(self, ctx, me, sam, jo, make_expense):
        """Test that the user needs a split to settle their share."""
        involved = make_expense(uuid4(), sam.id, {me.id: 10, sam.id: 10})
        not_involved = make_expense(uuid4(), sam.id, {jo.id: 10, sam.id: 10})
        assert can_settle_for_self(involved, ctx) is True
        assert can_settle_for_self(not_involved, ctx) is False


class TestNetBalance:
    """Tests for balances. Positive means the user is owed."""

    def test_user_paid_others_owe(self, ctx, me, sam, jo, make_group, make_expense):
        group = make_group("Trip", me, sam, jo)
        expenses = [make_expense(group.id, me.id, {me.id: 30, sam.id: 30, jo.id: 30})]
        assert net_balance(group, expenses, ctx) == Decimal("60")

    def test_other_paid_user_owes(self, ctx, me, sam, make_group, make_expense):
        group = make_group("Trip", me, sam)
        expenses = [make_expense(group.id, sam.id, {me.id: 25, sam.id: 25})]
        assert net_balance(group, expenses, ctx) == Decimal("-25")

    def test_settled_splits_are_excluded(self, ctx, me, sam, jo, make_group, make_expense):
        """Test that a settled split contributes zero."""
        group = make_group("Trip", me, sam, jo)
        expenses = [
            make_expense(group.id, me.id, {me.id: 30, sam.id: 30, jo.id: 30}, settled={sam.id}),
        ]
        assert net_balance(group, expenses, ctx) == Decimal("30")

    def test_fully_settled_group_balances_to_zero(self, ctx, me, sam, make_group, make_expense):
        group = make_group("Trip", me, sam)
        expenses = [
            make_expense(group.id, me.id, {me.id: 40, sam.id: 40}, settled={me.id, sam.id}),
            make_expense(group.id, sam.id, {me.id: 15, sam.id: 15}, settled={me.id, sam.id}),
        ]
        assert net_balance(group, expenses, ctx) == Decimal("0")

    def test_expense_between_others_is_ignored(self, ctx, me, sam, jo, make_group, make_expense):
        """Test that the user is unaffected by expenses they are not part of."""
        group = make_group("Trip", me, sam, jo)
        expenses = [make_expense(group.id, sam.id, {sam.id: 10, jo.id: 10})]
        assert net_balance(group, expenses, ctx) == Decimal("0")

    def test_only_group_expenses_count(self, ctx, me, sam, make_group, make_expense):
        group = make_group("Trip", me, sam)
        expenses = [make_expense(uuid4(), me.id, {me.id: 10, sam.id: 10})]
        assert net_balance(group, expenses, ctx) == Decimal("0")

    def test_equivalent_member_id_counts_as_user(self, me, sam, make_group, make_expense):
        """Test that an older member id of the account is treated as the user."""
        older = Member(name="Alex (old phone)")
        ctx = SessionContext(
            current_user=me,
            account=UserAccount(
                id="a", email="a@x.io", display_name=me.name,
                equivalent_member_ids=[older.id],
            ),
        )
        group = make_group("Trip", older, sam)
        expenses = [make_expense(group.id, older.id, {older.id: 20, sam.id: 20})]
        assert net_balance(group, expenses, ctx) == Decimal("20")

    def test_overall_net_balance_sums_groups(self, ctx, me, sam, jo, make_group, make_expense):
        trip = make_group("Trip", me, sam)
        flat = make_group("Flat", me, jo)
        expenses = [
            make_expense(trip.id, me.id, {me.id: 50, sam.id: 50}),
            make_expense(flat.id, jo.id, {me.id: 20, jo.id: 20}),
        ]
        assert overall_net_balance([trip, flat], expenses, ctx) == Decimal("30")
