"""Tests for current-user alias resolution."""

from decimal import Decimal
from uuid import uuid4

from payback.models.ledger import Member, SessionContext, Split, UserAccount
from payback.reconciliation import (
    current_user_id_count,
    find_alias,
    resolve_aliases,
    rewrite_expense,
)


class TestFindAlias:
    """Tests for alias detection."""

    def test_group_with_canonical_member_has_no_alias(self, ctx, me, sam, make_group):
        group = make_group("Trip", me, sam, Member(name="Alex Morgan"))
        assert find_alias(group, ctx) is None

    def test_alias_found_by_name_case_insensitively(self, ctx, sam, make_group):
        alias = Member(name="  alex   MORGAN ")
        group = make_group("Trip", sam, alias)
        assert find_alias(group, ctx) == alias

    def test_known_member_id_wins_over_name(self, me, sam, make_group):
        """Test that an equivalent id of the account is preferred to a name match."""
        older_id = uuid4()
        ctx = SessionContext(
            current_user=me,
            account=UserAccount(
                id="a", email="a@x.io", display_name=me.name,
                equivalent_member_ids=[older_id],
            ),
        )
        by_name = Member(name=me.name)
        by_id = Member(id=older_id, name="Old phone")
        group = make_group("Trip", by_name, sam, by_id)
        assert find_alias(group, ctx) == by_id

    def test_no_candidate(self, ctx, sam, jo, make_group):
        assert find_alias(make_group("Trip", sam, jo), ctx) is None


class TestResolveAliases:
    """Tests for the structural rewrite."""

    def test_alias_replaced_not_appended(self, ctx, me, sam, make_group):
        """Remote group with a same-named member gains the canonical id, same size."""
        alias = Member(name="Alex Morgan")
        group = make_group("Trip", sam, alias)

        result = resolve_aliases([group], [], ctx)

        resolved = result.groups[0]
        assert me.id in resolved.member_ids
        assert alias.id not in resolved.member_ids
        assert len(resolved.members) == len(group.members)
        assert resolved.member_ids.index(me.id) == 1
        assert result.aliases == {group.id: alias.id}
        assert result.dirty_groups == [resolved]

    def test_expense_references_are_rewritten(self, ctx, me, sam, make_group, make_expense):
        alias = Member(name="Alex Morgan")
        group = make_group("Trip", sam, alias)
        expense = make_expense(
            group.id,
            alias.id,
            {alias.id: 20, sam.id: 20},
            participant_names={alias.id: "Alex Morgan", sam.id: "Sam"},
        )

        result = resolve_aliases([group], [expense], ctx)

        rewritten = result.expenses[0]
        assert rewritten.id == expense.id
        assert rewritten.paid_by_member_id == me.id
        assert rewritten.involved_member_ids == [me.id, sam.id]
        assert [s.member_id for s in rewritten.splits] == [me.id, sam.id]
        assert set(rewritten.participant_names) == {me.id, sam.id}
        assert result.dirty_expenses == [rewritten]

    def test_expenses_of_other_groups_untouched(self, ctx, sam, make_group, make_expense):
        alias = Member(name="Alex Morgan")
        group = make_group("Trip", sam, alias)
        elsewhere = make_expense(uuid4(), alias.id, {alias.id: 5})

        result = resolve_aliases([group], [elsewhere], ctx)

        assert result.expenses == [elsewhere]
        assert result.dirty_expenses == []

    def test_first_candidate_wins(self, ctx, me, sam, make_group):
        """Test the first-encountered tie-break for same-named candidates."""
        first = Member(name="Alex Morgan")
        second = Member(name="alex morgan")
        group = make_group("Trip", first, sam, second)

        resolved = resolve_aliases([group], [], ctx).groups[0]

        assert resolved.member_ids == [me.id, sam.id, second.id]

    def test_resolution_is_idempotent(self, ctx, sam, jo, make_group, make_expense):
        alias = Member(name="Alex Morgan")
        groups = [make_group("Trip", sam, alias), make_group("Flat", jo)]
        expenses = [make_expense(groups[0].id, sam.id, {alias.id: 10, sam.id: 10})]

        once = resolve_aliases(groups, expenses, ctx)
        twice = resolve_aliases(once.groups, once.expenses, ctx)

        assert twice.groups == once.groups
        assert twice.expenses == once.expenses
        assert twice.changed is False

    def test_never_increases_current_user_ids(self, ctx, me, sam, make_group):
        groups = [
            make_group("None", sam),
            make_group("Alias", sam, Member(name="Alex Morgan")),
            make_group("Two aliases", Member(name="Alex Morgan"), Member(name="ALEX MORGAN")),
            make_group("Canonical", me, Member(name="Alex Morgan")),
        ]

        result = resolve_aliases(groups, [], ctx)

        for before, after in zip(groups, result.groups):
            assert current_user_id_count(after, ctx) <= current_user_id_count(before, ctx)


class TestRewriteExpense:
    """Tests for split merging when ids collapse."""

    def test_colliding_splits_are_merged(self, me, make_expense):
        alias = Member(name="Alex")
        expense = make_expense(uuid4(), me.id, {me.id: 10})
        expense = expense.model_copy(update={
            "splits": [
                Split(member_id=me.id, amount=Decimal("10"), is_settled=True),
                Split(member_id=alias.id, amount=Decimal("5"), is_settled=False),
            ],
            "involved_member_ids": [me.id, alias.id],
        })

        rewritten = rewrite_expense(expense, alias.id, me)

        assert len(rewritten.splits) == 1
        assert rewritten.splits[0].id == expense.splits[0].id
        assert rewritten.splits[0].amount == Decimal("15")
        assert rewritten.splits[0].is_settled is False
        assert rewritten.involved_member_ids == [me.id]

    def test_unreferenced_alias_returns_same_expense(self, me, sam, make_expense):
        expense = make_expense(uuid4(), sam.id, {sam.id: 10})
        assert rewrite_expense(expense, uuid4(), me) is expense
