"""
Settlement Engine

Pure functions over expenses and splits. Nothing here touches the store;
the orchestrator looks expenses up, calls these, and writes the result back.

CRITICAL: Balances are computed from unsettled splits only. A settled split
contributes exactly zero, so a group whose splits are all settled has a
net balance of zero.

Sign convention: positive means the current user is owed money, negative
means the current user owes money.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from payback.models.ledger import Expense, Group, SessionContext


ZERO = Decimal("0")


def settle_split(expense: Expense, member_id: UUID) -> Optional[Expense]:
    """
    Mark one member's split as settled.

    Returns a new expense, or None if the member has no split or the
    split is already settled.
    """
    split = expense.split_for(member_id)
    if split is None or split.is_settled:
        return None

    splits = [
        s.model_copy(update={"is_settled": True}) if s.member_id == member_id else s
        for s in expense.splits
    ]
    return expense.model_copy(update={"splits": splits})


def settle_all_splits(expense: Expense) -> Expense:
    """Mark every split as settled."""
    splits = [s.model_copy(update={"is_settled": True}) for s in expense.splits]
    return expense.model_copy(update={"splits": splits})


def can_settle_for_all(expense: Expense, ctx: SessionContext) -> bool:
    """Only the payer can settle an expense on everyone's behalf."""
    return ctx.is_current_user_id(expense.paid_by_member_id)


def can_settle_for_self(expense: Expense, ctx: SessionContext) -> bool:
    """The current user can settle their own share if they have one."""
    return any(ctx.is_current_user_id(split.member_id) for split in expense.splits)


def current_user_split_member(expense: Expense, ctx: SessionContext) -> Optional[UUID]:
    """The member id of the current user's split, if any."""
    if expense.split_for(ctx.current_user.id) is not None:
        return ctx.current_user.id
    for split in expense.splits:
        if ctx.is_current_user_id(split.member_id):
            return split.member_id
    return None


def expense_balance(expense: Expense, ctx: SessionContext) -> Decimal:
    """Contribution of one expense to the current user's balance."""
    user_paid = ctx.is_current_user_id(expense.paid_by_member_id)
    balance = ZERO
    for split in expense.unsettled_splits:
        is_user_split = ctx.is_current_user_id(split.member_id)
        if user_paid and not is_user_split:
            balance += split.amount
        elif not user_paid and is_user_split:
            balance -= split.amount
    return balance


def net_balance(group: Group, expenses: Iterable[Expense], ctx: SessionContext) -> Decimal:
    """
    Net balance of the current user within one group.

    Args:
        group: The group to balance
        expenses: Candidate expenses; only those of this group are counted
        ctx: The session identifying the current user
    """
    return sum(
        (expense_balance(e, ctx) for e in expenses if e.group_id == group.id),
        ZERO,
    )


def overall_net_balance(
    groups: Iterable[Group],
    expenses: Iterable[Expense],
    ctx: SessionContext,
) -> Decimal:
    """Sum of net_balance over all groups."""
    expenses = list(expenses)
    return sum((net_balance(g, expenses, ctx) for g in groups), ZERO)
