"""Settlement and balance computation."""

from payback.settlement.engine import (
    can_settle_for_all,
    can_settle_for_self,
    current_user_split_member,
    expense_balance,
    net_balance,
    overall_net_balance,
    settle_all_splits,
    settle_split,
)

__all__ = [
    "can_settle_for_all",
    "can_settle_for_self",
    "current_user_split_member",
    "expense_balance",
    "net_balance",
    "overall_net_balance",
    "settle_all_splits",
    "settle_split",
]
