"""
Identity Resolver

Remote sources create members independently, so the current user can show
up in a fetched group under an id that is not the session's canonical
member id (an "alias"). This module rewrites such aliases to the canonical
id.

DESIGN DECISION: Resolution is a structural rewrite. Groups and expenses
are frozen values, so every changed entity is a new copy produced with
model_copy; nothing shared is mutated.

Policy:
- A group that already contains the canonical id is left alone.
- Otherwise the alias is the first member (in member order) that is a
  known current-user id, or failing that the first member whose name
  matches the current user's name. Later candidates are left untouched.
- The alias entry is replaced in place, so the member count never changes.

Because a rewritten group contains the canonical id, a second pass over
the output finds nothing to do.
"""

from typing import Iterable, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from payback.models.ledger import Expense, Group, Member, SessionContext, Split


class ResolutionResult(BaseModel):
    """Output of one resolution pass."""

    groups: list[Group] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    # group id -> alias member id that was replaced
    aliases: dict[UUID, UUID] = Field(default_factory=dict)
    dirty_groups: list[Group] = Field(default_factory=list)
    dirty_expenses: list[Expense] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.dirty_groups or self.dirty_expenses)


def find_alias(group: Group, ctx: SessionContext) -> Optional[Member]:
    """
    Find the member of a group that stands for the current user.

    Returns None when the canonical member is already present or when no
    candidate exists.
    """
    canonical_id = ctx.current_user.id
    if canonical_id in group.member_ids:
        return None

    for member in group.members:
        if ctx.is_current_user_id(member.id):
            return member

    for member in group.members:
        if ctx.matches_current_user_name(member.name):
            return member

    return None


def _replace_member(group: Group, alias_id: UUID, canonical: Member) -> Group:
    members = [canonical if m.id == alias_id else m for m in group.members]
    return group.model_copy(update={"members": members})


def _merge_splits(splits: list[Split], alias_id: UUID, canonical_id: UUID) -> list[Split]:
    """
    Rewrite split member ids, merging splits that land on the same member.

    A merged split keeps the first split's id, sums the amounts and is
    settled only if every merged split was.
    """
    merged: dict[UUID, Split] = {}
    for split in splits:
        target = canonical_id if split.member_id == alias_id else split.member_id
        existing = merged.get(target)
        if existing is None:
            merged[target] = split.model_copy(update={"member_id": target})
        else:
            merged[target] = existing.model_copy(update={
                "amount": existing.amount + split.amount,
                "is_settled": existing.is_settled and split.is_settled,
            })
    return list(merged.values())


def rewrite_expense(expense: Expense, alias_id: UUID, canonical: Member) -> Expense:
    """
    Substitute the canonical member id for an alias id everywhere in an
    expense. Returns the expense unchanged when the alias is not referenced.
    """
    canonical_id = canonical.id

    def remap(member_id: UUID) -> UUID:
        return canonical_id if member_id == alias_id else member_id

    involved: list[UUID] = []
    for member_id in expense.involved_member_ids:
        mapped = remap(member_id)
        if mapped not in involved:
            involved.append(mapped)

    participant_names = expense.participant_names
    if participant_names is not None:
        rewritten: dict[UUID, str] = {}
        for member_id, name in participant_names.items():
            mapped = remap(member_id)
            if mapped == canonical_id:
                rewritten[mapped] = canonical.name
            elif mapped not in rewritten:
                rewritten[mapped] = name
        participant_names = rewritten

    update = {
        "paid_by_member_id": remap(expense.paid_by_member_id),
        "involved_member_ids": involved,
        "splits": _merge_splits(expense.splits, alias_id, canonical_id),
        "participant_names": participant_names,
    }
    candidate = expense.model_copy(update=update)
    if candidate == expense:
        return expense
    return candidate


def resolve_aliases(
    groups: Iterable[Group],
    expenses: Iterable[Expense],
    ctx: SessionContext,
) -> ResolutionResult:
    """
    Rewrite current-user aliases in a batch of groups and their expenses.

    Only expenses whose group is in the batch are considered; expenses of
    other groups pass through unchanged.

    Args:
        groups: Fetched (or imported) groups
        expenses: Fetched (or imported) expenses
        ctx: Session identifying the canonical current user

    Returns:
        ResolutionResult with the rewritten batch and what changed
    """
    canonical = ctx.current_user
    result = ResolutionResult()

    for group in groups:
        alias = find_alias(group, ctx)
        if alias is None:
            result.groups.append(group)
            continue
        resolved = _replace_member(group, alias.id, canonical)
        result.aliases[group.id] = alias.id
        result.groups.append(resolved)
        result.dirty_groups.append(resolved)

    for expense in expenses:
        alias_id = result.aliases.get(expense.group_id)
        if alias_id is None:
            result.expenses.append(expense)
            continue
        resolved = rewrite_expense(expense, alias_id, canonical)
        result.expenses.append(resolved)
        if resolved is not expense:
            result.dirty_expenses.append(resolved)

    return result


def current_user_id_count(group: Group, ctx: SessionContext) -> int:
    """Number of distinct member ids in a group that represent the current user."""
    return len({m.id for m in group.members if ctx.is_current_user(m)})