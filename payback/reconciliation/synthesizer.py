"""
Group Synthesizer

Guarantees that every expense has a group. An expense can arrive without
its group when the group fetch failed, when another device deleted the
group, or when an import only carried expenses. For each missing group id
a group is rebuilt from the expenses that reference it.

Conflicting memberships across orphan expenses are unioned; synthesis
never fails.
"""

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from payback.models.ledger import Expense, Friend, Group, Member, SessionContext


def placeholder_name(member_id: UUID) -> str:
    """Fallback display name built from the first block of the id."""
    return f"Friend {str(member_id).split('-')[0].upper()}"


def _usable_name(name: Optional[str], ctx: SessionContext) -> Optional[str]:
    if name is None:
        return None
    cleaned = " ".join(name.split())
    if not cleaned or ctx.matches_current_user_name(cleaned):
        return None
    return cleaned


def resolve_member_name(
    member_id: UUID,
    candidates: list[str],
    known_names: dict[UUID, str],
    friends: dict[UUID, Friend],
    ctx: SessionContext,
) -> str:
    """
    Pick a display name for a synthesized member.

    Order: the current user's own name, a name already known from another
    group, a participant name carried by the expenses, the friend record,
    then a placeholder.
    """
    if ctx.is_current_user_id(member_id):
        return ctx.current_user.name

    known = _usable_name(known_names.get(member_id), ctx)
    if known:
        return known

    for candidate in candidates:
        usable = _usable_name(candidate, ctx)
        if usable:
            return usable

    friend = friends.get(member_id)
    if friend is not None and friend.name.strip():
        return friend.name.strip()

    return placeholder_name(member_id)


def synthesized_group_name(
    members: list[Member],
    is_direct: bool,
    expenses: list[Expense],
    ctx: SessionContext,
) -> str:
    others = [m for m in members if not ctx.is_current_user_id(m.id)]

    if is_direct and others:
        return others[0].name
    if len(others) == 1:
        return others[0].name
    if len(others) == 2:
        return f"{others[0].name} & {others[1].name}"
    if 3 <= len(others) <= 4:
        return "Group with " + ", ".join(m.name for m in others)

    if expenses:
        description = expenses[0].description.strip()
        if description:
            return f"{description} Group"

    return "Imported Group"


def synthesize_group(
    group_id: UUID,
    expenses: list[Expense],
    ctx: SessionContext,
    known_names: Optional[dict[UUID, str]] = None,
    friends: Optional[dict[UUID, Friend]] = None,
) -> Group:
    """
    Build the group for one missing group id.

    Members are the union of payers and involved members across the
    expenses, plus the current user, sorted case-insensitively by name.
    """
    known_names = known_names or {}
    friends = friends or {}

    member_ids: list[UUID] = []
    candidates: dict[UUID, list[str]] = {}
    for expense in expenses:
        for member_id in [expense.paid_by_member_id, *expense.involved_member_ids]:
            if member_id not in member_ids:
                member_ids.append(member_id)
        for member_id, name in (expense.participant_names or {}).items():
            candidates.setdefault(member_id, []).append(name)

    if ctx.current_user.id not in member_ids:
        member_ids.append(ctx.current_user.id)

    members = [
        Member(
            id=member_id,
            name=resolve_member_name(
                member_id, candidates.get(member_id, []), known_names, friends, ctx
            ),
        )
        for member_id in member_ids
    ]
    members.sort(key=lambda m: m.name.casefold())

    is_direct = len(members) == 2
    created_at: Optional[datetime] = min((e.date for e in expenses), default=None)

    fields = {
        "id": group_id,
        "name": synthesized_group_name(members, is_direct, expenses, ctx),
        "members": members,
        "is_direct": is_direct,
    }
    if created_at is not None:
        fields["created_at"] = created_at
    return Group(**fields)


def synthesize_missing_groups(
    expenses: Iterable[Expense],
    groups: Iterable[Group],
    ctx: SessionContext,
    friends: Iterable[Friend] = (),
) -> list[Group]:
    """
    Synthesize one group per group id that expenses reference but no
    group provides.

    Args:
        expenses: Expenses to check
        groups: Every group already known (fetched and local)
        ctx: Current session
        friends: Friend records used as a name source

    Returns:
        The new groups, in order of first orphan expense
    """
    groups = list(groups)
    existing_ids = {g.id for g in groups}

    known_names: dict[UUID, str] = {}
    for group in groups:
        for member in group.members:
            known_names.setdefault(member.id, member.name)
    friends_by_id = {f.member_id: f for f in friends}

    orphans: dict[UUID, list[Expense]] = {}
    for expense in expenses:
        if expense.group_id not in existing_ids:
            orphans.setdefault(expense.group_id, []).append(expense)

    synthesized: list[Group] = []
    for group_id, group_expenses in orphans.items():
        group = synthesize_group(group_id, group_expenses, ctx, known_names, friends_by_id)
        synthesized.append(group)
        for member in group.members:
            known_names.setdefault(member.id, member.name)

    return synthesized
