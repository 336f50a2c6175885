"""
Merge helpers for the reconciliation cycle.

Remote entities overwrite local entities with the same id; local-only
entities are kept because they may have been created offline and not
yet pushed. Applying the same batch twice yields the same store.
"""

from typing import Iterable, Optional, TypeVar
from uuid import UUID

from payback.models.ledger import (
    Expense,
    Friend,
    Group,
    SessionContext,
    normalized_name,
)

T = TypeVar("T", Group, Expense)


def merge_by_id(local: Iterable[T], remote: Iterable[T]) -> list[T]:
    """
    Union two entity lists by id, remote winning.

    Local order is preserved; remote-only entities are appended in their
    remote order.
    """
    remote_by_id: dict[UUID, T] = {}
    for entity in remote:
        remote_by_id[entity.id] = entity

    merged: list[T] = []
    seen: set[UUID] = set()
    for entity in local:
        if entity.id in seen:
            continue
        merged.append(remote_by_id.get(entity.id, entity))
        seen.add(entity.id)
    for entity_id, entity in remote_by_id.items():
        if entity_id not in seen:
            merged.append(entity)
            seen.add(entity_id)
    return merged


def is_direct_group(group: Group, ctx: SessionContext) -> bool:
    """
    Whether a group is a one-to-one group with a friend.

    Explicitly flagged groups are direct. Otherwise empty and self-only
    groups count as direct, as does a two-member group named after the
    other member.
    """
    if group.is_direct:
        return True

    member_ids = set(group.member_ids)
    if not member_ids:
        return True
    if member_ids == {ctx.current_user.id}:
        return True

    if len(member_ids) == 2 and ctx.current_user.id in member_ids:
        other = next((m for m in group.members if not ctx.is_current_user(m)), None)
        if other is not None and normalized_name(group.name) == normalized_name(other.name):
            return True

    return False


def has_other_members(group: Group, ctx: SessionContext) -> bool:
    """Whether any member id is not one of the current user's ids."""
    return any(not ctx.is_current_user_id(m.id) for m in group.members)


def self_only_group_ids(
    groups: Iterable[Group],
    ctx: SessionContext,
    expenses: Iterable[Expense] = (),
) -> set[UUID]:
    """
    Ids of groups that can be pruned.

    A group qualifies when no member besides the current user is in it
    (by id) and no expense references it. Groups holding expenses are
    kept, including those synthesized for orphan expenses.
    """
    referenced = {e.group_id for e in expenses}
    return {
        g.id for g in groups
        if g.id not in referenced and not has_other_members(g, ctx)
    }


def derive_friends(
    groups: Iterable[Group],
    ctx: SessionContext,
    remote_friends: Iterable[Friend] = (),
) -> list[Friend]:
    """
    Build the friend list from group membership.

    Every distinct member that is not the current user becomes a friend.
    Metadata (nickname, linked account) is carried over from the remote
    friend record with the same member id when there is one.

    Returns:
        Friends sorted case-insensitively by name
    """
    remote_by_id = {f.member_id: f for f in remote_friends}
    friends: dict[UUID, Friend] = {}

    for group in groups:
        for member in group.members:
            if member.id in friends or ctx.is_current_user(member):
                continue
            remote = remote_by_id.get(member.id)
            if remote is not None:
                friends[member.id] = remote.model_copy(update={"name": member.name})
            else:
                friends[member.id] = Friend(
                    member_id=member.id,
                    name=member.name,
                    has_linked_account=member.linked_account_id is not None,
                    linked_account_id=member.linked_account_id,
                )

    return sorted(friends.values(), key=lambda f: f.name.casefold())


def find_direct_group(
    groups: Iterable[Group],
    member_id: UUID,
    ctx: SessionContext,
) -> Optional[Group]:
    """The direct group shared by the current user and one member, if any."""
    for group in groups:
        if not is_direct_group(group, ctx):
            continue
        ids = set(group.member_ids)
        if member_id in ids and ctx.current_user.id in ids and len(ids) == 2:
            return group
    return None
