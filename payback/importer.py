"""
Bulk Import

Turns decoded export data into groups and expenses and merges them into
a LedgerStore through the same normalization pipeline as remote data.

Mapping rules:
- The exporting user's member id maps to the current user
- Friends match existing friends by name (case-insensitive) or get new ids
- Groups match existing groups by name or are created with new ids;
  the current user is always a member of a created group
- Expenses always get new ids; their member references are remapped

DESIGN DECISION: An import is a foreground save. The snapshot is written
before returning and a write failure propagates to the caller.
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from payback.models.export import (
    ImportResult,
    ImportStatus,
    ImportSummary,
    ParsedExpense,
    ParsedExportData,
)
from payback.models.ledger import (
    Expense,
    Group,
    Member,
    SessionContext,
    Split,
    Subexpense,
    normalized_name,
)
from payback.orchestrator import LedgerStore
from payback.reconciliation import normalize_batch


logger = structlog.get_logger(__name__)


class _ImportContext:
    """Id mappings built while walking the parsed data."""

    def __init__(self, parsed: ParsedExportData, ctx: SessionContext):
        self.parsed = parsed
        self.ctx = ctx
        self.member_ids: dict[UUID, UUID] = {}
        self.group_ids: dict[UUID, UUID] = {}
        if parsed.current_user_id is not None:
            self.member_ids[parsed.current_user_id] = ctx.current_user.id

    def member(self, member_id: UUID) -> UUID:
        return self.member_ids.get(member_id, member_id)


def _map_friends(state: _ImportContext, store: LedgerStore) -> int:
    added = 0
    existing = {normalized_name(f.name): f for f in store.friends}
    for parsed_friend in state.parsed.friends:
        if parsed_friend.member_id == state.parsed.current_user_id:
            continue
        match = existing.get(normalized_name(parsed_friend.name))
        if match is not None:
            state.member_ids[parsed_friend.member_id] = match.member_id
        else:
            state.member_ids[parsed_friend.member_id] = uuid4()
            added += 1
    return added


def _build_groups(state: _ImportContext, store: LedgerStore) -> list[Group]:
    current_user = state.ctx.current_user
    existing = {normalized_name(g.name): g for g in store.groups}
    created: list[Group] = []

    for parsed_group in state.parsed.groups:
        match = existing.get(normalized_name(parsed_group.name))
        if match is not None:
            state.group_ids[parsed_group.id] = match.id
            continue

        members: list[Member] = []
        for entry in state.parsed.group_members:
            if entry.group_id != parsed_group.id:
                continue
            if entry.member_id == state.parsed.current_user_id:
                member = current_user
            else:
                member = Member(id=state.member(entry.member_id), name=entry.member_name)
            if member.id not in {m.id for m in members}:
                members.append(member)

        if current_user.id not in {m.id for m in members}:
            members.insert(0, current_user)

        group = Group(
            id=uuid4(),
            name=parsed_group.name,
            members=members,
            created_at=parsed_group.created_at,
            is_direct=parsed_group.is_direct,
            is_debug=parsed_group.is_debug,
        )
        state.group_ids[parsed_group.id] = group.id
        created.append(group)

    return created


def _build_expense(state: _ImportContext, parsed_expense: ParsedExpense) -> Optional[Expense]:
    group_id = state.group_ids.get(parsed_expense.group_id)
    if group_id is None:
        return None
    parsed = state.parsed

    involved: list[UUID] = []
    for entry in parsed.expense_involved_members:
        if entry.expense_id == parsed_expense.id:
            mapped = state.member(entry.member_id)
            if mapped not in involved:
                involved.append(mapped)

    # Remapping can land two rows on one member; merge them
    splits: dict[UUID, Split] = {}
    for entry in parsed.expense_splits:
        if entry.expense_id != parsed_expense.id:
            continue
        mapped = state.member(entry.member_id)
        previous = splits.get(mapped)
        if previous is None:
            splits[mapped] = Split(
                member_id=mapped,
                amount=entry.amount,
                is_settled=entry.is_settled,
            )
        else:
            splits[mapped] = previous.model_copy(update={
                "amount": previous.amount + entry.amount,
                "is_settled": previous.is_settled and entry.is_settled,
            })

    names = {
        state.member(entry.member_id): entry.name
        for entry in parsed.participant_names
        if entry.expense_id == parsed_expense.id
    }
    subexpenses = [
        Subexpense(amount=entry.amount)
        for entry in parsed.expense_subexpenses
        if entry.expense_id == parsed_expense.id
    ]

    return Expense(
        id=uuid4(),
        group_id=group_id,
        description=parsed_expense.description,
        date=parsed_expense.date,
        total_amount=parsed_expense.total_amount,
        paid_by_member_id=state.member(parsed_expense.paid_by_member_id),
        involved_member_ids=involved,
        splits=list(splits.values()),
        subexpenses=subexpenses or None,
        participant_names=names or None,
        is_debug=parsed_expense.is_debug,
    )


async def import_parsed_data(store: LedgerStore, parsed: ParsedExportData) -> ImportResult:
    """
    Import decoded export data into a store.

    Expenses whose group cannot be resolved are skipped and reported in
    the result's errors.

    Raises:
        PersistenceError: If the imported state cannot be written
    """
    ctx = store.session
    state = _ImportContext(parsed, ctx)
    errors: list[str] = []

    friends_added = _map_friends(state, store)
    groups = _build_groups(state, store)

    expenses: list[Expense] = []
    for parsed_expense in parsed.expenses:
        expense = _build_expense(state, parsed_expense)
        if expense is None:
            errors.append(f"Skipped expense '{parsed_expense.description}': group not found")
            continue
        expenses.append(expense)

    batch = normalize_batch(
        groups,
        expenses,
        ctx,
        known_groups=store.groups,
        friends=store.friends,
    )
    await store.apply_batch(batch)
    await store.gate.flush_now()

    summary = ImportSummary(
        friends_added=friends_added,
        groups_added=len(groups),
        expenses_added=len(expenses),
    )
    status = ImportStatus.PARTIAL_SUCCESS if errors else ImportStatus.SUCCESS

    logger.info(
        "import_completed",
        status=status.value,
        summary=summary.description,
        errors=len(errors),
    )
    await store.audit_logger.log_import_completed(summary.description, len(errors))

    return ImportResult(status=status, summary=summary, errors=errors)
