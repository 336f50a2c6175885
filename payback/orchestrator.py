"""
Reconciliation Orchestrator for PayBack Ledger Sync

This module ties together all the components and defines the
end-to-end flows for:
1. Reconciliation (fetch -> normalize -> merge -> persist)
2. Local mutations (write locally, push remotely in the background)
3. Settlement and balance queries over the merged store

DESIGN DECISION: The store is a single-writer. Every change to the
in-memory collections happens while holding one asyncio.Lock, and the
session is passed explicitly into every normalization and query call.

The orchestrator enforces the boundaries:
- Every expense has a group after reconciliation
- A failed fetch is an empty contribution, never an error for the caller
- Background writes never raise; foreground writes always do
- Every swallowed failure is audited
"""

import asyncio
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional
from uuid import UUID

import structlog

from payback.audit import AuditLogger, create_correlation_id
from payback.config import SyncSettings, get_settings
from payback.models.ledger import (
    AppData,
    Expense,
    ExpenseParticipant,
    Friend,
    Group,
    Member,
    SessionContext,
    UserAccount,
    normalized_name,
)
from payback.persistence import PersistenceGate
from payback.reconciliation import (
    NormalizedBatch,
    derive_friends,
    find_direct_group,
    has_other_members,
    is_direct_group,
    merge_by_id,
    normalize_batch,
    rewrite_expense,
    self_only_group_ids,
    synthesize_missing_groups,
)
from payback.services.remote import (
    ExpenseRemoteSource,
    FriendDirectory,
    GroupRemoteSource,
    InMemoryExpenseSource,
    InMemoryFriendDirectory,
    InMemoryGroupSource,
    call_with_retry,
)
from payback.services.storage import (
    AuditStorageInterface,
    JsonFilePersistenceStore,
    PersistenceStore,
)
from payback.settlement import engine as settlement


logger = structlog.get_logger(__name__)


class SyncPhase(str, Enum):
    """Where the reconciliation cycle currently is."""
    IDLE = "idle"
    FETCHING = "fetching"
    NORMALIZING = "normalizing"
    MERGING = "merging"
    PERSISTING = "persisting"


class LedgerStore:
    """
    The merged per-user view of groups, expenses and friends.

    Flow of a reconciliation cycle:
    1. Fetch remote groups, expenses and friends concurrently
    2. Resolve current-user aliases and synthesize missing groups
    3. Merge under the mutation lock (remote wins, local-only kept)
    4. Re-derive friends and sync them in the background
    5. Push rewritten records back in the background
    6. Schedule a debounced snapshot write
    """

    def __init__(
        self,
        persistence: PersistenceStore,
        group_source: Optional[GroupRemoteSource] = None,
        expense_source: Optional[ExpenseRemoteSource] = None,
        friend_directory: Optional[FriendDirectory] = None,
        audit_logger: Optional[AuditLogger] = None,
        sync_settings: Optional[SyncSettings] = None,
        placeholder_name: Optional[str] = None,
    ):
        settings = get_settings()
        self._sync_settings = sync_settings or settings.sync
        self._placeholder_name = placeholder_name or settings.app.placeholder_user_name

        self._persistence = persistence
        self._group_source = group_source or InMemoryGroupSource()
        self._expense_source = expense_source or InMemoryExpenseSource()
        self._friend_directory = friend_directory or InMemoryFriendDirectory()
        self._audit_logger = audit_logger or AuditLogger()

        self._lock = asyncio.Lock()
        self._groups: list[Group] = []
        self._expenses: list[Expense] = []
        self._friends: list[Friend] = []
        self._session = SessionContext.placeholder(self._placeholder_name)

        # Bumped on sign-out so in-flight cycles of the old session are dropped
        self._generation = 0
        self._phase = SyncPhase.IDLE
        self._active_cycles = 0
        self._tasks: set[asyncio.Task] = set()

        self._gate = PersistenceGate(
            persistence,
            snapshot=self.snapshot,
            debounce_seconds=self._sync_settings.debounce_seconds,
            audit_logger=self._audit_logger,
        )

    # =========================================================================
    # ACCESSORS
    # =========================================================================

    @property
    def groups(self) -> list[Group]:
        return list(self._groups)

    @property
    def expenses(self) -> list[Expense]:
        return list(self._expenses)

    @property
    def friends(self) -> list[Friend]:
        return list(self._friends)

    @property
    def current_user(self) -> Member:
        return self._session.current_user

    @property
    def session(self) -> SessionContext:
        return self._session

    @property
    def phase(self) -> SyncPhase:
        return self._phase

    @property
    def gate(self) -> PersistenceGate:
        return self._gate

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    async def snapshot(self) -> AppData:
        """A consistent point-in-time copy of the ledger."""
        async with self._lock:
            return AppData(groups=list(self._groups), expenses=list(self._expenses))

    async def load_local(self) -> None:
        """Populate the store from the local snapshot."""
        data = await self._persistence.load()
        async with self._lock:
            self._groups = merge_by_id(data.groups, self._groups)
            self._expenses = merge_by_id(data.expenses, self._expenses)
            self._friends = derive_friends(self._groups, self._session, self._friends)
        logger.info(
            "local_snapshot_loaded",
            groups=len(data.groups),
            expenses=len(data.expenses),
        )

    async def wait_for_background_tasks(self) -> None:
        """Wait for detached remote writes, friend syncs and the pending flush."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._gate.drain()

    # =========================================================================
    # SESSION
    # =========================================================================

    async def complete_authentication(
        self,
        account_id: str,
        email: str,
        name: str,
        linked_member_id: Optional[UUID] = None,
    ) -> None:
        """
        Establish the session and run one reconciliation cycle.

        The current user keeps the placeholder member id unless the
        account is already linked to a member. Local groups and expenses
        are updated to the new identity before fetching.
        """
        async with self._lock:
            previous = self._session.current_user
            member_id = linked_member_id or previous.id
            current_user = Member(id=member_id, name=name, linked_account_id=account_id)
            equivalents = [previous.id] if previous.id != member_id else []
            account = UserAccount(
                id=account_id,
                email=email,
                display_name=name,
                linked_member_id=member_id,
                equivalent_member_ids=equivalents,
            )
            self._session = SessionContext(current_user=current_user, account=account)
            self._apply_current_user_identity(previous.id, current_user)

        await self._audit_logger.log_user_authenticated(account_id, member_id)
        await self._reconcile("authentication")

    def _apply_current_user_identity(self, previous_id: UUID, current_user: Member) -> None:
        """Rename (and re-id) the current user's entries in local data."""
        replaced_ids = {previous_id, current_user.id}
        groups: list[Group] = []
        for group in self._groups:
            if not replaced_ids.intersection(group.member_ids):
                groups.append(group)
                continue
            members: list[Member] = []
            for member in group.members:
                if member.id not in replaced_ids:
                    members.append(member)
                elif current_user not in members:
                    members.append(current_user)
            groups.append(group.model_copy(update={"members": members}))
        self._groups = groups

        if previous_id != current_user.id:
            self._expenses = [
                rewrite_expense(e, previous_id, current_user) for e in self._expenses
            ]

    async def reload(self) -> None:
        """Run one reconciliation cycle for the current session."""
        if not self._session.is_authenticated:
            logger.info("reload_skipped", reason="no session")
            await self._audit_logger.log_sync_skipped("no authenticated session")
            return
        await self._reconcile("reload")

    async def sign_out(self) -> None:
        """
        Wipe the local ledger.

        Pending background work is cancelled and the empty state is written
        immediately, then the local store is cleared.

        Raises:
            PersistenceError: If the empty state cannot be written
        """
        async with self._lock:
            group_count = len(self._groups)
            expense_count = len(self._expenses)
            self._groups = []
            self._expenses = []
            self._friends = []
            self._session = SessionContext.placeholder(self._placeholder_name)
            self._generation += 1
            for task in list(self._tasks):
                task.cancel()
            self._gate.cancel_pending()

        await self._gate.flush_now(AppData())
        await self._persistence.clear()
        await self._audit_logger.log_signed_out(group_count, expense_count)

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    async def _reconcile(self, trigger: str) -> None:
        correlation_id = create_correlation_id()
        generation = self._generation
        self._active_cycles += 1
        try:
            self._phase = SyncPhase.FETCHING
            await self._audit_logger.log_sync_started(trigger, correlation_id)

            account_email = self._session.account_email
            remote_groups, remote_expenses, remote_friends = await asyncio.gather(
                self._fetch("groups", self._group_source.fetch_groups, correlation_id),
                self._fetch("expenses", self._expense_source.fetch_expenses, correlation_id),
                self._fetch_friends(account_email, correlation_id),
            )

            self._phase = SyncPhase.NORMALIZING
            async with self._lock:
                ctx = self._session
                known_groups = list(self._groups)
                known_friends = remote_friends or list(self._friends)
            batch = normalize_batch(
                remote_groups,
                remote_expenses,
                ctx,
                known_groups=known_groups,
                friends=known_friends,
            )

            self._phase = SyncPhase.MERGING
            async with self._lock:
                if generation != self._generation:
                    logger.info("reconcile_discarded", trigger=trigger, reason="signed out")
                    return
                ctx = self._session
                dirty_groups, pruned_groups = self._merge_locked(
                    batch, ctx, known_friends
                )
                friends = list(self._friends)
                group_count = len(self._groups)
                expense_count = len(self._expenses)

            self._phase = SyncPhase.PERSISTING
            self._start_friend_sync(ctx, friends)
            self._push_groups(dirty_groups)
            self._push_expenses(batch.dirty_expenses)
            self._delete_remote(pruned_groups, [])
            self._gate.mark_dirty()

            for group_id, alias_id in batch.aliases.items():
                await self._audit_logger.log_alias_resolved(
                    group_id, alias_id, ctx.current_user.id, correlation_id
                )
            synthesized = [g for g in dirty_groups if g.id not in batch.aliases]
            for group in synthesized:
                await self._audit_logger.log_group_synthesized(
                    group.id, group.name, len(group.members), correlation_id
                )
            await self._audit_logger.log_sync_completed(
                group_count=group_count,
                expense_count=expense_count,
                synthesized_count=len(synthesized),
                alias_count=len(batch.aliases),
                correlation_id=correlation_id,
            )
        finally:
            self._active_cycles -= 1
            if self._active_cycles == 0:
                self._phase = SyncPhase.IDLE

    def _merge_locked(
        self,
        batch: NormalizedBatch,
        ctx: SessionContext,
        remote_friends: list[Friend],
    ) -> tuple[list[Group], list[UUID]]:
        """
        Apply a normalized batch to the store. Caller holds the lock.

        Returns:
            (groups to push, pruned group ids)
        """
        groups = merge_by_id(self._groups, batch.groups)
        expenses = merge_by_id(self._expenses, batch.expenses)

        # Local expenses whose group is still missing after the merge
        late_synthesized = synthesize_missing_groups(expenses, groups, ctx, self._friends)
        groups.extend(late_synthesized)

        # Self-only groups that hold no expenses
        pruned = self_only_group_ids(groups, ctx, expenses)
        self._groups = [g for g in groups if g.id not in pruned]
        self._expenses = expenses
        self._friends = derive_friends(self._groups, ctx, remote_friends or self._friends)

        dirty = [
            g for g in batch.dirty_groups + late_synthesized if g.id not in pruned
        ]
        return dirty, sorted(pruned, key=str)

    async def _fetch(
        self,
        source: str,
        fetch: Callable[[], Awaitable[list]],
        correlation_id: UUID,
    ) -> list:
        """Fetch from one source; any failure counts as an empty result."""
        try:
            return await call_with_retry(fetch, self._sync_settings)
        except Exception as e:
            logger.warning("remote_fetch_failed", source=source, error=str(e))
            await self._audit_logger.log_remote_fetch_failed(source, str(e), correlation_id)
            return []

    async def _fetch_friends(
        self,
        account_email: Optional[str],
        correlation_id: UUID,
    ) -> list[Friend]:
        if not account_email:
            return []
        return await self._fetch(
            "friends",
            lambda: self._friend_directory.fetch_friends(account_email),
            correlation_id,
        )

    # =========================================================================
    # BACKGROUND WORK
    # =========================================================================

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _remote_write(
        self,
        operation: str,
        entity_type: str,
        entity_id: Optional[UUID],
        write: Callable[[], Awaitable[None]],
    ) -> None:
        try:
            await write()
        except Exception as e:
            logger.warning(
                "remote_write_failed",
                operation=operation,
                entity_type=entity_type,
                entity_id=str(entity_id) if entity_id else None,
                error=str(e),
            )
            await self._audit_logger.log_remote_write_failed(
                operation, entity_type, entity_id, str(e)
            )

    def _push_groups(self, groups: Iterable[Group]) -> None:
        for group in groups:
            self._spawn(self._remote_write(
                "upsert", "group", group.id,
                lambda group=group: self._group_source.upsert_group(group),
            ))

    def _push_expenses(self, expenses: Iterable[Expense]) -> None:
        for expense in expenses:
            participants = self.participants_for(expense)
            self._spawn(self._remote_write(
                "upsert", "expense", expense.id,
                lambda expense=expense, participants=participants:
                    self._expense_source.upsert_expense(expense, participants),
            ))

    def _delete_remote(self, group_ids: list[UUID], expense_ids: list[UUID]) -> None:
        if group_ids:
            self._spawn(self._remote_write(
                "delete", "group", None,
                lambda: self._group_source.delete_groups(group_ids),
            ))
        for expense_id in expense_ids:
            self._spawn(self._remote_write(
                "delete", "expense", expense_id,
                lambda expense_id=expense_id: self._expense_source.delete_expense(expense_id),
            ))

    def _start_friend_sync(self, ctx: SessionContext, friends: list[Friend]) -> None:
        """Detached friend sync; its outcome is only logged."""
        account_email = ctx.account_email
        if not account_email:
            return
        self._spawn(self._sync_friends(account_email, friends))

    async def _sync_friends(self, account_email: str, friends: list[Friend]) -> None:
        try:
            await self._friend_directory.sync_friends(account_email, friends)
        except Exception as e:
            logger.warning("friend_sync_failed", friends=len(friends), error=str(e))
            await self._audit_logger.log_friend_sync_failed(len(friends), str(e))

    def _refresh_friends_locked(self) -> list[Friend]:
        self._friends = derive_friends(self._groups, self._session, self._friends)
        return list(self._friends)

    def participants_for(self, expense: Expense) -> list[ExpenseParticipant]:
        """
        Participant metadata for an expense upsert.

        Names come from the group's members, then the expense's cached
        participant names, then friends, then a generic fallback.
        """
        group = self.group_by_id(expense.group_id)
        friends = {f.member_id: f for f in self._friends}
        names = expense.participant_names or {}

        member_ids: list[UUID] = []
        for member_id in [expense.paid_by_member_id, *expense.involved_member_ids]:
            if member_id not in member_ids:
                member_ids.append(member_id)

        participants = []
        for member_id in member_ids:
            member = group.member(member_id) if group else None
            friend = friends.get(member_id)
            if member is not None:
                name = member.name
            elif names.get(member_id, "").strip():
                name = names[member_id].strip()
            elif friend is not None:
                name = friend.display_name
            else:
                name = "Participant"
            linked_account_id = member.linked_account_id if member else None
            if linked_account_id is None and friend is not None:
                linked_account_id = friend.linked_account_id
            participants.append(ExpenseParticipant(
                member_id=member_id,
                name=name,
                linked_account_id=linked_account_id,
                linked_account_email=friend.linked_account_email if friend else None,
            ))
        return participants

    # =========================================================================
    # GROUP MUTATIONS
    # =========================================================================

    def _member_for_name(self, name: str) -> Member:
        """Reuse the id of a known person with this name, else a new member."""
        key = normalized_name(name)
        for friend in self._friends:
            if key in (normalized_name(friend.name), normalized_name(friend.display_name)):
                return Member(
                    id=friend.member_id,
                    name=name,
                    linked_account_id=friend.linked_account_id,
                )
        for group in self._groups:
            for member in group.members:
                if normalized_name(member.name) == key and not self._session.is_current_user(member):
                    return Member(id=member.id, name=name, linked_account_id=member.linked_account_id)
        return Member(name=name)

    async def add_group(self, name: str, member_names: list[str]) -> Group:
        """
        Create a group from display names.

        The current user is always a member. Names that match a friend or
        a member of another group reuse that person's id.
        """
        async with self._lock:
            members = [self._session.current_user]
            seen = set()
            for raw in member_names:
                cleaned = " ".join(raw.split())
                key = normalized_name(cleaned)
                if not key or key in seen or self._session.matches_current_user_name(cleaned):
                    continue
                seen.add(key)
                member = self._member_for_name(cleaned)
                if member.id not in {m.id for m in members}:
                    members.append(member)

            group = Group(name=name, members=members, is_direct=False)
            self._groups.append(group)
            friends = self._refresh_friends_locked()
            ctx = self._session

        self._gate.mark_dirty()
        self._push_groups([group])
        self._start_friend_sync(ctx, friends)
        return group

    async def add_existing_group(self, group: Group) -> None:
        """Add a group built elsewhere. No-op if its id is already present."""
        async with self._lock:
            if self._index_of_group(group.id) is not None:
                return
            self._groups.append(group)
            friends = self._refresh_friends_locked()
            ctx = self._session

        self._gate.mark_dirty()
        self._push_groups([group])
        self._start_friend_sync(ctx, friends)

    async def update_group(self, group: Group) -> None:
        async with self._lock:
            index = self._index_of_group(group.id)
            if index is None:
                return
            self._groups[index] = group
            friends = self._refresh_friends_locked()
            ctx = self._session

        self._gate.mark_dirty()
        self._push_groups([group])
        self._start_friend_sync(ctx, friends)

    async def delete_groups(self, group_ids: Iterable[UUID]) -> None:
        """Delete groups and, by cascade, every expense in them."""
        ids = set(group_ids)
        async with self._lock:
            removed_groups = [g.id for g in self._groups if g.id in ids]
            if not removed_groups:
                return
            removed_expenses = [e.id for e in self._expenses if e.group_id in ids]
            self._groups = [g for g in self._groups if g.id not in ids]
            self._expenses = [e for e in self._expenses if e.group_id not in ids]
            friends = self._refresh_friends_locked()
            ctx = self._session

        self._gate.mark_dirty()
        self._delete_remote(removed_groups, removed_expenses)
        self._start_friend_sync(ctx, friends)

    async def remove_member_from_group(self, group_id: UUID, member_id: UUID) -> None:
        """
        Remove a member and the group's expenses that involve them.

        The group is deleted when only the current user would remain.
        The current user cannot be removed.
        """
        async with self._lock:
            if self._session.is_current_user_id(member_id):
                return
            index = self._index_of_group(group_id)
            if index is None:
                return
            group = self._groups[index]
            if group.member(member_id) is None:
                return

            def involves(expense: Expense) -> bool:
                return (
                    expense.paid_by_member_id == member_id
                    or member_id in expense.involved_member_ids
                    or expense.split_for(member_id) is not None
                )

            updated = group.model_copy(update={
                "members": [m for m in group.members if m.id != member_id]
            })
            delete_group = not has_other_members(updated, self._session)
            if delete_group:
                removed_expenses = [e.id for e in self._expenses if e.group_id == group_id]
                self._groups.pop(index)
            else:
                removed_expenses = [
                    e.id for e in self._expenses if e.group_id == group_id and involves(e)
                ]
                self._groups[index] = updated
            removed = set(removed_expenses)
            self._expenses = [e for e in self._expenses if e.id not in removed]
            friends = self._refresh_friends_locked()
            ctx = self._session

        self._gate.mark_dirty()
        if delete_group:
            self._delete_remote([group_id], removed_expenses)
        else:
            self._push_groups([updated])
            self._delete_remote([], removed_expenses)
        self._start_friend_sync(ctx, friends)

    async def direct_group_with(self, friend: Friend) -> Group:
        """Find or create the one-to-one group with a friend."""
        async with self._lock:
            existing = find_direct_group(self._groups, friend.member_id, self._session)
            if existing is not None:
                return existing
            group = Group(
                name=friend.display_name,
                members=[
                    self._session.current_user,
                    Member(
                        id=friend.member_id,
                        name=friend.name,
                        linked_account_id=friend.linked_account_id,
                    ),
                ],
                is_direct=True,
            )
            self._groups.append(group)
            friends = self._refresh_friends_locked()
            ctx = self._session

        self._gate.mark_dirty()
        self._push_groups([group])
        self._start_friend_sync(ctx, friends)
        return group

    # =========================================================================
    # EXPENSE MUTATIONS
    # =========================================================================

    async def add_expense(self, expense: Expense) -> None:
        """
        Add an expense. No-op if its id is already present.

        A group is synthesized if the expense references an unknown one.
        """
        async with self._lock:
            if self._index_of_expense(expense.id) is not None:
                return
            self._expenses.append(expense)
            synthesized = synthesize_missing_groups(
                [expense], self._groups, self._session, self._friends
            )
            self._groups.extend(synthesized)
            friends = self._refresh_friends_locked() if synthesized else None
            ctx = self._session

        self._gate.mark_dirty()
        self._push_groups(synthesized)
        self._push_expenses([expense])
        if friends is not None:
            self._start_friend_sync(ctx, friends)

    async def update_expense(self, expense: Expense) -> None:
        """Replace a stored expense; a moved expense gets a group if needed."""
        async with self._lock:
            index = self._index_of_expense(expense.id)
            if index is None:
                return
            self._expenses[index] = expense
            synthesized = synthesize_missing_groups(
                [expense], self._groups, self._session, self._friends
            )
            self._groups.extend(synthesized)
            friends = self._refresh_friends_locked() if synthesized else None
            ctx = self._session

        self._gate.mark_dirty()
        self._push_groups(synthesized)
        self._push_expenses([expense])
        if friends is not None:
            self._start_friend_sync(ctx, friends)

    async def delete_expenses(self, expense_ids: Iterable[UUID]) -> None:
        ids = set(expense_ids)
        async with self._lock:
            removed = [e.id for e in self._expenses if e.id in ids]
            if not removed:
                return
            self._expenses = [e for e in self._expenses if e.id not in ids]

        self._gate.mark_dirty()
        self._delete_remote([], removed)

    # =========================================================================
    # SETTLEMENT
    # =========================================================================

    async def settle_expense_for_member(
        self,
        expense: Expense,
        member_id: UUID,
    ) -> Optional[Expense]:
        """
        Mark one member's split as settled.

        Returns the updated expense, or None when the expense is not in the
        store or there is nothing to settle.
        """
        async with self._lock:
            index = self._index_of_expense(expense.id)
            if index is None:
                return None
            updated = settlement.settle_split(self._expenses[index], member_id)
            if updated is None:
                return None
            self._expenses[index] = updated

        self._gate.mark_dirty()
        self._push_expenses([updated])
        return updated

    async def settle_expense_for_current_user(self, expense: Expense) -> Optional[Expense]:
        """Settle only the current user's split."""
        stored = self.expense_by_id(expense.id)
        if stored is None:
            return None
        member_id = settlement.current_user_split_member(stored, self._session)
        if member_id is None:
            return None
        return await self.settle_expense_for_member(stored, member_id)

    async def mark_expense_as_settled(self, expense: Expense) -> Optional[Expense]:
        return await self.settle_expense_for_current_user(expense)

    async def settle_expense_for_all(self, expense: Expense) -> Optional[Expense]:
        """
        Mark every split as settled.

        Only the payer may do this. Returns None when the expense is not in
        the store, the current user did not pay it, or it is already settled.
        """
        async with self._lock:
            index = self._index_of_expense(expense.id)
            if index is None:
                return None
            stored = self._expenses[index]
            if stored.is_settled or not settlement.can_settle_for_all(stored, self._session):
                return None
            updated = settlement.settle_all_splits(stored)
            self._expenses[index] = updated

        self._gate.mark_dirty()
        self._push_expenses([updated])
        return updated

    # =========================================================================
    # BULK OPERATIONS
    # =========================================================================

    async def apply_batch(self, batch: NormalizedBatch) -> None:
        """
        Merge an already-normalized batch (e.g. from an import).

        Everything in the batch is pushed to the remote sources.
        """
        async with self._lock:
            ctx = self._session
            self._groups = merge_by_id(self._groups, batch.groups)
            self._expenses = merge_by_id(self._expenses, batch.expenses)
            friends = self._refresh_friends_locked()

        self._push_groups(batch.groups)
        self._push_expenses(batch.expenses)
        self._start_friend_sync(ctx, friends)

    async def clear_all_data(self) -> None:
        """
        Remove all groups, expenses and friends.

        The empty state is written immediately; remote deletes run in
        the background.

        Raises:
            PersistenceError: If the empty state cannot be written
        """
        async with self._lock:
            group_ids = [g.id for g in self._groups]
            expense_ids = [e.id for e in self._expenses]
            friend_count = len(self._friends)
            self._groups = []
            self._expenses = []
            self._friends = []

        await self._gate.flush_now(AppData())
        self._delete_remote(group_ids, expense_ids)
        await self._audit_logger.log_data_cleared(len(group_ids), len(expense_ids), friend_count)

    async def clear_debug_data(self) -> None:
        """Remove debug groups and debug expenses."""
        async with self._lock:
            debug_groups = {g.id for g in self._groups if g.is_debug}
            removed_expenses = [
                e.id for e in self._expenses
                if e.is_debug or e.group_id in debug_groups
            ]
            if not debug_groups and not removed_expenses:
                return
            removed = set(removed_expenses)
            self._groups = [g for g in self._groups if g.id not in debug_groups]
            self._expenses = [e for e in self._expenses if e.id not in removed]
            friends = self._refresh_friends_locked()
            ctx = self._session

        self._gate.mark_dirty()
        self._delete_remote(sorted(debug_groups, key=str), removed_expenses)
        self._start_friend_sync(ctx, friends)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def _index_of_group(self, group_id: UUID) -> Optional[int]:
        return next((i for i, g in enumerate(self._groups) if g.id == group_id), None)

    def _index_of_expense(self, expense_id: UUID) -> Optional[int]:
        return next((i for i, e in enumerate(self._expenses) if e.id == expense_id), None)

    def group_by_id(self, group_id: UUID) -> Optional[Group]:
        index = self._index_of_group(group_id)
        return self._groups[index] if index is not None else None

    def expense_by_id(self, expense_id: UUID) -> Optional[Expense]:
        index = self._index_of_expense(expense_id)
        return self._expenses[index] if index is not None else None

    def expenses_in(self, group_id: UUID) -> list[Expense]:
        """Expenses of a group, newest first."""
        expenses = [e for e in self._expenses if e.group_id == group_id]
        return sorted(expenses, key=lambda e: e.date, reverse=True)

    def _involves_current_user(self, expense: Expense) -> bool:
        ctx = self._session
        return (
            ctx.is_current_user_id(expense.paid_by_member_id)
            or any(ctx.is_current_user_id(m) for m in expense.involved_member_ids)
            or any(ctx.is_current_user_id(s.member_id) for s in expense.splits)
        )

    def expenses_involving_current_user(self) -> list[Expense]:
        expenses = [e for e in self._expenses if self._involves_current_user(e)]
        return sorted(expenses, key=lambda e: e.date, reverse=True)

    def unsettled_expenses_involving_current_user(self) -> list[Expense]:
        return [e for e in self.expenses_involving_current_user() if not e.is_settled]

    def net_balance(self, group: Group) -> Decimal:
        return settlement.net_balance(group, self._expenses, self._session)

    def overall_net_balance(self) -> Decimal:
        return settlement.overall_net_balance(self._groups, self._expenses, self._session)

    def can_settle_expense_for_all(self, expense: Expense) -> bool:
        return settlement.can_settle_for_all(expense, self._session)

    def can_settle_expense_for_self(self, expense: Expense) -> bool:
        return settlement.can_settle_for_self(expense, self._session)

    def is_direct_group(self, group: Group) -> bool:
        return is_direct_group(group, self._session)


def create_ledger_store(
    data_path: Optional[Path] = None,
    group_source: Optional[GroupRemoteSource] = None,
    expense_source: Optional[ExpenseRemoteSource] = None,
    friend_directory: Optional[FriendDirectory] = None,
    audit_storage: Optional[AuditStorageInterface] = None,
) -> LedgerStore:
    """
    Factory function to create a store with its collaborators.

    Args:
        data_path: Location of the JSON snapshot; defaults to settings
        group_source: Remote groups service; in-memory if None
        expense_source: Remote expense service; in-memory if None
        friend_directory: Remote friend directory; in-memory if None
        audit_storage: Where audit events are appended; local log only if None
    """
    audit_logger = AuditLogger(audit_storage)
    return LedgerStore(
        persistence=JsonFilePersistenceStore(data_path),
        group_source=group_source,
        expense_source=expense_source,
        friend_directory=friend_directory,
        audit_logger=audit_logger,
    )
