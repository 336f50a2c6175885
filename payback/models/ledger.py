"""
Core Data Models for PayBack Ledger Sync

These models define the schemas for every entity the reconciliation
engine reads and writes. They are designed to:
1. Be plain immutable values compared by their fields
2. Enforce the ledger invariants at construction time
3. Serialize losslessly to the local JSON snapshot

DESIGN DECISION: All entities are frozen. Alias resolution and settlement
produce new copies (model_copy) instead of mutating shared instances.
`Expense.is_settled` is derived from the splits, so an expense is settled
exactly when all of its splits are.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    model_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalized_name(value: str) -> str:
    """Collapse whitespace and lowercase a display name for comparison."""
    return " ".join(value.split()).lower()


# =============================================================================
# MEMBERS AND GROUPS
# =============================================================================

class Member(BaseModel):
    """
    A person taking part in a group.

    Identity is by `id`: two members with the same id are the same
    person regardless of name.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(
        default_factory=uuid4,
        description="Member identifier"
    )
    name: str = Field(
        ...,
        description="Display name"
    )
    linked_account_id: Optional[str] = Field(
        default=None,
        description="Account this member is linked to, if any"
    )


class Group(BaseModel):
    """A spending group. Members are unique by id."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    name: str
    members: list[Member] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    # Direct person-to-person group; None means "not known"
    is_direct: Optional[bool] = False
    is_debug: bool = False

    @model_validator(mode='after')
    def validate_unique_members(self) -> 'Group':
        """Reject duplicate member ids."""
        seen: set[UUID] = set()
        for member in self.members:
            if member.id in seen:
                raise ValueError(f"Duplicate member id in group {self.id}: {member.id}")
            seen.add(member.id)
        return self

    @property
    def member_ids(self) -> list[UUID]:
        return [member.id for member in self.members]

    def member(self, member_id: UUID) -> Optional[Member]:
        """Get the member with this id, if present."""
        return next((m for m in self.members if m.id == member_id), None)


# =============================================================================
# EXPENSES
# =============================================================================

class Split(BaseModel):
    """The share of an expense owed by one member."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    member_id: UUID
    amount: Decimal
    is_settled: bool = False


class Subexpense(BaseModel):
    """An itemized part of an expense."""
    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4)
    amount: Decimal


class Expense(BaseModel):
    """
    A shared expense paid by one member and split across several.

    CRITICAL: `is_settled` is computed, never stored. It is True iff every
    split is settled (vacuously True when there are no splits). Any
    `is_settled` value present in input data is ignored.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    group_id: UUID
    description: str
    date: datetime = Field(default_factory=_utcnow)
    total_amount: Decimal
    paid_by_member_id: UUID
    involved_member_ids: list[UUID] = Field(default_factory=list)
    splits: list[Split] = Field(default_factory=list)
    subexpenses: Optional[list[Subexpense]] = None
    # Display names cached from the remote payload
    participant_names: Optional[dict[UUID, str]] = None
    is_debug: bool = False

    @model_validator(mode='after')
    def validate_one_split_per_member(self) -> 'Expense':
        """At most one split per member."""
        seen: set[UUID] = set()
        for split in self.splits:
            if split.member_id in seen:
                raise ValueError(
                    f"Expense {self.id} has more than one split for member {split.member_id}"
                )
            seen.add(split.member_id)
        return self

    @computed_field
    @property
    def is_settled(self) -> bool:
        return all(split.is_settled for split in self.splits)

    @property
    def unsettled_splits(self) -> list[Split]:
        return [split for split in self.splits if not split.is_settled]

    @property
    def settled_splits(self) -> list[Split]:
        return [split for split in self.splits if split.is_settled]

    def split_for(self, member_id: UUID) -> Optional[Split]:
        """Get the split belonging to a member."""
        return next((s for s in self.splits if s.member_id == member_id), None)

    def is_settled_for(self, member_id: UUID) -> bool:
        """Whether a member's split exists and is settled."""
        split = self.split_for(member_id)
        return split.is_settled if split else False


class AppData(BaseModel):
    """The persisted snapshot of the ledger."""

    groups: list[Group] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)


# =============================================================================
# FRIENDS AND PARTICIPANTS
# =============================================================================

class Friend(BaseModel):
    """A friend record as kept by the friend directory."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    member_id: UUID
    name: str
    nickname: Optional[str] = None
    has_linked_account: bool = False
    linked_account_id: Optional[str] = None
    linked_account_email: Optional[str] = None

    @property
    def display_name(self) -> str:
        """Nickname when set, otherwise the name."""
        if self.nickname and self.nickname.strip():
            return self.nickname.strip()
        return self.name


class ExpenseParticipant(BaseModel):
    """Participant metadata sent alongside an expense upsert."""
    model_config = ConfigDict(frozen=True)

    member_id: UUID
    name: str
    linked_account_id: Optional[str] = None
    linked_account_email: Optional[str] = None


# =============================================================================
# SESSION
# =============================================================================

class UserAccount(BaseModel):
    """The authenticated account."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str
    email: str
    display_name: str
    linked_member_id: Optional[UUID] = None
    # Other member ids known to represent this account (e.g. after imports)
    equivalent_member_ids: list[UUID] = Field(default_factory=list)


class SessionContext(BaseModel):
    """
    The current session, passed explicitly into every reconciliation
    and query call.

    Before authentication `account` is None and `current_user` is a
    locally generated placeholder member.
    """
    model_config = ConfigDict(frozen=True)

    current_user: Member
    account: Optional[UserAccount] = None

    @classmethod
    def placeholder(cls, name: str = "You") -> 'SessionContext':
        return cls(current_user=Member(name=name))

    @property
    def is_authenticated(self) -> bool:
        return self.account is not None

    @property
    def account_email(self) -> Optional[str]:
        if self.account is None:
            return None
        return self.account.email.strip().lower()

    @property
    def current_user_ids(self) -> set[UUID]:
        """Every member id that represents the current user."""
        ids = {self.current_user.id}
        if self.account is not None:
            if self.account.linked_member_id is not None:
                ids.add(self.account.linked_member_id)
            ids.update(self.account.equivalent_member_ids)
        return ids

    def is_current_user_id(self, member_id: UUID) -> bool:
        return member_id in self.current_user_ids

    def matches_current_user_name(self, name: str) -> bool:
        """Case-insensitive match against the user's display names."""
        key = normalized_name(name)
        if not key:
            return False
        names = [self.current_user.name]
        if self.account is not None:
            names.append(self.account.display_name)
        return any(key == normalized_name(n) for n in names if n)

    def is_current_user(self, member: Member) -> bool:
        """Whether a member is the current user by id or by name."""
        return self.is_current_user_id(member.id) or self.matches_current_user_name(member.name)
