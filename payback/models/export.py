"""
Bulk Import Models

The shape a bulk-import decoder produces from an external export file.
Decoding the text format is not part of this package; these models are
the boundary the decoder fills in and `payback.importer` consumes.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ParsedFriend(BaseModel):
    member_id: UUID
    name: str
    nickname: Optional[str] = None
    has_linked_account: bool = False
    linked_account_id: Optional[str] = None
    linked_account_email: Optional[str] = None


class ParsedGroup(BaseModel):
    id: UUID
    name: str
    is_direct: bool = False
    is_debug: bool = False
    created_at: datetime
    member_count: int = Field(default=0, ge=0)


class ParsedGroupMember(BaseModel):
    group_id: UUID
    member_id: UUID
    member_name: str


class ParsedExpense(BaseModel):
    id: UUID
    group_id: UUID
    description: str
    date: datetime
    total_amount: Decimal
    paid_by_member_id: UUID
    is_settled: bool = False
    is_debug: bool = False


class ParsedInvolvedMember(BaseModel):
    expense_id: UUID
    member_id: UUID


class ParsedExpenseSplit(BaseModel):
    expense_id: UUID
    split_id: UUID
    member_id: UUID
    amount: Decimal
    is_settled: bool = False


class ParsedSubexpense(BaseModel):
    expense_id: UUID
    subexpense_id: UUID
    amount: Decimal


class ParsedParticipantName(BaseModel):
    expense_id: UUID
    member_id: UUID
    name: str


class ParsedExportData(BaseModel):
    """Everything decoded from one export file."""

    exported_at: Optional[datetime] = None
    account_email: Optional[str] = None
    current_user_id: Optional[UUID] = None
    current_user_name: Optional[str] = None

    friends: list[ParsedFriend] = Field(default_factory=list)
    groups: list[ParsedGroup] = Field(default_factory=list)
    group_members: list[ParsedGroupMember] = Field(default_factory=list)
    expenses: list[ParsedExpense] = Field(default_factory=list)
    expense_involved_members: list[ParsedInvolvedMember] = Field(default_factory=list)
    expense_splits: list[ParsedExpenseSplit] = Field(default_factory=list)
    expense_subexpenses: list[ParsedSubexpense] = Field(default_factory=list)
    participant_names: list[ParsedParticipantName] = Field(default_factory=list)


# =============================================================================
# IMPORT RESULT
# =============================================================================

class ImportStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"


class ImportSummary(BaseModel):
    """Counts of what an import added."""

    friends_added: int = 0
    groups_added: int = 0
    expenses_added: int = 0

    @property
    def total_items(self) -> int:
        return self.friends_added + self.groups_added + self.expenses_added

    @property
    def description(self) -> str:
        parts = []
        for count, noun in (
            (self.friends_added, "friend"),
            (self.groups_added, "group"),
            (self.expenses_added, "expense"),
        ):
            if count > 0:
                parts.append(f"{count} {noun}{'' if count == 1 else 's'}")
        if not parts:
            return "No new data imported"
        return "Added " + ", ".join(parts)


class ImportResult(BaseModel):
    status: ImportStatus
    summary: ImportSummary
    errors: list[str] = Field(default_factory=list)
