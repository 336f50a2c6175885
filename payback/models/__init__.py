"""
Data Models Package

This package contains all Pydantic models used in PayBack Ledger Sync.
All data flowing through the reconciliation engine conforms to these schemas.
"""

from payback.models.ledger import (
    AppData,
    Expense,
    ExpenseParticipant,
    Friend,
    Group,
    Member,
    SessionContext,
    Split,
    Subexpense,
    UserAccount,
    normalized_name,
)
from payback.models.export import (
    ImportResult,
    ImportStatus,
    ImportSummary,
    ParsedExpense,
    ParsedExpenseSplit,
    ParsedExportData,
    ParsedFriend,
    ParsedGroup,
    ParsedGroupMember,
    ParsedInvolvedMember,
    ParsedParticipantName,
    ParsedSubexpense,
)
from payback.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "AppData",
    "Expense",
    "ExpenseParticipant",
    "Friend",
    "Group",
    "Member",
    "SessionContext",
    "Split",
    "Subexpense",
    "UserAccount",
    "normalized_name",
    # Import models
    "ImportResult",
    "ImportStatus",
    "ImportSummary",
    "ParsedExpense",
    "ParsedExpenseSplit",
    "ParsedExportData",
    "ParsedFriend",
    "ParsedGroup",
    "ParsedGroupMember",
    "ParsedInvolvedMember",
    "ParsedParticipantName",
    "ParsedSubexpense",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
