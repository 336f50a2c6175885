"""
Audit Models for PayBack Ledger Sync

Every reconciliation step and every swallowed failure is recorded as an
audit event. This provides:
1. Traceability of what each sync cycle fetched, rewrote and merged
2. A record of failures that are deliberately not surfaced to callers
3. Correlation of all events belonging to one cycle

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Reconciliation cycle
    SYNC_STARTED = "sync_started"
    SYNC_COMPLETED = "sync_completed"
    SYNC_SKIPPED = "sync_skipped"
    REMOTE_FETCH_FAILED = "remote_fetch_failed"

    # Normalization
    ALIAS_RESOLVED = "alias_resolved"
    GROUP_SYNTHESIZED = "group_synthesized"

    # Background writes
    REMOTE_WRITE_FAILED = "remote_write_failed"
    FRIEND_SYNC_FAILED = "friend_sync_failed"
    PERSISTENCE_FAILED = "persistence_failed"

    # Session and bulk operations
    USER_AUTHENTICATED = "user_authenticated"
    SIGNED_OUT = "signed_out"
    DATA_CLEARED = "data_cleared"
    IMPORT_COMPLETED = "import_completed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'group', 'expense', 'session')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - all events of one reconciliation cycle share this
    correlation_id: Optional[UUID] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.sync_started(trigger, correlation_id)
        event = AuditEventBuilder.remote_fetch_failed("groups", str(e), correlation_id)
    """

    @staticmethod
    def sync_started(trigger: str, correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_STARTED,
            entity_type="session",
            correlation_id=correlation_id,
            description=f"Reconciliation started ({trigger})",
            details={"trigger": trigger},
        )

    @staticmethod
    def sync_completed(
        group_count: int,
        expense_count: int,
        synthesized_count: int,
        alias_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_COMPLETED,
            entity_type="session",
            correlation_id=correlation_id,
            description=(
                f"Reconciliation merged {group_count} groups and {expense_count} expenses"
            ),
            details={
                "group_count": group_count,
                "expense_count": expense_count,
                "synthesized_groups": synthesized_count,
                "aliases_resolved": alias_count,
            },
        )

    @staticmethod
    def sync_skipped(reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            description=f"Reconciliation skipped: {reason}",
        )

    @staticmethod
    def remote_fetch_failed(
        source: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_FETCH_FAILED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Fetching {source} failed; treating as empty",
            error_message=error_message,
            details={"source": source},
        )

    @staticmethod
    def alias_resolved(
        group_id: UUID,
        alias_id: UUID,
        canonical_id: UUID,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALIAS_RESOLVED,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description="Replaced current-user alias with canonical member id",
            details={
                "alias_id": str(alias_id),
                "canonical_id": str(canonical_id),
            },
        )

    @staticmethod
    def group_synthesized(
        group_id: UUID,
        name: str,
        member_count: int,
        correlation_id: Optional[UUID],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GROUP_SYNTHESIZED,
            entity_type="group",
            entity_id=group_id,
            correlation_id=correlation_id,
            description=f"Synthesized group '{name}' for orphaned expenses",
            details={"member_count": member_count},
        )

    @staticmethod
    def remote_write_failed(
        operation: str,
        entity_type: str,
        entity_id: Optional[UUID],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_WRITE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Remote {operation} failed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def friend_sync_failed(friend_count: int, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.FRIEND_SYNC_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="friends",
            description=f"Friend sync of {friend_count} friends failed",
            error_message=error_message,
            details={"friend_count": friend_count},
        )

    @staticmethod
    def persistence_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            description="Background snapshot write failed",
            error_message=error_message,
        )

    @staticmethod
    def user_authenticated(account_id: str, member_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_AUTHENTICATED,
            entity_type="member",
            entity_id=member_id,
            description="Session established",
            details={"account_id": account_id},
        )

    @staticmethod
    def signed_out(group_count: int, expense_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_OUT,
            entity_type="session",
            description="Signed out and wiped local ledger",
            details={
                "groups_cleared": group_count,
                "expenses_cleared": expense_count,
            },
        )

    @staticmethod
    def data_cleared(group_count: int, expense_count: int, friend_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_CLEARED,
            entity_type="session",
            description="Cleared all ledger data",
            details={
                "groups_cleared": group_count,
                "expenses_cleared": expense_count,
                "friends_cleared": friend_count,
            },
        )

    @staticmethod
    def import_completed(summary: str, error_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if error_count else AuditSeverity.INFO,
            entity_type="import",
            description=f"Import finished: {summary}",
            details={"error_count": error_count},
        )
