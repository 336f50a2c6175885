"""
Audit Logger

DESIGN DECISION: Background failures are never raised to callers, so every
one of them is written to the audit trail instead. This provides:
1. A record of remote writes that did not land
2. A record of reconciliation cycles and what they rewrote
3. Correlation of all events belonging to one cycle

The audit logger:
- Always logs locally through structlog
- Persists to an optional audit store
- Never raises if logging itself fails
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from payback.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from payback.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service for the ledger.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger("payback.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_sync_started(self, trigger: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.sync_started(trigger, correlation_id))

    async def log_sync_completed(
        self,
        group_count: int,
        expense_count: int,
        synthesized_count: int,
        alias_count: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.sync_completed(
            group_count=group_count,
            expense_count=expense_count,
            synthesized_count=synthesized_count,
            alias_count=alias_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_sync_skipped(self, reason: str) -> None:
        await self.log(AuditEventBuilder.sync_skipped(reason))

    async def log_remote_fetch_failed(
        self,
        source: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a fetch that was replaced by an empty result."""
        event = AuditEventBuilder.remote_fetch_failed(
            source=source,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_alias_resolved(
        self,
        group_id: UUID,
        alias_id: UUID,
        canonical_id: UUID,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.alias_resolved(
            group_id=group_id,
            alias_id=alias_id,
            canonical_id=canonical_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_group_synthesized(
        self,
        group_id: UUID,
        name: str,
        member_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.group_synthesized(
            group_id=group_id,
            name=name,
            member_count=member_count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_remote_write_failed(
        self,
        operation: str,
        entity_type: str,
        entity_id: Optional[UUID],
        error_message: str,
    ) -> None:
        """Log a background remote write that failed and was dropped."""
        event = AuditEventBuilder.remote_write_failed(
            operation=operation,
            entity_type=entity_type,
            entity_id=entity_id,
            error_message=error_message,
        )
        await self.log(event)

    async def log_friend_sync_failed(self, friend_count: int, error_message: str) -> None:
        await self.log(AuditEventBuilder.friend_sync_failed(friend_count, error_message))

    async def log_persistence_failed(self, error_message: str) -> None:
        await self.log(AuditEventBuilder.persistence_failed(error_message))

    async def log_user_authenticated(self, account_id: str, member_id: UUID) -> None:
        await self.log(AuditEventBuilder.user_authenticated(account_id, member_id))

    async def log_signed_out(self, group_count: int, expense_count: int) -> None:
        await self.log(AuditEventBuilder.signed_out(group_count, expense_count))

    async def log_data_cleared(
        self,
        group_count: int,
        expense_count: int,
        friend_count: int,
    ) -> None:
        await self.log(
            AuditEventBuilder.data_cleared(group_count, expense_count, friend_count)
        )

    async def log_import_completed(self, summary: str, error_count: int) -> None:
        await self.log(AuditEventBuilder.import_completed(summary, error_count))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a reconciliation cycle and pass it through
    every event the cycle emits.
    """
    return uuid4()
