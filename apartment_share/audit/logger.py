"""
Audit Logger

DESIGN DECISION: Every state change in the ledger is logged.
This provides:
1. Traceability of who toggled which payment
2. Debugging capability when balances look wrong
3. A history committee members can read in the audit sheet

The audit logger:
- Is async so it sits naturally in the flows
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from apartment_share.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from apartment_share.services.storage import AuditStorageInterface


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
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and committee visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_expense_created(
        self,
        expense_id: str,
        paid_by: str,
        amount: str,
        owed_by: list[str],
        per_apartment_share: str,
        correlation_id: UUID,
    ) -> None:
        """Log a new expense with its computed split."""
        await self.log(AuditEventBuilder.expense_created(
            expense_id=expense_id,
            paid_by=paid_by,
            amount=amount,
            owed_by=owed_by,
            per_apartment_share=per_apartment_share,
            correlation_id=correlation_id,
        ))

    async def log_expense_rejected(
        self,
        paid_by: str,
        issues: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_rejected(
            paid_by=paid_by,
            issues=issues,
            correlation_id=correlation_id,
        ))

    async def log_expense_deleted(
        self,
        expense_id: str,
        apartment_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.expense_deleted(
            expense_id=expense_id,
            apartment_id=apartment_id,
            correlation_id=correlation_id,
        ))

    async def log_payment_toggled(
        self,
        expense_id: str,
        target_apartment: str,
        acting_apartment: str,
        paid: bool,
        correlation_id: UUID,
    ) -> None:
        """Log a paid/unpaid toggle."""
        await self.log(AuditEventBuilder.payment_toggled(
            expense_id=expense_id,
            target_apartment=target_apartment,
            acting_apartment=acting_apartment,
            paid=paid,
            correlation_id=correlation_id,
        ))

    async def log_expense_migrated(
        self,
        expense_id: str,
        owed_by: list[str],
        per_apartment_share: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.expense_migrated(
            expense_id=expense_id,
            owed_by=owed_by,
            per_apartment_share=per_apartment_share,
            correlation_id=correlation_id,
        ))

    async def log_migration_failed(
        self,
        expense_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.migration_failed(
            expense_id=expense_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_inconsistent_state(
        self,
        expense_id: Optional[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.inconsistent_state(
            expense_id=expense_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_payment_requests(
        self,
        paying_apartment: str,
        notification_ids: list[str],
        failed_apartments: list[str],
        correlation_id: UUID,
    ) -> None:
        """Log a payment request fan-out, partial or complete."""
        await self.log(AuditEventBuilder.payment_requests_sent(
            paying_apartment=paying_apartment,
            notification_ids=notification_ids,
            failed_apartments=failed_apartments,
            correlation_id=correlation_id,
        ))

    async def log_announcement_created(
        self,
        notification_id: str,
        created_by: str,
        apartment_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.announcement_created(
            notification_id=notification_id,
            created_by=created_by,
            apartment_count=apartment_count,
            correlation_id=correlation_id,
        ))

    async def log_notification_read(
        self,
        notification_id: str,
        apartment_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.notification_read(
            notification_id=notification_id,
            apartment_id=apartment_id,
            correlation_id=correlation_id,
        ))

    async def log_poll_created(
        self,
        poll_id: str,
        created_by: str,
        option_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.poll_created(
            poll_id=poll_id,
            created_by=created_by,
            option_count=option_count,
            correlation_id=correlation_id,
        ))

    async def log_vote_cast(
        self,
        poll_id: str,
        apartment_id: str,
        option_id: str,
        replaced: Optional[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.vote_cast(
            poll_id=poll_id,
            apartment_id=apartment_id,
            option_id=option_id,
            replaced=replaced,
            correlation_id=correlation_id,
        ))

    async def log_poll_closed(
        self,
        poll_id: str,
        closed_by: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.poll_closed(
            poll_id=poll_id,
            closed_by=closed_by,
            correlation_id=correlation_id,
        ))

    async def log_payment_recorded(
        self,
        payment_id: str,
        payer_id: str,
        payee_id: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.payment_recorded(
            payment_id=payment_id,
            payer_id=payer_id,
            payee_id=payee_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_payment_decided(
        self,
        payment_id: str,
        approved: bool,
        decided_by: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.payment_decided(
            payment_id=payment_id,
            approved=approved,
            decided_by=decided_by,
            correlation_id=correlation_id,
        ))

    async def log_permission_denied(
        self,
        action: str,
        apartment_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.permission_denied(
            action=action,
            apartment_id=apartment_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        entity_type: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a persistence failure that is being re-raised."""
        await self.log(AuditEventBuilder.save_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an unexpected error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., a payment toggle).
    Pass it through all subsequent operations.
    """
    return uuid4()
