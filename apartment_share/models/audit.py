"""
Audit Models for Apartment Share

Every state change in the ledger is logged for audit purposes:
expense creation, payment toggles, legacy migrations, payment requests,
announcements, votes and payment approvals.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Expenses
    EXPENSE_CREATED = "expense_created"
    EXPENSE_REJECTED = "expense_rejected"
    EXPENSE_DELETED = "expense_deleted"
    PAYMENT_MARKED = "payment_marked"
    PAYMENT_UNMARKED = "payment_unmarked"

    # Schema migration
    EXPENSE_MIGRATED = "expense_migrated"
    MIGRATION_FAILED = "migration_failed"

    # Balances
    INCONSISTENT_STATE = "inconsistent_state"

    # Payment requests
    PAYMENT_REQUESTS_SENT = "payment_requests_sent"
    PAYMENT_REQUEST_FAILED = "payment_request_failed"

    # Community
    ANNOUNCEMENT_CREATED = "announcement_created"
    NOTIFICATION_READ = "notification_read"
    POLL_CREATED = "poll_created"
    VOTE_CAST = "vote_cast"
    POLL_CLOSED = "poll_closed"

    # Direct payments
    PAYMENT_RECORDED = "payment_recorded"
    PAYMENT_APPROVED = "payment_approved"
    PAYMENT_REJECTED = "payment_rejected"

    # Access control
    PERMISSION_DENIED = "permission_denied"

    # System events
    SAVE_FAILED = "save_failed"
    SYSTEM_ERROR = "system_error"


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
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
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
        description="Type of entity (e.g., 'expense', 'poll', 'notification')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one payment toggle)"
    )

    # Who acted
    apartment_id: Optional[str] = Field(
        default=None,
        description="Apartment on whose behalf the action ran"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

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
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "apartment_id": self.apartment_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, apartment_id, description, details_json,
         error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.apartment_id or "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.expense_created(expense_id, ...)
        event = AuditEventBuilder.payment_toggled(expense_id, ...)
    """

    @staticmethod
    def expense_created(
        expense_id: str,
        paid_by: str,
        amount: str,
        owed_by: list[str],
        per_apartment_share: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            apartment_id=paid_by,
            description=f"Expense created: {paid_by} paid ₹{amount}",
            details={
                "amount": amount,
                "owed_by_apartments": owed_by,
                "per_apartment_share": per_apartment_share,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_rejected(
        paid_by: str,
        issues: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            correlation_id=correlation_id,
            apartment_id=paid_by,
            description=f"Expense submission rejected with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def expense_deleted(
        expense_id: str,
        apartment_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_DELETED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            apartment_id=apartment_id,
            description=f"Expense deleted by {apartment_id}",
            is_user_action=True,
        )

    @staticmethod
    def payment_toggled(
        expense_id: str,
        target_apartment: str,
        acting_apartment: str,
        paid: bool,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.PAYMENT_MARKED if paid else AuditEventType.PAYMENT_UNMARKED
            ),
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            apartment_id=acting_apartment,
            description=(
                f"{target_apartment} marked as {'paid' if paid else 'unpaid'} "
                f"by {acting_apartment}"
            ),
            details={"target_apartment": target_apartment},
            is_user_action=True,
        )

    @staticmethod
    def expense_migrated(
        expense_id: str,
        owed_by: list[str],
        per_apartment_share: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_MIGRATED,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Legacy expense backfilled with split fields",
            details={
                "owed_by_apartments": owed_by,
                "per_apartment_share": per_apartment_share,
            },
        )

    @staticmethod
    def migration_failed(
        expense_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIGRATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Could not persist backfilled split fields",
            error_message=error_message,
        )

    @staticmethod
    def inconsistent_state(
        expense_id: Optional[str],
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INCONSISTENT_STATE,
            severity=AuditSeverity.ERROR,
            entity_type="expense",
            entity_id=expense_id,
            correlation_id=correlation_id,
            description="Stored expense violates a ledger invariant",
            error_message=error_message,
        )

    @staticmethod
    def payment_requests_sent(
        paying_apartment: str,
        notification_ids: list[str],
        failed_apartments: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.PAYMENT_REQUEST_FAILED
                if failed_apartments
                else AuditEventType.PAYMENT_REQUESTS_SENT
            ),
            severity=AuditSeverity.WARNING if failed_apartments else AuditSeverity.INFO,
            entity_type="notification",
            correlation_id=correlation_id,
            apartment_id=paying_apartment,
            description=(
                f"Payment requests sent: {len(notification_ids)}, "
                f"failed: {len(failed_apartments)}"
            ),
            details={
                "notification_ids": notification_ids,
                "failed_apartments": failed_apartments,
            },
            is_user_action=True,
        )

    @staticmethod
    def announcement_created(
        notification_id: str,
        created_by: str,
        apartment_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ANNOUNCEMENT_CREATED,
            entity_type="notification",
            entity_id=notification_id,
            correlation_id=correlation_id,
            description=f"Announcement sent to {apartment_count} apartments",
            details={"created_by": created_by, "apartment_count": apartment_count},
            is_user_action=True,
        )

    @staticmethod
    def notification_read(
        notification_id: str,
        apartment_id: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.NOTIFICATION_READ,
            severity=AuditSeverity.DEBUG,
            entity_type="notification",
            entity_id=notification_id,
            correlation_id=correlation_id,
            apartment_id=apartment_id,
            description=f"Notification read by {apartment_id}",
            is_user_action=True,
        )

    @staticmethod
    def poll_created(
        poll_id: str,
        created_by: str,
        option_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.POLL_CREATED,
            entity_type="poll",
            entity_id=poll_id,
            correlation_id=correlation_id,
            description=f"Poll created with {option_count} options",
            details={"created_by": created_by},
            is_user_action=True,
        )

    @staticmethod
    def vote_cast(
        poll_id: str,
        apartment_id: str,
        option_id: str,
        replaced: Optional[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VOTE_CAST,
            entity_type="poll",
            entity_id=poll_id,
            correlation_id=correlation_id,
            apartment_id=apartment_id,
            description=f"{apartment_id} voted {option_id}",
            details={"option_id": option_id, "replaced_option_id": replaced},
            is_user_action=True,
        )

    @staticmethod
    def poll_closed(
        poll_id: str,
        closed_by: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.POLL_CLOSED,
            entity_type="poll",
            entity_id=poll_id,
            correlation_id=correlation_id,
            description="Poll closed",
            details={"closed_by": closed_by},
            is_user_action=True,
        )

    @staticmethod
    def payment_recorded(
        payment_id: str,
        payer_id: str,
        payee_id: str,
        amount: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            apartment_id=payer_id,
            description=f"Payment recorded: {payer_id} -> {payee_id} ₹{amount}",
            details={"payee_id": payee_id, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def payment_decided(
        payment_id: str,
        approved: bool,
        decided_by: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.PAYMENT_APPROVED if approved else AuditEventType.PAYMENT_REJECTED
            ),
            entity_type="payment",
            entity_id=payment_id,
            correlation_id=correlation_id,
            description=f"Payment {'approved' if approved else 'rejected'} by {decided_by}",
            details={"decided_by": decided_by},
            is_user_action=True,
        )

    @staticmethod
    def permission_denied(
        action: str,
        apartment_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERMISSION_DENIED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            apartment_id=apartment_id,
            description=f"Permission denied: {action}",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Failed to save {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
