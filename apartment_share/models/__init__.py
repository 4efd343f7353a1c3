"""
Data Models Package

This package contains all Pydantic models used in the Apartment Share ledger.
All data flowing through the system must conform to these schemas.
"""

from apartment_share.models.registry import (
    Actor,
    Apartment,
    ApartmentRegistry,
    Category,
    CategoryCatalog,
    PropertyRole,
    UserRole,
)
from apartment_share.models.expense import (
    ApartmentBalance,
    Expense,
    ExpenseOutstanding,
    ExpenseSubmission,
    LegacyExpense,
)
from apartment_share.models.keyed_state import ApartmentKeyedState
from apartment_share.models.community import (
    Notification,
    NotificationPriority,
    NotificationType,
    Poll,
    PollOption,
    RequestStatus,
    create_announcement,
    create_poll,
    mark_all_read,
    unread_for,
)
from apartment_share.models.settlement import (
    BalanceSheet,
    Payment,
    PaymentStatus,
)
from apartment_share.models.validation import (
    ValidationIssue,
    ValidationResult,
)
from apartment_share.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Registry models
    "Actor",
    "Apartment",
    "ApartmentRegistry",
    "Category",
    "CategoryCatalog",
    "PropertyRole",
    "UserRole",
    # Expense models
    "ApartmentBalance",
    "Expense",
    "ExpenseOutstanding",
    "ExpenseSubmission",
    "LegacyExpense",
    # Shared state
    "ApartmentKeyedState",
    "Notification",
    "NotificationPriority",
    "NotificationType",
    "Poll",
    "PollOption",
    "RequestStatus",
    "create_announcement",
    "create_poll",
    "mark_all_read",
    "unread_for",
    # Settlement models
    "BalanceSheet",
    "Payment",
    "PaymentStatus",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
