"""
Abstract Storage Interface

DESIGN DECISION: The ledger never talks to a backend directly. Flows
depend on these interfaces, so:
1. Google Sheets can be swapped for a real database later
2. In-memory storage backs the tests and local use
3. The ledger core stays free of I/O

Expenses are read back as raw dicts. A stored expense may predate split
tracking, so classification is left to ledger.migration.parse_expense_record
instead of being guessed here.

Updates are partial: callers pass only the fields they changed
(e.g. {"paid_by_apartments": [...]}), never a whole record.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
from uuid import UUID

from apartment_share.models.audit import AuditEvent
from apartment_share.models.community import Notification, Poll
from apartment_share.models.expense import Expense
from apartment_share.models.registry import Apartment, Category
from apartment_share.models.settlement import Payment, PaymentStatus


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for expense storage operations.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def save_expense(self, expense: Expense) -> bool:
        """
        Save a new expense.

        Raises:
            DuplicateError: If an expense with this id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_expense_record(self, expense_id: str) -> Optional[dict[str, Any]]:
        """
        Retrieve one stored expense as a raw record.

        Returns:
            The record if found, None otherwise
        """
        pass

    @abstractmethod
    async def list_expense_records(self) -> list[dict[str, Any]]:
        """
        Return the full expense history as raw records.

        Records may be in the legacy shape (no split fields).
        """
        pass

    @abstractmethod
    async def update_expense_fields(
        self,
        expense_id: str,
        fields: dict[str, Any],
    ) -> bool:
        """
        Apply a partial update to one expense.

        Raises:
            NotFoundError: If the expense doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: str) -> bool:
        """
        Delete an expense by id.

        Returns:
            True if deleted, False if it did not exist
        """
        pass


class RegistryStorageInterface(ABC):
    """Apartments and categories. Seeded once, rarely written."""

    @abstractmethod
    async def list_apartments(self) -> list[Apartment]:
        """All apartments in registry order."""
        pass

    @abstractmethod
    async def save_apartment(self, apartment: Apartment) -> bool:
        """
        Raises:
            DuplicateError: If the apartment id exists
        """
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        pass

    @abstractmethod
    async def save_category(self, category: Category) -> bool:
        """
        Raises:
            DuplicateError: If the category id exists
        """
        pass


class NotificationStorageInterface(ABC):
    """Payment requests and announcements."""

    @abstractmethod
    async def save_notification(self, notification: Notification) -> bool:
        """
        Save a new notification.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        pass

    @abstractmethod
    async def update_notification_fields(
        self,
        notification_id: str,
        fields: dict[str, Any],
    ) -> bool:
        """
        Apply a partial update (e.g. {"is_read": {...}}).

        Raises:
            NotFoundError: If the notification doesn't exist
        """
        pass

    @abstractmethod
    async def list_notifications(
        self,
        apartment_id: Optional[str] = None,
    ) -> list[Notification]:
        """
        List notifications, newest first.

        Args:
            apartment_id: Only notifications addressed to this apartment
        """
        pass


class PollStorageInterface(ABC):
    """Community polls."""

    @abstractmethod
    async def save_poll(self, poll: Poll) -> bool:
        pass

    @abstractmethod
    async def get_poll(self, poll_id: str) -> Optional[Poll]:
        pass

    @abstractmethod
    async def update_poll_fields(self, poll_id: str, fields: dict[str, Any]) -> bool:
        """
        Apply a partial update (e.g. {"ballots": {...}}).

        Raises:
            NotFoundError: If the poll doesn't exist
        """
        pass

    @abstractmethod
    async def list_polls(self, active_only: bool = False) -> list[Poll]:
        """List polls, newest first."""
        pass


class PaymentStorageInterface(ABC):
    """Direct settlements between apartments."""

    @abstractmethod
    async def save_payment(self, payment: Payment) -> bool:
        pass

    @abstractmethod
    async def get_payment(self, payment_id: str) -> Optional[Payment]:
        pass

    @abstractmethod
    async def update_payment_fields(self, payment_id: str, fields: dict[str, Any]) -> bool:
        """
        Raises:
            NotFoundError: If the payment doesn't exist
        """
        pass

    @abstractmethod
    async def list_payments(
        self,
        month_year: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
    ) -> list[Payment]:
        """List payments, optionally for one month and/or status."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one payment toggle).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'expense', 'poll')
            entity_id: The entity's ID
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
