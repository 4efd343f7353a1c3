"""
In-Memory Storage Implementation

Keeps every record in process memory. Used by the tests and for local
runs without Google credentials. It follows the same contracts as the
Google Sheets backend: expenses come back as raw JSON-style records,
partial updates merge only the given fields, and updates to unknown ids
raise NotFoundError.
"""

from copy import deepcopy
from typing import Any, Optional
from uuid import UUID

from pydantic_core import to_jsonable_python

from apartment_share.models.audit import AuditEvent
from apartment_share.models.community import Notification, Poll
from apartment_share.models.expense import Expense
from apartment_share.models.registry import Apartment, Category
from apartment_share.models.settlement import Payment, PaymentStatus
from apartment_share.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    NotificationStorageInterface,
    PaymentStorageInterface,
    PollStorageInterface,
    RegistryStorageInterface,
)


class InMemoryExpenseStorage(ExpenseStorageInterface):
    """Expenses kept as raw records, in insertion order."""

    def __init__(self, records: Optional[list[dict[str, Any]]] = None):
        self._records: dict[str, dict[str, Any]] = {}
        for record in records or []:
            self._records[record["id"]] = to_jsonable_python(record)

    async def save_expense(self, expense: Expense) -> bool:
        if expense.id in self._records:
            raise DuplicateError(f"Expense already exists: {expense.id}")
        self._records[expense.id] = expense.model_dump(mode="json")
        return True

    async def get_expense_record(self, expense_id: str) -> Optional[dict[str, Any]]:
        record = self._records.get(expense_id)
        return deepcopy(record) if record is not None else None

    async def list_expense_records(self) -> list[dict[str, Any]]:
        return [deepcopy(record) for record in self._records.values()]

    async def update_expense_fields(
        self,
        expense_id: str,
        fields: dict[str, Any],
    ) -> bool:
        if expense_id not in self._records:
            raise NotFoundError(f"Expense not found: {expense_id}")
        self._records[expense_id].update(to_jsonable_python(fields))
        return True

    async def delete_expense(self, expense_id: str) -> bool:
        return self._records.pop(expense_id, None) is not None


class InMemoryRegistryStorage(RegistryStorageInterface):

    def __init__(
        self,
        apartments: Optional[list[Apartment]] = None,
        categories: Optional[list[Category]] = None,
    ):
        self._apartments: dict[str, Apartment] = {a.id: a for a in apartments or []}
        self._categories: dict[str, Category] = {c.id: c for c in categories or []}

    async def list_apartments(self) -> list[Apartment]:
        return list(self._apartments.values())

    async def save_apartment(self, apartment: Apartment) -> bool:
        if apartment.id in self._apartments:
            raise DuplicateError(f"Apartment already exists: {apartment.id}")
        self._apartments[apartment.id] = apartment
        return True

    async def list_categories(self) -> list[Category]:
        return list(self._categories.values())

    async def save_category(self, category: Category) -> bool:
        if category.id in self._categories:
            raise DuplicateError(f"Category already exists: {category.id}")
        self._categories[category.id] = category
        return True


class InMemoryNotificationStorage(NotificationStorageInterface):

    def __init__(self):
        self._notifications: dict[str, Notification] = {}

    async def save_notification(self, notification: Notification) -> bool:
        if notification.id in self._notifications:
            raise DuplicateError(f"Notification already exists: {notification.id}")
        self._notifications[notification.id] = notification
        return True

    async def get_notification(self, notification_id: str) -> Optional[Notification]:
        return self._notifications.get(notification_id)

    async def update_notification_fields(
        self,
        notification_id: str,
        fields: dict[str, Any],
    ) -> bool:
        current = self._notifications.get(notification_id)
        if current is None:
            raise NotFoundError(f"Notification not found: {notification_id}")
        self._notifications[notification_id] = Notification.model_validate(
            {**current.model_dump(), **fields}
        )
        return True

    async def list_notifications(
        self,
        apartment_id: Optional[str] = None,
    ) -> list[Notification]:
        notifications = [
            n for n in self._notifications.values()
            if apartment_id is None or n.addresses(apartment_id)
        ]
        notifications.sort(key=lambda n: n.created_at, reverse=True)
        return notifications


class InMemoryPollStorage(PollStorageInterface):

    def __init__(self):
        self._polls: dict[str, Poll] = {}

    async def save_poll(self, poll: Poll) -> bool:
        if poll.id in self._polls:
            raise DuplicateError(f"Poll already exists: {poll.id}")
        self._polls[poll.id] = poll
        return True

    async def get_poll(self, poll_id: str) -> Optional[Poll]:
        return self._polls.get(poll_id)

    async def update_poll_fields(self, poll_id: str, fields: dict[str, Any]) -> bool:
        current = self._polls.get(poll_id)
        if current is None:
            raise NotFoundError(f"Poll not found: {poll_id}")
        self._polls[poll_id] = Poll.model_validate({**current.model_dump(), **fields})
        return True

    async def list_polls(self, active_only: bool = False) -> list[Poll]:
        polls = [p for p in self._polls.values() if p.is_active or not active_only]
        polls.sort(key=lambda p: p.created_at, reverse=True)
        return polls


class InMemoryPaymentStorage(PaymentStorageInterface):

    def __init__(self):
        self._payments: dict[str, Payment] = {}

    async def save_payment(self, payment: Payment) -> bool:
        if payment.id in self._payments:
            raise DuplicateError(f"Payment already exists: {payment.id}")
        self._payments[payment.id] = payment
        return True

    async def get_payment(self, payment_id: str) -> Optional[Payment]:
        return self._payments.get(payment_id)

    async def update_payment_fields(self, payment_id: str, fields: dict[str, Any]) -> bool:
        current = self._payments.get(payment_id)
        if current is None:
            raise NotFoundError(f"Payment not found: {payment_id}")
        self._payments[payment_id] = Payment.model_validate(
            {**current.model_dump(), **fields}
        )
        return True

    async def list_payments(
        self,
        month_year: Optional[str] = None,
        status: Optional[PaymentStatus] = None,
    ) -> list[Payment]:
        return [
            p for p in self._payments.values()
            if (month_year is None or p.month_year == month_year)
            and (status is None or p.status == status)
        ]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
