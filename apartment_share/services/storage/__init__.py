"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the production backend; the in-memory backend serves
tests and local runs.
"""

from apartment_share.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    ExpenseStorageInterface,
    NotFoundError,
    NotificationStorageInterface,
    PaymentStorageInterface,
    PollStorageInterface,
    RegistryStorageInterface,
    StorageError,
)
from apartment_share.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryExpenseStorage,
    InMemoryNotificationStorage,
    InMemoryPaymentStorage,
    InMemoryPollStorage,
    InMemoryRegistryStorage,
)
from apartment_share.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsNotificationStorage,
    GoogleSheetsPaymentStorage,
    GoogleSheetsPollStorage,
    GoogleSheetsRegistryStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "ExpenseStorageInterface",
    "NotificationStorageInterface",
    "PaymentStorageInterface",
    "PollStorageInterface",
    "RegistryStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryExpenseStorage",
    "InMemoryNotificationStorage",
    "InMemoryPaymentStorage",
    "InMemoryPollStorage",
    "InMemoryRegistryStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsExpenseStorage",
    "GoogleSheetsNotificationStorage",
    "GoogleSheetsPaymentStorage",
    "GoogleSheetsPollStorage",
    "GoogleSheetsRegistryStorage",
]
