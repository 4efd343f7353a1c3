"""Services package."""

from apartment_share.services.storage import (
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

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "ExpenseStorageInterface",
    "NotFoundError",
    "NotificationStorageInterface",
    "PaymentStorageInterface",
    "PollStorageInterface",
    "RegistryStorageInterface",
    "StorageError",
]
