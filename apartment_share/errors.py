"""
Ledger Exceptions

All ledger failures derive from LedgerError so callers can catch the
whole family at the flow boundary.
"""

from typing import Optional


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidInputError(LedgerError):
    """
    Input rejected before any write.

    Raised for non-positive amounts, splits against an empty registry,
    unknown apartments/categories/options and malformed keyed state.
    """
    pass


class InconsistentStateError(LedgerError):
    """
    A stored record violates a ledger invariant.

    Never auto-corrected; the offending expense id is carried so the
    record can be inspected.
    """

    def __init__(self, message: str, expense_id: Optional[str] = None):
        super().__init__(message)
        self.expense_id = expense_id


class PermissionDeniedError(LedgerError):
    """The acting apartment may not perform this operation."""
    pass


class NotificationDispatchError(LedgerError):
    """
    Payment request fan-out only partially succeeded.

    Requests already sent are not rolled back.
    """

    def __init__(self, message: str, sent: list, failed: list):
        super().__init__(message)
        self.sent = sent
        self.failed = failed
