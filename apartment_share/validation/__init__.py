"""Validation package."""

from apartment_share.validation.validator import ExpenseSubmissionValidator

__all__ = ["ExpenseSubmissionValidator"]
