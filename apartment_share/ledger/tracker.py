"""
Payment-State Tracker

Per-expense, per-apartment settled flag, changed independently of the
expense's other fields.

Both transforms are idempotent and pure: they return a new Expense and
never touch the one passed in. Persisting the change (only
paid_by_apartments) and checking who may make it are the caller's job.
"""

from apartment_share.errors import InvalidInputError
from apartment_share.models.expense import Expense


def _require_obligation(expense: Expense, apartment_id: str) -> None:
    if apartment_id not in expense.owed_by_apartments:
        raise InvalidInputError(
            f"{apartment_id} does not owe a share of expense {expense.id}"
        )


def mark_paid(expense: Expense, apartment_id: str) -> Expense:
    """Add apartment_id to the settled set. No-op if already there."""
    _require_obligation(expense, apartment_id)
    if apartment_id in expense.paid_by_apartments:
        return expense.model_copy()
    return expense.model_copy(
        update={"paid_by_apartments": [*expense.paid_by_apartments, apartment_id]}
    )


def mark_unpaid(expense: Expense, apartment_id: str) -> Expense:
    """Remove apartment_id from the settled set. No-op if absent."""
    _require_obligation(expense, apartment_id)
    return expense.model_copy(
        update={
            "paid_by_apartments": [
                paid for paid in expense.paid_by_apartments if paid != apartment_id
            ]
        }
    )


def set_paid(expense: Expense, apartment_id: str, paid: bool) -> Expense:
    return mark_paid(expense, apartment_id) if paid else mark_unpaid(expense, apartment_id)


def paid_update(expense: Expense) -> dict[str, list[str]]:
    """The partial update a caller persists after a toggle."""
    return {"paid_by_apartments": list(expense.paid_by_apartments)}
