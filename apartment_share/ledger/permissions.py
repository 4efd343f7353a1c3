"""
Capability Checks

Who may do what, decided apart from any UI callback:
- toggling a payment flag: admins and the paying apartment may toggle any
  owing apartment; every other apartment only its own entry
- approving or rejecting a direct payment: admins only
- creating announcements and polls, closing polls: admins only
- deleting an expense: admins and the paying apartment
"""

from apartment_share.errors import PermissionDeniedError
from apartment_share.models.expense import Expense
from apartment_share.models.registry import Actor


def can_toggle_payment(actor: Actor, expense: Expense, target_apartment_id: str) -> bool:
    if actor.is_admin:
        return True
    if actor.apartment_id == expense.paid_by_apartment:
        return True
    return actor.apartment_id == target_apartment_id


def require_toggle_permission(
    actor: Actor,
    expense: Expense,
    target_apartment_id: str,
) -> None:
    """Raise PermissionDeniedError unless the actor may toggle the target."""
    if not can_toggle_payment(actor, expense, target_apartment_id):
        raise PermissionDeniedError(
            f"Apartment {actor.apartment_id} may not change the payment status "
            f"of {target_apartment_id} on expense {expense.id}"
        )


def can_approve_payment(actor: Actor) -> bool:
    return actor.is_admin


def require_admin(actor: Actor, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDeniedError(f"Only admins can {action}")


def can_delete_expense(actor: Actor, expense: Expense) -> bool:
    return actor.is_admin or actor.apartment_id == expense.paid_by_apartment
