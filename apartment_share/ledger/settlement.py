"""
Direct Payments and Monthly Balance Sheets

Direct payments settle money between two apartments outside the
per-expense share tracking. A payment only counts once an admin
approves it; pending and rejected payments never touch a balance sheet.

Balance sheets are derived snapshots:
    closing = opening + income - expenses
where, for the month:
    income   = approved payments received
    expenses = full amounts of expenses this apartment paid
               + approved payments it sent
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from apartment_share.errors import InvalidInputError, PermissionDeniedError
from apartment_share.ledger.permissions import can_approve_payment
from apartment_share.ledger.splitting import ZERO, as_amount
from apartment_share.models.expense import Expense
from apartment_share.models.registry import Actor, ApartmentRegistry
from apartment_share.models.settlement import BalanceSheet, Payment, PaymentStatus


def month_key(moment: datetime) -> str:
    """Accounting month of a timestamp, YYYY-MM."""
    return moment.strftime("%Y-%m")


def record_payment(
    payer_id: str,
    payee_id: str,
    amount,
    month_year: str,
    registry: ApartmentRegistry,
    expense_id: Optional[str] = None,
    receipt_ref: Optional[str] = None,
) -> Payment:
    """
    Create a pending payment.

    Raises:
        InvalidInputError: non-positive amount, unknown apartment, or
                           an apartment paying itself.
    """
    amount = as_amount(amount)
    registry.require(payer_id)
    registry.require(payee_id)
    if payer_id == payee_id:
        raise InvalidInputError("An apartment cannot pay itself")

    return Payment(
        payer_id=payer_id,
        payee_id=payee_id,
        amount=amount,
        expense_id=expense_id,
        month_year=month_year,
        receipt_ref=receipt_ref,
        status=PaymentStatus.PENDING,
    )


def _decide(payment: Payment, actor: Actor, status: PaymentStatus) -> Payment:
    if not can_approve_payment(actor):
        raise PermissionDeniedError("Only admins can approve or reject payments")
    if payment.status != PaymentStatus.PENDING:
        raise InvalidInputError(
            f"Payment {payment.id} is already {payment.status.value}"
        )
    return payment.model_copy(update={
        "status": status,
        "approved_by": actor.user_id,
        "approved_by_name": actor.name,
    })


def approve_payment(payment: Payment, actor: Actor) -> Payment:
    return _decide(payment, actor, PaymentStatus.APPROVED)


def reject_payment(payment: Payment, actor: Actor) -> Payment:
    return _decide(payment, actor, PaymentStatus.REJECTED)


def decision_update(payment: Payment) -> dict:
    """The partial update a caller persists after approving or rejecting."""
    return {
        "status": payment.status,
        "approved_by": payment.approved_by,
        "approved_by_name": payment.approved_by_name,
    }


def build_balance_sheets(
    month_year: str,
    registry: ApartmentRegistry,
    expenses: Iterable[Expense],
    payments: Iterable[Payment],
    opening_balances: Optional[dict[str, Decimal]] = None,
) -> list[BalanceSheet]:
    """One sheet per registered apartment, in registry order."""
    opening_balances = opening_balances or {}
    income = {apartment_id: ZERO for apartment_id in registry.ids}
    spent = {apartment_id: ZERO for apartment_id in registry.ids}

    for expense in expenses:
        if month_key(expense.date) == month_year and expense.paid_by_apartment in spent:
            spent[expense.paid_by_apartment] += expense.amount

    for payment in payments:
        if payment.month_year != month_year or not payment.counts_as_settled:
            continue
        if payment.payee_id in income:
            income[payment.payee_id] += payment.amount
        if payment.payer_id in spent:
            spent[payment.payer_id] += payment.amount

    sheets = []
    for apartment_id in registry.ids:
        opening = opening_balances.get(apartment_id, ZERO)
        sheets.append(BalanceSheet(
            apartment_id=apartment_id,
            month_year=month_year,
            opening_balance=opening,
            total_income=income[apartment_id],
            total_expenses=spent[apartment_id],
            closing_balance=opening + income[apartment_id] - spent[apartment_id],
        ))
    return sheets
