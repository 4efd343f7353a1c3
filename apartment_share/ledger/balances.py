"""
Balance Aggregator

Recomputes every apartment's net position from the full expense history.

CRITICAL: This is a stateless fold. Nothing is cached or carried forward
between calls; every display refetches the history and calls
aggregate_balances again. Because all amounts are cent-exact Decimals,
the result is independent of expense order and the balances of all
apartments always sum to exactly zero.

Sign convention: positive = others owe this apartment,
negative = this apartment owes others.

owes / is_owed are gross per-counterparty amounts. If G1 owes F1 on one
expense and F1 owes G1 on another, both entries are kept; only the
balance is netted.
"""

from decimal import Decimal
from typing import Iterable, Optional

from apartment_share.errors import InconsistentStateError
from apartment_share.ledger.splitting import ZERO
from apartment_share.models.expense import ApartmentBalance, Expense, ExpenseOutstanding
from apartment_share.models.registry import ApartmentRegistry


def check_consistency(expense: Expense, registry: ApartmentRegistry) -> None:
    """
    Verify one stored expense against the ledger invariants.

    Raises InconsistentStateError naming the expense. Never corrects it.
    """
    owed = expense.owed_by_apartments
    paid = expense.paid_by_apartments

    if not registry.contains(expense.paid_by_apartment):
        raise InconsistentStateError(
            f"Expense {expense.id} was paid by unknown apartment "
            f"{expense.paid_by_apartment}",
            expense_id=expense.id,
        )

    if len(set(owed)) != len(owed) or len(set(paid)) != len(paid):
        raise InconsistentStateError(
            f"Expense {expense.id} lists an apartment more than once",
            expense_id=expense.id,
        )

    if expense.paid_by_apartment in owed:
        raise InconsistentStateError(
            f"Expense {expense.id} lists its payer {expense.paid_by_apartment} as owing",
            expense_id=expense.id,
        )

    unknown = [apartment_id for apartment_id in owed if not registry.contains(apartment_id)]
    if unknown:
        raise InconsistentStateError(
            f"Expense {expense.id} references unknown apartments: {unknown}",
            expense_id=expense.id,
        )

    stray = [apartment_id for apartment_id in paid if apartment_id not in owed]
    if stray:
        raise InconsistentStateError(
            f"Expense {expense.id} marks {stray} as paid but they do not owe a share",
            expense_id=expense.id,
        )


def aggregate_balances(
    expenses: Iterable[Expense],
    registry: ApartmentRegistry,
) -> dict[str, ApartmentBalance]:
    """
    Compute every registered apartment's balance from scratch.

    Returns apartment id -> ApartmentBalance in registry order. Apartments
    with no activity are present with a zero balance.

    Raises:
        InconsistentStateError: a stored expense violates an invariant.
    """
    balances = {
        apartment.id: ApartmentBalance(
            apartment_id=apartment.id,
            name=apartment.name,
            balance=ZERO,
        )
        for apartment in registry.apartments
    }

    for expense in expenses:
        check_consistency(expense, registry)

        unpaid = expense.unpaid_apartments
        if not unpaid:
            continue

        share = expense.per_apartment_share
        creditor = balances[expense.paid_by_apartment]
        creditor.balance += share * len(unpaid)

        for apartment_id in unpaid:
            creditor.is_owed[apartment_id] = creditor.is_owed.get(apartment_id, ZERO) + share

            debtor = balances[apartment_id]
            debtor.balance -= share
            debtor.owes[expense.paid_by_apartment] = (
                debtor.owes.get(expense.paid_by_apartment, ZERO) + share
            )
        # Apartments in paid_by_apartments are left untouched for this expense

    return balances


def total_balance(balances: dict[str, ApartmentBalance]) -> Decimal:
    """Sum of all balances. Zero for any consistent history."""
    return sum((b.balance for b in balances.values()), ZERO)


def unsettled_apartments(
    balances: dict[str, ApartmentBalance],
    tolerance: Optional[Decimal] = None,
) -> list[str]:
    """Apartments whose balance is outside the settled tolerance."""
    return [
        apartment_id
        for apartment_id, balance in balances.items()
        if not balance.is_settled(tolerance)
    ]


def outstanding_for(expense: Expense) -> ExpenseOutstanding:
    """What the paying apartment is still owed on one expense."""
    unpaid = expense.unpaid_apartments
    paid = [
        apartment_id
        for apartment_id in expense.owed_by_apartments
        if apartment_id in expense.paid_by_apartments
    ]
    return ExpenseOutstanding(
        original_amount=expense.amount,
        outstanding=expense.per_apartment_share * len(unpaid),
        paid_apartments=paid,
        unpaid_apartments=unpaid,
        per_apartment_share=expense.per_apartment_share,
    )


def total_outstanding(expenses: Iterable[Expense], apartment_id: str) -> Decimal:
    """Total still owed to apartment_id across the expenses it paid."""
    return sum(
        (
            outstanding_for(expense).outstanding
            for expense in expenses
            if expense.paid_by_apartment == apartment_id
        ),
        ZERO,
    )
