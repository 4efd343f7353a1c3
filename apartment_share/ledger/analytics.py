"""
Spending Analytics

Read-only folds over the expense history for the committee's charts:
- spending per category, for one month or all time
- total spending per month over a trailing window

Every expense counts at its full amount, whether it is split or not.
Like the balance aggregator, nothing is cached between calls.
"""

import re
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Union

from pydantic import BaseModel, Field

from apartment_share.errors import InvalidInputError
from apartment_share.ledger.splitting import ZERO, to_cents
from apartment_share.models.expense import Expense
from apartment_share.models.registry import CategoryCatalog


MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
DEFAULT_TRAILING_MONTHS = 6


class CategorySpending(BaseModel):
    category_id: str
    name: str
    total: Decimal = ZERO


class MonthlySpending(BaseModel):
    month: str = Field(..., description="YYYY-MM")
    label: str = Field(..., description="Display label, e.g. 'Dec 2024'")
    total: Decimal = ZERO


class SpendingSummary(BaseModel):
    """Both analytics views computed from one history fetch."""

    month: Optional[str] = Field(
        default=None,
        description="Month the category view is limited to; None for all time"
    )
    by_category: list[CategorySpending] = Field(default_factory=list)
    by_month: list[MonthlySpending] = Field(default_factory=list)

    @property
    def category_total(self) -> Decimal:
        return sum((c.total for c in self.by_category), ZERO)


def month_key(when: Union[date, datetime]) -> str:
    return f"{when.year:04d}-{when.month:02d}"


def _require_month(month: str) -> str:
    if not MONTH_PATTERN.match(month):
        raise InvalidInputError(f"Month must be YYYY-MM, got {month!r}")
    return month


def category_spending(
    expenses: Iterable[Expense],
    categories: CategoryCatalog,
    month: Optional[str] = None,
) -> list[CategorySpending]:
    """
    Total spent per category, in catalog order.

    Every catalog category appears, with zero if nothing was spent.
    Expenses whose category is not in the catalog are left out.
    """
    if month is not None:
        _require_month(month)

    totals: dict[str, Decimal] = {c.id: ZERO for c in categories.categories}
    for expense in expenses:
        if month is not None and month_key(expense.date) != month:
            continue
        if expense.category_id in totals:
            totals[expense.category_id] += expense.amount

    return [
        CategorySpending(
            category_id=category.id,
            name=category.name,
            total=to_cents(totals[category.id]),
        )
        for category in categories.categories
    ]


def trailing_months(months: int, today: Optional[date] = None) -> list[str]:
    """The last `months` month keys ending with the current one, oldest first."""
    if months < 1:
        raise InvalidInputError("At least one month is needed")
    today = today or datetime.utcnow().date()
    index = today.year * 12 + today.month - 1
    keys = []
    for offset in range(months - 1, -1, -1):
        year, month = divmod(index - offset, 12)
        keys.append(f"{year:04d}-{month + 1:02d}")
    return keys


def monthly_spending(
    expenses: Iterable[Expense],
    months: int = DEFAULT_TRAILING_MONTHS,
    today: Optional[date] = None,
) -> list[MonthlySpending]:
    """Total spent per month over the trailing window, oldest first."""
    keys = trailing_months(months, today)
    totals: dict[str, Decimal] = {key: ZERO for key in keys}
    for expense in expenses:
        key = month_key(expense.date)
        if key in totals:
            totals[key] += expense.amount

    return [
        MonthlySpending(
            month=key,
            label=datetime.strptime(key, "%Y-%m").strftime("%b %Y"),
            total=to_cents(totals[key]),
        )
        for key in keys
    ]


def spending_summary(
    expenses: Iterable[Expense],
    categories: CategoryCatalog,
    month: Optional[str] = None,
    months: int = DEFAULT_TRAILING_MONTHS,
    today: Optional[date] = None,
) -> SpendingSummary:
    expenses = list(expenses)
    return SpendingSummary(
        month=month,
        by_category=category_spending(expenses, categories, month),
        by_month=monthly_spending(expenses, months, today),
    )
