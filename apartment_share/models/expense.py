"""
Expense Models for Apartment Share

An expense is a cost paid by one apartment and, for split categories,
owed back in equal shares by every other apartment.

Two record shapes exist in storage:
- LegacyExpense: written before split tracking existed. No split fields.
- Expense: the current shape with obligations and the settled set.

DESIGN DECISION: The two shapes are separate models. A raw record is
classified once (see ledger.migration.parse_expense_record) and legacy
records are upgraded by a single named function. Nothing downstream
checks for missing fields.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from apartment_share.config import get_settings


EXPENSE_SCHEMA_VERSION = 2

Money = Annotated[Decimal, Field(decimal_places=2)]


def new_record_id() -> str:
    return str(uuid4())


class ExpenseSubmission(BaseModel):
    """
    A cost as submitted by the expense form.

    This is UNTRUSTED input. It goes through validation and the
    splitting policy before an Expense is created from it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(
        default="",
        max_length=200,
    )
    amount: Decimal = Field(
        ...,
        description="Total amount paid"
    )
    category_id: str
    paid_by_apartment: str
    date: Optional[datetime] = Field(
        default=None,
        description="When the cost was incurred; defaults to submission time"
    )
    receipt: Optional[str] = Field(
        default=None,
        description="Opaque reference to an uploaded receipt"
    )


class LegacyExpense(BaseModel):
    """An expense record written before split tracking existed."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_record_id)
    description: str = ""
    amount: Money = Field(..., gt=0)
    date: datetime = Field(default_factory=datetime.utcnow)
    category_id: str
    paid_by_apartment: str
    receipt: Optional[str] = None
    schema_version: Literal[1] = 1


class Expense(BaseModel):
    """
    A shared cost with its per-apartment obligations.

    Only paid_by_apartments changes after creation. Cross-field invariants
    (settled set within the obligations, payer not obligated) are checked
    by the balance aggregator rather than here, so an inconsistent stored
    record is reported instead of failing to load.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_record_id)
    description: str = Field(
        default="",
        max_length=200,
    )
    amount: Money = Field(
        ...,
        gt=0,
        description="Total amount paid by the paying apartment"
    )
    date: datetime = Field(default_factory=datetime.utcnow)
    category_id: str
    paid_by_apartment: str = Field(
        ...,
        description="Apartment that paid the full amount"
    )
    owed_by_apartments: list[str] = Field(
        default_factory=list,
        description="Apartments that owe a share (never the payer)"
    )
    per_apartment_share: Money = Field(
        ...,
        ge=0,
        description="Amount each owing apartment owes"
    )
    paid_by_apartments: list[str] = Field(
        default_factory=list,
        description="Owing apartments that have settled their share"
    )
    receipt: Optional[str] = None
    schema_version: Literal[2] = EXPENSE_SCHEMA_VERSION

    @property
    def unpaid_apartments(self) -> list[str]:
        """Owing apartments that have not settled, in obligation order."""
        return [
            apartment_id
            for apartment_id in self.owed_by_apartments
            if apartment_id not in self.paid_by_apartments
        ]

    @property
    def is_split(self) -> bool:
        return bool(self.owed_by_apartments)


class ExpenseOutstanding(BaseModel):
    """What is still owed on one expense."""

    original_amount: Decimal
    outstanding: Decimal = Field(
        ...,
        description="Amount still owed to the paying apartment"
    )
    paid_apartments: list[str] = Field(default_factory=list)
    unpaid_apartments: list[str] = Field(default_factory=list)
    per_apartment_share: Decimal


class ApartmentBalance(BaseModel):
    """
    Net position of one apartment across the full expense history.

    Sign convention: positive = others owe this apartment,
    negative = this apartment owes others.
    """

    apartment_id: str
    name: str
    balance: Decimal = Decimal("0")
    owes: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Creditor apartment id -> amount this apartment owes it"
    )
    is_owed: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Debtor apartment id -> amount it owes this apartment"
    )

    def is_settled(self, tolerance: Optional[Decimal] = None) -> bool:
        """Near-zero balances count as settled (LEDGER_SETTLED_TOLERANCE)."""
        if tolerance is None:
            tolerance = get_settings().ledger.settled_tolerance
        return abs(self.balance) <= tolerance
