"""
Direct Settlement Models

A Payment is money handed from one apartment to another outside the
per-expense share tracking. It only counts once an admin approves it.

A BalanceSheet is a derived monthly snapshot; it is never edited.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from apartment_share.models.expense import Money, new_record_id


class PaymentStatus(str, Enum):
    """
    Approval status of a direct payment.

    Only PENDING payments can move to APPROVED or REJECTED.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Payment(BaseModel):
    """A direct settlement between two apartments."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_record_id)
    payer_id: str = Field(..., description="Apartment that paid")
    payee_id: str = Field(..., description="Apartment that received")
    amount: Money = Field(..., gt=0)
    expense_id: Optional[str] = Field(
        default=None,
        description="Expense this payment settles, if any"
    )
    status: PaymentStatus = PaymentStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.utcnow)
    month_year: str = Field(
        ...,
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description="Accounting month, YYYY-MM"
    )
    receipt_ref: Optional[str] = None
    approved_by: Optional[str] = None
    approved_by_name: Optional[str] = None

    @model_validator(mode='after')
    def validate_parties(self) -> 'Payment':
        if self.payer_id == self.payee_id:
            raise ValueError("An apartment cannot pay itself")
        return self

    @property
    def counts_as_settled(self) -> bool:
        return self.status == PaymentStatus.APPROVED


class BalanceSheet(BaseModel):
    """Monthly reporting snapshot for one apartment."""

    apartment_id: str
    month_year: str
    opening_balance: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    closing_balance: Decimal = Decimal("0")
