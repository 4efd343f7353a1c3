"""
Splitting Policy

Turns one submitted cost into per-apartment obligations.

RULES:
- Non-split categories (case-insensitive, configured; default "cleaning"):
  nobody owes anything, the payer bears the full cost.
- Everything else: every apartment except the payer owes an equal share
  of amount / N, rounded half-up to the cent.

The payer's own share is never recorded as an obligation. It is implied:
payer_share = amount - share * (N - 1), so a split always reconstructs
the amount exactly. Any sub-cent residue from rounding lands on the payer.

This module is pure: no I/O, no logging, no state between calls.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from apartment_share.config import get_settings
from apartment_share.errors import InvalidInputError
from apartment_share.models.registry import ApartmentRegistry, CategoryCatalog


CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_cents(value: Decimal) -> Decimal:
    """Round a money amount half-up to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def as_amount(value) -> Decimal:
    """Coerce an int/str/Decimal amount to Decimal and reject non-positive values."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError as e:
        raise InvalidInputError(f"Amount is not a number: {value!r}") from e
    if not amount.is_finite() or amount <= 0:
        raise InvalidInputError(f"Amount must be greater than zero, got {value}")
    return amount


class SplitResult(BaseModel):
    """Obligations computed for one cost."""

    owed_by_apartments: list[str] = Field(
        default_factory=list,
        description="Apartments that owe a share, in registry order"
    )
    per_apartment_share: Decimal = Field(
        default=ZERO,
        description="Amount each owing apartment owes"
    )
    payer_share: Decimal = Field(
        ...,
        description="Portion of the amount borne by the payer"
    )

    @property
    def total_owed(self) -> Decimal:
        """Sum owed back to the payer by everyone else."""
        return self.per_apartment_share * len(self.owed_by_apartments)


class SplittingPolicy:
    """
    Computes obligations from amount, payer, category and registry.

    Usage:
        policy = SplittingPolicy()
        result = policy.split(Decimal("700"), "G1", "Utilities", registry)
    """

    def __init__(self, non_split_categories: Optional[Iterable[str]] = None):
        """
        Args:
            non_split_categories: Category names borne by the payer alone.
                                  Defaults to the configured exemption list.
        """
        if non_split_categories is None:
            self._non_split = get_settings().ledger.non_split_category_set
        else:
            self._non_split = frozenset(
                name.strip().lower() for name in non_split_categories if name.strip()
            )

    @property
    def non_split_categories(self) -> frozenset[str]:
        return self._non_split

    def is_split_category(self, category_name: Optional[str]) -> bool:
        """False only for names in the exemption list."""
        if category_name is None:
            return True
        return category_name.strip().lower() not in self._non_split

    def split(
        self,
        amount,
        payer_id: str,
        category_name: Optional[str],
        registry: ApartmentRegistry,
    ) -> SplitResult:
        """
        Compute the obligations for one cost.

        Raises:
            InvalidInputError: amount <= 0, empty registry, or a payer
                               that is not a registered apartment.
        """
        amount = as_amount(amount)

        if registry.size == 0:
            raise InvalidInputError("Cannot split an expense against an empty registry")
        registry.require(payer_id)

        if not self.is_split_category(category_name):
            return SplitResult(payer_share=amount)

        owing = [apartment_id for apartment_id in registry.ids if apartment_id != payer_id]
        if not owing:
            # Payer is the only apartment
            return SplitResult(payer_share=amount)

        share = to_cents(amount / registry.size)
        return SplitResult(
            owed_by_apartments=owing,
            per_apartment_share=share,
            payer_share=amount - share * len(owing),
        )

    def split_for_category_id(
        self,
        amount,
        payer_id: str,
        category_id: str,
        registry: ApartmentRegistry,
        categories: CategoryCatalog,
    ) -> SplitResult:
        """
        Split using a stored category id.

        An id missing from the catalog has no name to exempt, so it splits.
        """
        return self.split(amount, payer_id, categories.name_for(category_id), registry)


def is_split_category(category_name: Optional[str]) -> bool:
    """Exemption test against the configured non-split list."""
    return SplittingPolicy().is_split_category(category_name)
