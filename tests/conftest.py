"""Shared fixtures for the Apartment Share tests."""

from decimal import Decimal

import pytest

from apartment_share.ledger.splitting import SplittingPolicy
from apartment_share.models.expense import Expense
from apartment_share.models.registry import (
    Actor,
    ApartmentRegistry,
    CategoryCatalog,
    UserRole,
)


BUILDING = ["G1", "F1", "F2", "S1", "S2", "T1", "T2"]


@pytest.fixture
def registry() -> ApartmentRegistry:
    return ApartmentRegistry.from_ids(BUILDING)


@pytest.fixture
def categories() -> CategoryCatalog:
    return CategoryCatalog.default()


@pytest.fixture
def policy() -> SplittingPolicy:
    return SplittingPolicy(["cleaning"])


@pytest.fixture
def utilities_expense(registry, policy) -> Expense:
    """700 of utilities paid by G1: everyone else owes 100."""
    split = policy.split(Decimal("700"), "G1", "Utilities", registry)
    return Expense(
        id="exp-utilities",
        description="Water bill",
        amount=Decimal("700"),
        category_id="utilities",
        paid_by_apartment="G1",
        owed_by_apartments=split.owed_by_apartments,
        per_apartment_share=split.per_apartment_share,
    )


@pytest.fixture
def make_actor():
    """Build the acting user for an apartment."""
    def _make(apartment_id: str, role: UserRole = UserRole.USER) -> Actor:
        return Actor(
            user_id=f"user-{apartment_id.lower()}",
            apartment_id=apartment_id,
            role=role,
            name=f"Resident {apartment_id}",
        )
    return _make
