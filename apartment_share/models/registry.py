"""
Registry Models for Apartment Share

Apartments are the atomic party in every ledger operation: expenses,
obligations, balances, read flags and votes are all keyed by apartment id,
never by person.

DESIGN DECISION: The registry is seeded once and treated as immutable.
An apartment is never removed while an expense references it.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from apartment_share.errors import InvalidInputError


class UserRole(str, Enum):
    """System permission role of the acting user."""
    USER = "user"
    ADMIN = "admin"
    INCHARGE = "incharge"


class PropertyRole(str, Enum):
    """Relationship of a user to their apartment."""
    TENANT = "tenant"
    OWNER = "owner"


class Apartment(BaseModel):
    """A residential unit."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Stable short code, e.g. 'G1'"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
    )
    members: list[str] = Field(
        default_factory=list,
        description="User IDs living in this apartment"
    )


class Category(BaseModel):
    """Expense category."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=50)
    icon: str = ""


class Actor(BaseModel):
    """
    The user performing an operation, resolved to their apartment.

    Built by the application shell from its session; the ledger only
    reads it.
    """

    user_id: str
    apartment_id: str
    role: UserRole = UserRole.USER
    property_role: Optional[PropertyRole] = None
    name: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class ApartmentRegistry(BaseModel):
    """
    Ordered, duplicate-free set of apartments.

    Registry order is the order obligations are listed in.
    """

    apartments: list[Apartment] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_unique_ids(self) -> 'ApartmentRegistry':
        """Reject duplicate apartment ids."""
        seen = set()
        for apartment in self.apartments:
            if apartment.id in seen:
                raise ValueError(f"Duplicate apartment id: {apartment.id}")
            seen.add(apartment.id)
        return self

    @classmethod
    def from_ids(cls, apartment_ids: list[str]) -> 'ApartmentRegistry':
        """Seed a registry with default names."""
        return cls(apartments=[
            Apartment(id=apartment_id, name=f"Apartment {apartment_id}")
            for apartment_id in apartment_ids
        ])

    @property
    def ids(self) -> list[str]:
        return [apartment.id for apartment in self.apartments]

    @property
    def size(self) -> int:
        return len(self.apartments)

    def contains(self, apartment_id: str) -> bool:
        return any(apartment.id == apartment_id for apartment in self.apartments)

    def get(self, apartment_id: str) -> Optional[Apartment]:
        for apartment in self.apartments:
            if apartment.id == apartment_id:
                return apartment
        return None

    def require(self, apartment_id: str) -> Apartment:
        """Look up an apartment, raising InvalidInputError if unknown."""
        apartment = self.get(apartment_id)
        if apartment is None:
            raise InvalidInputError(f"Unknown apartment: {apartment_id}")
        return apartment


DEFAULT_CATEGORIES = [
    ("Utilities", "🏠"),
    ("Cleaning", "🧹"),
    ("Maintenance", "🔧"),
    ("CCTV", "📹"),
    ("Electricity", "⚡"),
    ("Supplies", "📦"),
    ("Repairs", "🔧"),
    ("Water Tank", "💧"),
    ("Security", "🔒"),
    ("Other", "❓"),
]


class CategoryCatalog(BaseModel):
    """Known expense categories, looked up by id."""

    categories: list[Category] = Field(default_factory=list)

    @classmethod
    def default(cls) -> 'CategoryCatalog':
        return cls(categories=[
            Category(id=name.lower().replace(" ", "-"), name=name, icon=icon)
            for name, icon in DEFAULT_CATEGORIES
        ])

    def get(self, category_id: str) -> Optional[Category]:
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def name_for(self, category_id: str) -> Optional[str]:
        category = self.get(category_id)
        return category.name if category else None
