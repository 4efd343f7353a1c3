"""
Configuration Management for Apartment Share

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The only setting the splitting rules depend on is the non-split
category list; everything else configures storage and the flows
around the ledger.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Expense splitting and balance configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    non_split_categories: str = Field(
        default="cleaning",
        description="Comma-separated category names borne by the paying apartment alone"
    )
    apartment_ids: str = Field(
        default="G1,F1,F2,S1,S2,T1,T2",
        description="Comma-separated apartment ids used to seed the registry"
    )
    payment_request_due_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="Days until a dispatched payment request is due"
    )
    settled_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Balances within this amount of zero count as settled"
    )
    currency_symbol: str = Field(
        default="₹",
        description="Currency symbol used in notification text"
    )
    default_distribution_category: str = Field(
        default="Utilities",
        description="Category used for ad-hoc payment distributions"
    )

    @property
    def non_split_category_set(self) -> frozenset[str]:
        """Get the exemption list as a lower-cased set."""
        return frozenset(
            name.strip().lower()
            for name in self.non_split_categories.split(",")
            if name.strip()
        )

    @property
    def apartment_id_list(self) -> list[str]:
        """Get seeded apartment ids as a list."""
        return [apt.strip() for apt in self.apartment_ids.split(",") if apt.strip()]


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    apartments_sheet_name: str = Field(default="Apartments")
    categories_sheet_name: str = Field(default="Categories")
    expenses_sheet_name: str = Field(default="Expenses")
    notifications_sheet_name: str = Field(default="Notifications")
    polls_sheet_name: str = Field(default="Polls")
    payments_sheet_name: str = Field(default="Payments")
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Validation thresholds
    max_expense_amount: Decimal = Field(
        default=Decimal("500000"),
        gt=0,
        description="Maximum reasonable expense amount (for sanity checking)"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        description="How many days in the future an expense date can be"
    )

    # Community
    announcement_expiry_days: int = Field(
        default=2,
        ge=1,
        description="Default lifetime of an announcement"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
