"""
Schema Migration Adapter

Expenses written before split tracking existed have no
owed_by_apartments / per_apartment_share. They are classified once, on
read, and upgraded by a single function using the CURRENT splitting
policy, so a legacy expense is treated exactly like a new submission
would be today.

The migrator persists only the backfilled fields. If that write fails the
upgraded record is still used for the current computation and the write
is retried on the next read. This is the one condition the ledger
recovers from silently; it is planned schema evolution, not a bug.
"""

from typing import Any, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from apartment_share.errors import InconsistentStateError, InvalidInputError
from apartment_share.ledger.splitting import SplittingPolicy
from apartment_share.models.expense import EXPENSE_SCHEMA_VERSION, Expense, LegacyExpense
from apartment_share.models.registry import ApartmentRegistry, CategoryCatalog
from apartment_share.services.storage.interface import ExpenseStorageInterface, StorageError


logger = structlog.get_logger(__name__)

SPLIT_FIELDS = ("owed_by_apartments", "per_apartment_share")


def parse_expense_record(raw: dict[str, Any]) -> Union[Expense, LegacyExpense]:
    """
    Classify a stored record into exactly one shape.

    Both split fields present -> Expense (a missing settled set defaults
    to empty; see needs_backfill). Otherwise -> LegacyExpense.

    Raises:
        InconsistentStateError: If the record fits neither shape, e.g. an
            unrounded share or a non-positive amount
    """
    try:
        if all(raw.get(field) is not None for field in SPLIT_FIELDS):
            data = {**raw, "schema_version": EXPENSE_SCHEMA_VERSION}
            return Expense.model_validate(data)
        data = {k: v for k, v in raw.items() if k not in (*SPLIT_FIELDS, "paid_by_apartments")}
        data["schema_version"] = 1
        return LegacyExpense.model_validate(data)
    except ValidationError as e:
        expense_id = raw.get("id")
        raise InconsistentStateError(
            f"Stored expense {expense_id} is malformed: {e.error_count()} invalid field(s)",
            expense_id=expense_id,
        ) from e


def needs_backfill(raw: dict[str, Any]) -> bool:
    """True when any of the split-tracking fields is absent from storage."""
    return any(raw.get(field) is None for field in (*SPLIT_FIELDS, "paid_by_apartments"))


def upgrade_expense(
    legacy: LegacyExpense,
    registry: ApartmentRegistry,
    categories: CategoryCatalog,
    policy: Optional[SplittingPolicy] = None,
) -> Expense:
    """Compute the missing split fields and return a current Expense."""
    policy = policy or SplittingPolicy()
    result = policy.split_for_category_id(
        legacy.amount,
        legacy.paid_by_apartment,
        legacy.category_id,
        registry,
        categories,
    )
    return Expense(
        id=legacy.id,
        description=legacy.description,
        amount=legacy.amount,
        date=legacy.date,
        category_id=legacy.category_id,
        paid_by_apartment=legacy.paid_by_apartment,
        owed_by_apartments=result.owed_by_apartments,
        per_apartment_share=result.per_apartment_share,
        paid_by_apartments=[],
        receipt=legacy.receipt,
    )


def backfill_update(expense: Expense) -> dict[str, Any]:
    """The partial update that persists an upgrade."""
    return {
        "owed_by_apartments": list(expense.owed_by_apartments),
        "per_apartment_share": expense.per_apartment_share,
        "paid_by_apartments": list(expense.paid_by_apartments),
        "schema_version": EXPENSE_SCHEMA_VERSION,
    }


class MigrationReport:
    """What one migrate_all pass did."""

    def __init__(self):
        self.migrated: list[str] = []
        self.failed: dict[str, str] = {}

    @property
    def write_count(self) -> int:
        return len(self.migrated)


class ExpenseMigrator:
    """
    Upgrades legacy records and backfills them in storage.

    Usage:
        migrator = ExpenseMigrator(expense_storage)
        expenses = await migrator.migrate_all(records, registry, categories)
    """

    def __init__(
        self,
        storage: ExpenseStorageInterface,
        policy: Optional[SplittingPolicy] = None,
    ):
        self._storage = storage
        self._policy = policy or SplittingPolicy()
        self.last_report = MigrationReport()

    async def migrate_all(
        self,
        records: list[dict[str, Any]],
        registry: ApartmentRegistry,
        categories: CategoryCatalog,
        correlation_id: Optional[UUID] = None,
    ) -> list[Expense]:
        """
        Return every record as a current Expense, in input order.

        Current records pass through unchanged, so a second run makes
        no writes. A current record stored without its settled set gets
        the defaulted empty set written back.
        """
        report = MigrationReport()
        expenses = []

        for raw in records:
            record = parse_expense_record(raw)
            if isinstance(record, Expense):
                if not needs_backfill(raw):
                    expenses.append(record)
                    continue
                upgraded = record
            else:
                try:
                    upgraded = upgrade_expense(record, registry, categories, self._policy)
                except InvalidInputError as e:
                    raise InconsistentStateError(
                        f"Legacy expense {record.id} cannot be upgraded: {e}",
                        expense_id=record.id,
                    ) from e

            try:
                await self._storage.update_expense_fields(upgraded.id, backfill_update(upgraded))
                report.migrated.append(upgraded.id)
                logger.info(
                    "legacy_expense_migrated",
                    expense_id=upgraded.id,
                    owed_by_apartments=upgraded.owed_by_apartments,
                    per_apartment_share=str(upgraded.per_apartment_share),
                    correlation_id=str(correlation_id) if correlation_id else None,
                )
            except StorageError as e:
                report.failed[upgraded.id] = str(e)
                logger.warning(
                    "legacy_expense_backfill_failed",
                    expense_id=upgraded.id,
                    error=str(e),
                    correlation_id=str(correlation_id) if correlation_id else None,
                )
            expenses.append(upgraded)

        self.last_report = report
        return expenses
