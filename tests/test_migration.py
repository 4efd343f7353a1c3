"""
Tests for the legacy expense migration.

A legacy record is upgraded with the current splitting policy, backfilled
once, and passes through untouched afterwards.
"""

import asyncio
import pytest
from decimal import Decimal

from apartment_share.errors import InconsistentStateError
from apartment_share.ledger.migration import (
    ExpenseMigrator,
    backfill_update,
    needs_backfill,
    parse_expense_record,
    upgrade_expense,
)
from apartment_share.models.expense import Expense, LegacyExpense
from apartment_share.services.storage.interface import StorageError
from apartment_share.services.storage.memory import InMemoryExpenseStorage


LEGACY_RECORD = {
    "id": "legacy-1",
    "description": "Old water bill",
    "amount": "700",
    "date": "2024-11-05T10:00:00",
    "category_id": "utilities",
    "paid_by_apartment": "G1",
}


class CountingExpenseStorage(InMemoryExpenseStorage):
    """Counts partial updates."""

    def __init__(self, records=None):
        super().__init__(records)
        self.update_calls = 0

    async def update_expense_fields(self, expense_id, fields):
        self.update_calls += 1
        return await super().update_expense_fields(expense_id, fields)


class FailingUpdateStorage(InMemoryExpenseStorage):
    """Refuses every partial update."""

    async def update_expense_fields(self, expense_id, fields):
        raise StorageError("Sheet is read-only")


class TestParseExpenseRecord:
    """Tests for classifying stored records."""

    def test_record_without_split_fields_is_legacy(self):
        """Test that a record missing split fields is legacy."""
        assert isinstance(parse_expense_record(LEGACY_RECORD), LegacyExpense)

    def test_record_with_one_split_field_is_legacy(self):
        """Test that a half-written record is also legacy."""
        record = {**LEGACY_RECORD, "owed_by_apartments": ["F1"], "per_apartment_share": None}
        assert isinstance(parse_expense_record(record), LegacyExpense)

    def test_current_record(self):
        """Test that a record with both split fields is current."""
        record = {
            **LEGACY_RECORD,
            "owed_by_apartments": ["F1"],
            "per_apartment_share": "350",
        }
        expense = parse_expense_record(record)

        assert isinstance(expense, Expense)
        assert expense.paid_by_apartments == []
        assert expense.schema_version == 2


    def test_unrounded_share_is_inconsistent(self):
        """Test that a share with more than two decimals is surfaced with its id."""
        record = {
            **LEGACY_RECORD,
            "amount": "100",
            "owed_by_apartments": ["F1", "F2"],
            "per_apartment_share": 33.333333333333336,
        }
        with pytest.raises(InconsistentStateError) as exc_info:
            parse_expense_record(record)
        assert exc_info.value.expense_id == "legacy-1"

    @pytest.mark.parametrize("amount", ["0", "10.005", "-5"])
    def test_bad_legacy_amount_is_inconsistent(self, amount):
        """Test that a legacy record with an invalid amount is surfaced."""
        with pytest.raises(InconsistentStateError) as exc_info:
            parse_expense_record({**LEGACY_RECORD, "amount": amount})
        assert exc_info.value.expense_id == "legacy-1"

    def test_needs_backfill(self):
        """Test that any missing split-tracking field asks for a write."""
        current = {
            **LEGACY_RECORD,
            "owed_by_apartments": ["F1"],
            "per_apartment_share": "350",
            "paid_by_apartments": [],
        }
        assert needs_backfill(LEGACY_RECORD) is True
        assert needs_backfill({k: v for k, v in current.items() if k != "paid_by_apartments"}) is True
        assert needs_backfill(current) is False


class TestUpgradeExpense:
    """Tests for upgrade_expense."""

    def test_upgrade_uses_current_policy(self, registry, categories, policy):
        """Test that the upgrade splits like a new submission."""
        legacy = parse_expense_record(LEGACY_RECORD)
        expense = upgrade_expense(legacy, registry, categories, policy)

        assert expense.id == "legacy-1"
        assert expense.owed_by_apartments == ["F1", "F2", "S1", "S2", "T1", "T2"]
        assert expense.per_apartment_share == Decimal("100")
        assert expense.paid_by_apartments == []
        assert expense.description == "Old water bill"

    def test_upgrade_non_split_category(self, registry, categories, policy):
        """Test that a legacy cleaning expense upgrades with no obligations."""
        legacy = parse_expense_record({**LEGACY_RECORD, "category_id": "cleaning"})
        expense = upgrade_expense(legacy, registry, categories, policy)

        assert expense.owed_by_apartments == []
        assert expense.per_apartment_share == Decimal("0")

    def test_backfill_update_fields(self, registry, categories, policy):
        """Test the persisted partial update."""
        expense = upgrade_expense(parse_expense_record(LEGACY_RECORD), registry, categories, policy)
        update = backfill_update(expense)

        assert set(update) == {
            "owed_by_apartments", "per_apartment_share", "paid_by_apartments", "schema_version"
        }
        assert update["schema_version"] == 2


class TestExpenseMigrator:
    """Tests for migrate_all against storage."""

    def test_migration_is_idempotent(self, registry, categories, policy):
        """Test that a second pass makes no writes."""
        storage = CountingExpenseStorage([LEGACY_RECORD])
        migrator = ExpenseMigrator(storage, policy)

        first = asyncio.run(
            migrator.migrate_all(asyncio.run(storage.list_expense_records()), registry, categories)
        )
        assert storage.update_calls == 1
        assert migrator.last_report.migrated == ["legacy-1"]

        second = asyncio.run(
            migrator.migrate_all(asyncio.run(storage.list_expense_records()), registry, categories)
        )
        assert storage.update_calls == 1
        assert migrator.last_report.write_count == 0
        assert first == second

    def test_backfill_failure_still_returns_upgrade(self, registry, categories, policy):
        """Test that a failed write does not block the computation."""
        storage = FailingUpdateStorage([LEGACY_RECORD])
        migrator = ExpenseMigrator(storage, policy)

        expenses = asyncio.run(
            migrator.migrate_all(asyncio.run(storage.list_expense_records()), registry, categories)
        )

        assert expenses[0].per_apartment_share == Decimal("100")
        assert "legacy-1" in migrator.last_report.failed
        assert parse_expense_record(asyncio.run(storage.get_expense_record("legacy-1"))).schema_version == 1

    def test_current_records_pass_through(self, registry, categories, policy, utilities_expense):
        """Test that current records are returned unchanged and in order."""
        storage = CountingExpenseStorage([utilities_expense.model_dump(), LEGACY_RECORD])
        migrator = ExpenseMigrator(storage, policy)

        expenses = asyncio.run(
            migrator.migrate_all(asyncio.run(storage.list_expense_records()), registry, categories)
        )

        assert [e.id for e in expenses] == ["exp-utilities", "legacy-1"]
        assert expenses[0] == utilities_expense
        assert storage.update_calls == 1

    def test_missing_settled_set_is_written_once(self, registry, categories, policy):
        """Test that a current record without paid_by_apartments gets it persisted."""
        record = {
            **LEGACY_RECORD,
            "owed_by_apartments": ["F1", "F2", "S1", "S2", "T1", "T2"],
            "per_apartment_share": "100",
        }
        storage = CountingExpenseStorage([record])
        migrator = ExpenseMigrator(storage, policy)

        expenses = asyncio.run(
            migrator.migrate_all(asyncio.run(storage.list_expense_records()), registry, categories)
        )
        stored = asyncio.run(storage.get_expense_record("legacy-1"))

        assert expenses[0].paid_by_apartments == []
        assert stored["paid_by_apartments"] == []
        assert stored["schema_version"] == 2
        assert migrator.last_report.migrated == ["legacy-1"]

        asyncio.run(
            migrator.migrate_all(asyncio.run(storage.list_expense_records()), registry, categories)
        )
        assert storage.update_calls == 1

    def test_legacy_record_with_unknown_payer(self, registry, categories, policy):
        """Test that an unupgradable record is reported as inconsistent."""
        storage = InMemoryExpenseStorage([{**LEGACY_RECORD, "paid_by_apartment": "Z9"}])
        migrator = ExpenseMigrator(storage, policy)

        with pytest.raises(InconsistentStateError) as exc_info:
            asyncio.run(
                migrator.migrate_all(
                    asyncio.run(storage.list_expense_records()), registry, categories
                )
            )
        assert exc_info.value.expense_id == "legacy-1"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
