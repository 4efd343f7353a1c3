"""
Tests for spending analytics.

Category and monthly totals are plain folds over the history; every
expense counts at its full amount.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal

from apartment_share.errors import InvalidInputError
from apartment_share.ledger.analytics import (
    category_spending,
    monthly_spending,
    spending_summary,
    trailing_months,
)
from apartment_share.models.expense import Expense


def spent(expense_id, amount, category_id, when, payer="G1"):
    return Expense(
        id=expense_id,
        amount=Decimal(amount),
        date=when,
        category_id=category_id,
        paid_by_apartment=payer,
        per_apartment_share=Decimal("0"),
    )


@pytest.fixture
def history():
    return [
        spent("e1", "700", "utilities", datetime(2024, 12, 3)),
        spent("e2", "100.10", "utilities", datetime(2024, 12, 20), payer="F1"),
        spent("e3", "350", "cleaning", datetime(2024, 12, 5)),
        spent("e4", "49.95", "repairs", datetime(2024, 11, 28)),
        spent("e5", "20", "no-such-category", datetime(2024, 12, 1)),
        spent("e6", "1000", "utilities", datetime(2024, 5, 1)),
    ]


class TestCategorySpending:
    """Tests for per-category totals."""

    def test_totals_for_one_month(self, categories, history):
        """Test that only expenses dated in the month are counted."""
        totals = {c.category_id: c.total for c in category_spending(history, categories, "2024-12")}

        assert totals["utilities"] == Decimal("800.10")
        assert totals["cleaning"] == Decimal("350.00")
        assert totals["repairs"] == Decimal("0")

    def test_all_time(self, categories, history):
        """Test that no month means the whole history."""
        totals = {c.category_id: c.total for c in category_spending(history, categories)}

        assert totals["utilities"] == Decimal("1800.10")
        assert totals["repairs"] == Decimal("49.95")

    def test_every_catalog_category_in_order(self, categories, history):
        """Test the catalog order is kept and unknown categories are left out."""
        rows = category_spending(history, categories, "2024-12")

        assert [r.category_id for r in rows] == [c.id for c in categories.categories]
        assert "no-such-category" not in [r.category_id for r in rows]
        assert rows[0].name == categories.categories[0].name

    @pytest.mark.parametrize("month", ["2024-13", "2024-1", "Dec 2024", "all"])
    def test_bad_month(self, categories, history, month):
        """Test that the month must be YYYY-MM."""
        with pytest.raises(InvalidInputError):
            category_spending(history, categories, month)


class TestMonthlySpending:
    """Tests for the trailing monthly totals."""

    def test_trailing_months_cross_year(self):
        """Test the window ends with the current month and wraps the year."""
        assert trailing_months(3, today=date(2025, 2, 14)) == ["2024-12", "2025-01", "2025-02"]

    def test_trailing_months_needs_one(self):
        """Test that an empty window is rejected."""
        with pytest.raises(InvalidInputError):
            trailing_months(0)

    def test_monthly_totals_oldest_first(self, history):
        """Test six months of totals with zero-filled gaps."""
        rows = monthly_spending(history, today=date(2024, 12, 31))

        assert [r.month for r in rows] == [
            "2024-07", "2024-08", "2024-09", "2024-10", "2024-11", "2024-12",
        ]
        assert rows[-1].total == Decimal("1170.10")
        assert rows[-1].label == "Dec 2024"
        assert rows[-2].total == Decimal("49.95")
        assert rows[0].total == Decimal("0")

    def test_older_expenses_fall_outside_window(self, history):
        """Test that May is not in a window ending in December."""
        rows = monthly_spending(history, today=date(2024, 12, 31))
        assert sum(r.total for r in rows) == Decimal("1220.05")


class TestSpendingSummary:
    """Tests for the combined view."""

    def test_summary(self, categories, history):
        """Test both views come from the same history."""
        summary = spending_summary(
            history, categories, month="2024-12", months=2, today=date(2024, 12, 31)
        )

        assert summary.month == "2024-12"
        assert summary.category_total == Decimal("1150.10")
        assert [m.month for m in summary.by_month] == ["2024-11", "2024-12"]

    def test_no_history(self, categories):
        """Test an empty history gives zero totals."""
        summary = spending_summary([], categories, today=date(2024, 12, 31))

        assert summary.category_total == Decimal("0")
        assert all(m.total == Decimal("0") for m in summary.by_month)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
