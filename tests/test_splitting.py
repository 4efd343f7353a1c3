"""
Tests for the splitting policy.

Every split must reconstruct the submitted amount exactly:
share * len(owed) + payer_share == amount.
"""

import pytest
from decimal import Decimal

from apartment_share.errors import InvalidInputError
from apartment_share.ledger.splitting import SplittingPolicy, to_cents
from apartment_share.models.registry import ApartmentRegistry


class TestSplit:
    """Tests for SplittingPolicy.split."""

    def test_equal_split_across_building(self, registry, policy):
        """Test 700 paid by G1 gives six obligations of 100."""
        result = policy.split(Decimal("700"), "G1", "Utilities", registry)

        assert result.owed_by_apartments == ["F1", "F2", "S1", "S2", "T1", "T2"]
        assert result.per_apartment_share == Decimal("100")
        assert result.payer_share == Decimal("100")
        assert result.total_owed == Decimal("600")

    def test_obligations_follow_registry_order(self, registry, policy):
        """Test that owing apartments are listed in registry order."""
        result = policy.split(Decimal("70"), "S1", "Repairs", registry)
        assert result.owed_by_apartments == ["G1", "F1", "F2", "S2", "T1", "T2"]

    def test_rounding_residue_lands_on_payer(self, registry, policy):
        """Test 100 over seven apartments rounds the share half-up."""
        result = policy.split(Decimal("100"), "G1", "Utilities", registry)

        assert result.per_apartment_share == Decimal("14.29")
        assert result.payer_share == Decimal("14.26")

    @pytest.mark.parametrize("amount", ["0.01", "1", "99.99", "100", "1234.56", "7", "10.05"])
    def test_split_conserves_amount(self, registry, policy, amount):
        """Test owed shares plus the payer share equal the amount."""
        amount = Decimal(amount)
        result = policy.split(amount, "T2", "Maintenance", registry)

        assert result.total_owed + result.payer_share == amount
        assert result.per_apartment_share == to_cents(result.per_apartment_share)

    def test_non_split_category(self, registry, policy):
        """Test that cleaning is borne by the payer alone."""
        result = policy.split(Decimal("500"), "F1", "Cleaning", registry)

        assert result.owed_by_apartments == []
        assert result.per_apartment_share == Decimal("0")
        assert result.payer_share == Decimal("500")

    def test_single_apartment_registry(self, policy):
        """Test that a lone apartment owes nobody."""
        registry = ApartmentRegistry.from_ids(["G1"])
        result = policy.split(Decimal("42"), "G1", "Utilities", registry)

        assert result.owed_by_apartments == []
        assert result.payer_share == Decimal("42")

    def test_empty_registry(self, policy):
        """Test that splitting against no apartments is invalid."""
        with pytest.raises(InvalidInputError, match="empty registry"):
            policy.split(Decimal("10"), "G1", "Utilities", ApartmentRegistry())

    def test_unknown_payer(self, registry, policy):
        """Test that the payer must be a registered apartment."""
        with pytest.raises(InvalidInputError, match="Unknown apartment"):
            policy.split(Decimal("10"), "Z9", "Utilities", registry)

    @pytest.mark.parametrize("amount", ["0", "-5", "NaN"])
    def test_invalid_amounts(self, registry, policy, amount):
        """Test that non-positive or non-finite amounts are refused."""
        with pytest.raises(InvalidInputError):
            policy.split(Decimal(amount), "G1", "Utilities", registry)

    def test_accepts_plain_numbers(self, registry, policy):
        """Test that ints and strings are coerced to Decimal."""
        assert policy.split(700, "G1", "Utilities", registry).per_apartment_share == Decimal("100")
        assert policy.split("700", "G1", "Utilities", registry).per_apartment_share == Decimal("100")


class TestCategoryExemption:
    """Tests for the non-split category list."""

    @pytest.mark.parametrize("name", ["cleaning", "Cleaning", "CLEANING", "  cleaning "])
    def test_exemption_is_case_insensitive(self, policy, name):
        """Test that any casing of an exempt name is exempt."""
        assert policy.is_split_category(name) is False

    def test_unknown_category_splits(self, policy):
        """Test that a missing category name splits."""
        assert policy.is_split_category(None) is True
        assert policy.is_split_category("Security") is True

    def test_custom_exemption_list(self, registry):
        """Test a policy configured with its own exemptions."""
        policy = SplittingPolicy(["Gardening", " "])
        assert policy.non_split_categories == frozenset({"gardening"})
        assert policy.split(Decimal("70"), "G1", "Cleaning", registry).owed_by_apartments

    def test_split_by_category_id(self, registry, categories, policy):
        """Test looking up the category name from the catalog."""
        exempt = policy.split_for_category_id(Decimal("70"), "G1", "cleaning", registry, categories)
        unknown = policy.split_for_category_id(Decimal("70"), "G1", "missing", registry, categories)

        assert exempt.owed_by_apartments == []
        assert len(unknown.owed_by_apartments) == 6

    def test_default_policy_reads_settings(self):
        """Test that the default exemption list comes from configuration."""
        assert "cleaning" in SplittingPolicy().non_split_categories


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
