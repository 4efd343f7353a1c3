"""
Tests for Apartment Share models

Test strategy:
1. Unit tests for individual components (models, ledger, validator)
2. Integration tests for flows (against in-memory storage)
3. No real API calls in tests
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from apartment_share.errors import InvalidInputError
from apartment_share.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from apartment_share.models.expense import ApartmentBalance, Expense, LegacyExpense
from apartment_share.models.registry import (
    Actor,
    Apartment,
    ApartmentRegistry,
    CategoryCatalog,
    UserRole,
)
from apartment_share.models.settlement import Payment, PaymentStatus
from apartment_share.models.validation import ValidationIssue, ValidationResult


class TestRegistryModels:
    """Tests for apartments, the registry and categories."""

    def test_apartment_strips_whitespace(self):
        """Test that whitespace is stripped from apartment ids."""
        apartment = Apartment(id="  G1 ", name="Ground floor")
        assert apartment.id == "G1"

    def test_registry_from_ids_keeps_order(self):
        """Test seeding keeps the given order and default names."""
        registry = ApartmentRegistry.from_ids(["G1", "F1", "F2"])
        assert registry.ids == ["G1", "F1", "F2"]
        assert registry.size == 3
        assert registry.get("F1").name == "Apartment F1"

    def test_registry_rejects_duplicate_ids(self):
        """Test that an apartment id can only appear once."""
        with pytest.raises(ValueError, match="Duplicate apartment id"):
            ApartmentRegistry.from_ids(["G1", "G1"])

    def test_registry_require_unknown(self):
        """Test that looking up an unknown apartment raises."""
        registry = ApartmentRegistry.from_ids(["G1"])
        with pytest.raises(InvalidInputError):
            registry.require("Z9")

    def test_default_categories(self):
        """Test that the seeded categories are present with slug ids."""
        catalog = CategoryCatalog.default()
        assert catalog.name_for("cleaning") == "Cleaning"
        assert catalog.name_for("water-tank") == "Water Tank"
        assert catalog.name_for("nope") is None
        assert len(catalog.categories) == 10

    def test_actor_is_admin(self):
        """Test the admin role check."""
        assert Actor(user_id="u1", apartment_id="G1", role=UserRole.ADMIN).is_admin
        assert not Actor(user_id="u2", apartment_id="G1").is_admin


class TestExpenseModels:
    """Tests for expense-related Pydantic models."""

    def test_expense_rejects_non_positive_amount(self):
        """Test that zero amounts are rejected."""
        with pytest.raises(ValueError):
            Expense(
                amount=Decimal("0"),
                category_id="utilities",
                paid_by_apartment="G1",
                per_apartment_share=Decimal("0"),
            )

    def test_expense_rejects_sub_cent_amount(self):
        """Test that money has at most two decimal places."""
        with pytest.raises(ValueError):
            Expense(
                amount=Decimal("10.005"),
                category_id="utilities",
                paid_by_apartment="G1",
                per_apartment_share=Decimal("0"),
            )

    def test_unpaid_apartments_keeps_obligation_order(self):
        """Test unpaid apartments are the obligations minus the settled set."""
        expense = Expense(
            amount=Decimal("300"),
            category_id="utilities",
            paid_by_apartment="G1",
            owed_by_apartments=["F1", "F2", "S1"],
            per_apartment_share=Decimal("75"),
            paid_by_apartments=["F2"],
        )
        assert expense.unpaid_apartments == ["F1", "S1"]
        assert expense.is_split is True
        assert expense.schema_version == 2

    def test_legacy_expense_has_no_split_fields(self):
        """Test the legacy shape carries schema version 1 only."""
        legacy = LegacyExpense(
            amount=Decimal("50"),
            category_id="repairs",
            paid_by_apartment="S2",
        )
        assert legacy.schema_version == 1
        assert not hasattr(legacy, "owed_by_apartments")

    def test_apartment_balance_settled_tolerance(self):
        """Test that near-zero balances count as settled."""
        balance = ApartmentBalance(apartment_id="G1", name="G1", balance=Decimal("0.01"))
        assert balance.is_settled() is True
        balance = ApartmentBalance(apartment_id="G1", name="G1", balance=Decimal("-0.02"))
        assert balance.is_settled() is False


class TestSettlementModels:
    """Tests for direct payments."""

    def test_payment_defaults_to_pending(self):
        """Test that a new payment does not count until approved."""
        payment = Payment(
            payer_id="F1",
            payee_id="G1",
            amount=Decimal("100"),
            month_year="2024-12",
        )
        assert payment.status == PaymentStatus.PENDING
        assert payment.counts_as_settled is False

    def test_payment_rejects_self_payment(self):
        """Test payer and payee must differ."""
        with pytest.raises(ValueError, match="cannot pay itself"):
            Payment(payer_id="G1", payee_id="G1", amount=Decimal("1"), month_year="2024-12")

    def test_payment_month_format(self):
        """Test month_year must be YYYY-MM."""
        with pytest.raises(ValueError):
            Payment(payer_id="F1", payee_id="G1", amount=Decimal("1"), month_year="2024-13")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPENSE_CREATED,
            description="Test expense created",
        )
        assert event.event_type == AuditEventType.EXPENSE_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.PAYMENT_MARKED,
            description="F1 marked as paid",
            details={"target_apartment": "F1"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "payment_marked"
        assert log_dict["details"]["target_apartment"] == "F1"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.VOTE_CAST,
            description="F1 voted opt1",
            apartment_id="F1",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "vote_cast"  # event_type
        assert row[7] == "F1"  # apartment_id
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_payment_toggled(self):
        """Test AuditEventBuilder.payment_toggled picks the event type."""
        correlation_id = uuid4()

        marked = AuditEventBuilder.payment_toggled(
            expense_id="exp-1",
            target_apartment="F1",
            acting_apartment="G1",
            paid=True,
            correlation_id=correlation_id,
        )
        unmarked = AuditEventBuilder.payment_toggled(
            expense_id="exp-1",
            target_apartment="F1",
            acting_apartment="G1",
            paid=False,
            correlation_id=correlation_id,
        )

        assert marked.event_type == AuditEventType.PAYMENT_MARKED
        assert unmarked.event_type == AuditEventType.PAYMENT_UNMARKED
        assert marked.entity_id == "exp-1"
        assert marked.correlation_id == correlation_id
        assert marked.is_user_action is True

    def test_audit_event_builder_partial_dispatch_is_warning(self):
        """Test that a partial fan-out is recorded as a failure."""
        event = AuditEventBuilder.payment_requests_sent(
            paying_apartment="G1",
            notification_ids=["n1"],
            failed_apartments=["F2"],
            correlation_id=uuid4(),
        )
        assert event.event_type == AuditEventType.PAYMENT_REQUEST_FAILED
        assert event.severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            schema_valid=False,
            semantic_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="invalid_value",
                    message="Amount must be greater than zero",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.is_valid is False
        assert result.error_messages == ["Amount must be greater than zero"]

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.is_valid is True


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
