"""
Tests for ad-hoc payment distribution and payment request fan-out.
"""

import asyncio
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from apartment_share.errors import InvalidInputError, NotificationDispatchError
from apartment_share.ledger.distribution import (
    PaymentRequestDispatcher,
    build_payment_requests,
    distribute_payment,
)
from apartment_share.models.community import NotificationType, RequestStatus
from apartment_share.models.registry import ApartmentRegistry
from apartment_share.services.storage.interface import StorageError
from apartment_share.services.storage.memory import InMemoryNotificationStorage


class FlakyNotificationStorage(InMemoryNotificationStorage):
    """Fails to save requests addressed to the given apartments."""

    def __init__(self, failing: set[str]):
        super().__init__()
        self.failing = failing

    async def save_notification(self, notification):
        if notification.to_apartment_id in self.failing:
            raise StorageError(f"Sheet unavailable for {notification.to_apartment_id}")
        return await super().save_notification(notification)


class TestDistributePayment:
    """Tests for the distribution preview."""

    def test_preview_lists_every_other_apartment(self, registry, policy):
        """Test a 700 payment by G1 previews six shares of 100."""
        distribution = distribute_payment(
            Decimal("700"), "G1", registry, description="Generator diesel", policy=policy
        )

        assert distribution.paying_apartment.id == "G1"
        assert [s.apartment.id for s in distribution.other_apartments] == [
            "F1", "F2", "S1", "S2", "T1", "T2"
        ]
        assert all(s.share == Decimal("100") for s in distribution.other_apartments)
        assert distribution.total_amount == Decimal("600")
        assert distribution.total_with_payer_share == Decimal("700")
        assert distribution.category == "Utilities"

    def test_non_split_category_preview(self, registry, policy):
        """Test that an exempt category previews no obligations."""
        distribution = distribute_payment(
            Decimal("300"), "F1", registry, category="cleaning", policy=policy
        )

        assert distribution.other_apartments == []
        assert distribution.total_amount == Decimal("0")
        assert distribution.total_with_payer_share == Decimal("300")

    def test_single_apartment_has_nobody_to_share_with(self, policy):
        """Test that a lone payer cannot distribute."""
        registry = ApartmentRegistry.from_ids(["G1"])
        with pytest.raises(InvalidInputError, match="No other apartments"):
            distribute_payment(Decimal("50"), "G1", registry, policy=policy)

    def test_invalid_amount(self, registry, policy):
        """Test that a zero amount is refused."""
        with pytest.raises(InvalidInputError):
            distribute_payment(Decimal("0"), "G1", registry, policy=policy)

    def test_format_summary(self, registry, policy):
        """Test the shareable text summary."""
        distribution = distribute_payment(
            Decimal("700"), "G1", registry, description="Generator diesel", policy=policy
        )
        lines = distribution.format_summary().split("\n")

        assert lines[0] == "💰 Generator diesel"
        assert lines[2] == "Paying Apartment: Apartment G1"
        assert lines[3] == "Total Amount: ₹600.00"
        assert lines[4] == "Shared among 6 apartments"
        assert lines[6] == "Apartment F1 owes: ₹100.00"
        assert len(lines) == 12

    def test_format_summary_custom_currency(self, registry, policy):
        """Test overriding the currency symbol."""
        distribution = distribute_payment(Decimal("70"), "G1", registry, policy=policy)
        assert "Total Amount: $60.00" in distribution.format_summary(currency="$")


class TestPaymentRequests:
    """Tests for building and sending payment requests."""

    def test_requests_never_address_payer(self, registry, policy):
        """Test one pending request per owing apartment."""
        distribution = distribute_payment(Decimal("700"), "G1", registry, policy=policy)
        now = datetime(2024, 12, 1, 9, 0)
        requests = build_payment_requests(distribution, requested_by="user-g1", now=now)

        assert [r.to_apartment_id for r in requests] == ["F1", "F2", "S1", "S2", "T1", "T2"]
        first = requests[0]
        assert first.type == NotificationType.PAYMENT_REQUEST
        assert first.status == RequestStatus.PENDING
        assert first.title == "Payment Request from Apartment G1"
        assert first.message == "Shared expense. Your share: ₹100.00"
        assert first.due_date == now + timedelta(days=7)
        assert first.from_apartment_id == "G1"
        assert first.is_read is False

    def test_explicit_due_date_kept(self, registry, policy):
        """Test that a due date on the distribution wins."""
        due = datetime(2025, 1, 15)
        distribution = distribute_payment(
            Decimal("70"), "G1", registry, due_date=due, policy=policy
        )
        requests = build_payment_requests(distribution)
        assert {r.due_date for r in requests} == {due}

    def test_dispatch_saves_all(self, registry, policy):
        """Test a clean fan-out."""
        storage = InMemoryNotificationStorage()
        distribution = distribute_payment(Decimal("700"), "G1", registry, policy=policy)

        sent = asyncio.run(PaymentRequestDispatcher(storage).send(distribution))
        stored = asyncio.run(storage.list_notifications())

        assert len(sent) == 6
        assert len(stored) == 6
        assert asyncio.run(storage.list_notifications("G1")) == []

    def test_dispatch_partial_failure(self, registry, policy):
        """Test that sent requests stand and failures are reported."""
        storage = FlakyNotificationStorage({"F2", "T1"})
        distribution = distribute_payment(Decimal("700"), "G1", registry, policy=policy)

        with pytest.raises(NotificationDispatchError) as exc_info:
            asyncio.run(PaymentRequestDispatcher(storage).send(distribution))

        error = exc_info.value
        assert error.failed == ["F2", "T1"]
        assert [n.to_apartment_id for n in error.sent] == ["F1", "S1", "S2", "T2"]
        assert len(asyncio.run(storage.list_notifications())) == 4


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
