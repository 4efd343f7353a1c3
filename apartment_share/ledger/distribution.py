"""
Ad-hoc Payment Distribution

Previews how a one-off payment splits across the building, without
creating an Expense, and fans the result out as payment requests.

The preview reuses the Splitting Policy, so the non-split exemption and
the cent rounding are the same as for recorded expenses.

Fan-out is NOT atomic. Each request is saved on its own; if some fail,
the ones already sent stand and the caller gets a
NotificationDispatchError listing both sides.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

import structlog
from pydantic import BaseModel, Field

from apartment_share.config import get_settings
from apartment_share.errors import InvalidInputError, NotificationDispatchError
from apartment_share.ledger.splitting import ZERO, SplittingPolicy
from apartment_share.models.community import (
    Notification,
    NotificationPriority,
    NotificationType,
    RequestStatus,
)
from apartment_share.models.registry import Apartment, ApartmentRegistry
from apartment_share.services.storage.interface import (
    NotificationStorageInterface,
    StorageError,
)


logger = structlog.get_logger(__name__)


class ApartmentShare(BaseModel):
    apartment: Apartment
    share: Decimal


class PaymentDistribution(BaseModel):
    """Preview of a one-off payment split. Never persisted."""

    total_amount: Decimal = Field(
        ...,
        description="Amount owed by the other apartments (payer's share excluded)"
    )
    paying_apartment: Apartment
    other_apartments: list[ApartmentShare] = Field(default_factory=list)
    description: str = "Shared expense"
    category: str
    due_date: Optional[datetime] = None
    total_with_payer_share: Decimal = Field(
        ...,
        description="The full amount, payer's share included"
    )

    def format_summary(self, currency: Optional[str] = None) -> str:
        """Plain-text summary suitable for sharing in a chat."""
        symbol = currency or get_settings().ledger.currency_symbol
        lines = [
            f"💰 {self.description or 'Payment Distribution'}",
            "----------------------",
            f"Paying Apartment: {self.paying_apartment.name}",
            f"Total Amount: {symbol}{self.total_amount:.2f}",
            f"Shared among {len(self.other_apartments)} apartments",
            "----------------------",
        ]
        for entry in self.other_apartments:
            lines.append(f"{entry.apartment.name} owes: {symbol}{entry.share:.2f}")
        return "\n".join(lines)


def distribute_payment(
    amount,
    payer_id: str,
    registry: ApartmentRegistry,
    description: str = "Shared expense",
    category: Optional[str] = None,
    due_date: Optional[datetime] = None,
    policy: Optional[SplittingPolicy] = None,
) -> PaymentDistribution:
    """
    Preview the split of a one-off payment.

    Raises:
        InvalidInputError: amount <= 0, unknown payer, or no apartment
                           other than the payer to share with.
    """
    policy = policy or SplittingPolicy()
    category = category or get_settings().ledger.default_distribution_category

    result = policy.split(amount, payer_id, category, registry)
    payer = registry.require(payer_id)
    total = result.payer_share + result.total_owed

    if not policy.is_split_category(category):
        return PaymentDistribution(
            total_amount=ZERO,
            paying_apartment=payer,
            other_apartments=[],
            description=description,
            category=category,
            due_date=due_date,
            total_with_payer_share=total,
        )

    if not result.owed_by_apartments:
        raise InvalidInputError("No other apartments to distribute payment to")

    return PaymentDistribution(
        total_amount=result.total_owed,
        paying_apartment=payer,
        other_apartments=[
            ApartmentShare(
                apartment=registry.require(apartment_id),
                share=result.per_apartment_share,
            )
            for apartment_id in result.owed_by_apartments
        ],
        description=description,
        category=category,
        due_date=due_date,
        total_with_payer_share=total,
    )


def build_payment_requests(
    distribution: PaymentDistribution,
    requested_by: Optional[str] = None,
    now: Optional[datetime] = None,
    due_days: Optional[int] = None,
    currency: Optional[str] = None,
) -> list[Notification]:
    """One pending payment request per owing apartment, never the payer."""
    settings = get_settings().ledger
    now = now or datetime.utcnow()
    symbol = currency or settings.currency_symbol
    if distribution.due_date is not None:
        due_date = distribution.due_date
    else:
        due_date = now + timedelta(days=due_days or settings.payment_request_due_days)

    payer = distribution.paying_apartment
    return [
        Notification(
            type=NotificationType.PAYMENT_REQUEST,
            title=f"Payment Request from {payer.name}",
            message=(
                f"{distribution.description or 'Shared expense'}. "
                f"Your share: {symbol}{entry.share:.2f}"
            ),
            amount=entry.share,
            currency=symbol,
            from_apartment_id=payer.id,
            to_apartment_id=entry.apartment.id,
            is_read=False,
            priority=NotificationPriority.MEDIUM,
            created_at=now,
            due_date=due_date,
            status=RequestStatus.PENDING,
            category=distribution.category,
            requested_by=requested_by,
        )
        for entry in distribution.other_apartments
        if entry.apartment.id != payer.id
    ]


class PaymentRequestDispatcher:
    """
    Saves one payment request per owing apartment.

    Usage:
        dispatcher = PaymentRequestDispatcher(notification_storage)
        sent = await dispatcher.send(distribution, requested_by=user_id)
    """

    def __init__(
        self,
        storage: NotificationStorageInterface,
        due_days: Optional[int] = None,
    ):
        self._storage = storage
        self._due_days = due_days

    async def send(
        self,
        distribution: PaymentDistribution,
        requested_by: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> list[Notification]:
        """
        Save every request, then report.

        Returns:
            The saved notifications

        Raises:
            NotificationDispatchError: if any save failed. Requests already
                                       saved are not rolled back.
        """
        requests = build_payment_requests(
            distribution,
            requested_by=requested_by,
            now=now,
            due_days=self._due_days,
        )

        sent: list[Notification] = []
        failed: list[str] = []
        for request in requests:
            try:
                await self._storage.save_notification(request)
                sent.append(request)
            except StorageError as e:
                logger.warning(
                    "payment_request_failed",
                    to_apartment_id=request.to_apartment_id,
                    error=str(e),
                )
                failed.append(request.to_apartment_id)

        if failed:
            raise NotificationDispatchError(
                f"Sent {len(sent)} of {len(requests)} payment requests; "
                f"failed for {', '.join(failed)}",
                sent=sent,
                failed=failed,
            )

        return sent
