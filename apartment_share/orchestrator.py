"""
Main Orchestrator for Apartment Share

This module ties together all the components and defines the
end-to-end flows for:
1. Expenses (submit → validate → split → save; toggle paid; balances;
   spending analytics)
2. Payment distribution (preview → dispatch payment requests)
3. Community (announcements, read state, polls)
4. Direct settlements (record → approve/reject; monthly balance sheets)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written before validation and the capability check pass
- Only the changed fields are persisted (paid_by_apartments, is_read, ballots)
- Balances are recomputed from the full history on every call
- Every step is audited

The ledger core is synchronous and does no I/O; every await in this
module is a storage call.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import NamedTuple, Optional
from uuid import UUID

import structlog

from apartment_share.audit import AuditLogger, create_correlation_id
from apartment_share.config import get_settings
from apartment_share.errors import (
    InconsistentStateError,
    InvalidInputError,
    NotificationDispatchError,
    PermissionDeniedError,
)
from apartment_share.ledger.analytics import DEFAULT_TRAILING_MONTHS, SpendingSummary, spending_summary
from apartment_share.ledger.balances import aggregate_balances, total_outstanding
from apartment_share.ledger.distribution import (
    PaymentDistribution,
    PaymentRequestDispatcher,
    distribute_payment,
)
from apartment_share.ledger.migration import ExpenseMigrator
from apartment_share.ledger.permissions import (
    can_delete_expense,
    require_admin,
    require_toggle_permission,
)
from apartment_share.ledger.settlement import (
    approve_payment,
    build_balance_sheets,
    decision_update,
    month_key,
    record_payment,
    reject_payment,
)
from apartment_share.ledger.splitting import SplittingPolicy
from apartment_share.ledger.tracker import paid_update, set_paid
from apartment_share.models.community import (
    Notification,
    NotificationPriority,
    Poll,
    create_announcement,
    create_poll,
    unread_for,
)
from apartment_share.models.expense import ApartmentBalance, Expense, ExpenseSubmission
from apartment_share.models.registry import (
    Actor,
    ApartmentRegistry,
    CategoryCatalog,
)
from apartment_share.models.settlement import BalanceSheet, Payment, PaymentStatus
from apartment_share.services.storage import (
    ExpenseStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsExpenseStorage,
    GoogleSheetsNotificationStorage,
    GoogleSheetsPaymentStorage,
    GoogleSheetsPollStorage,
    GoogleSheetsRegistryStorage,
    InMemoryExpenseStorage,
    InMemoryNotificationStorage,
    InMemoryPaymentStorage,
    InMemoryPollStorage,
    InMemoryRegistryStorage,
    NotFoundError,
    NotificationStorageInterface,
    PaymentStorageInterface,
    PollStorageInterface,
    RegistryStorageInterface,
    StorageError,
)
from apartment_share.validation import ExpenseSubmissionValidator


logger = structlog.get_logger(__name__)


async def load_registry(
    registry_storage: RegistryStorageInterface,
) -> tuple[ApartmentRegistry, CategoryCatalog]:
    """Fetch the current apartments and categories."""
    apartments = await registry_storage.list_apartments()
    categories = await registry_storage.list_categories()
    return ApartmentRegistry(apartments=apartments), CategoryCatalog(categories=categories)


async def seed_registry(
    registry_storage: RegistryStorageInterface,
    apartment_ids: Optional[list[str]] = None,
) -> tuple[ApartmentRegistry, CategoryCatalog]:
    """
    Seed apartments and categories if the store is empty.

    Existing records are left alone, so this is safe to run at every start.
    """
    registry, catalog = await load_registry(registry_storage)

    if registry.size == 0:
        ids = apartment_ids or get_settings().ledger.apartment_id_list
        for apartment in ApartmentRegistry.from_ids(ids).apartments:
            await registry_storage.save_apartment(apartment)

    if not catalog.categories:
        for category in CategoryCatalog.default().categories:
            await registry_storage.save_category(category)

    return await load_registry(registry_storage)


async def persist_write(
    audit_logger: Optional[AuditLogger],
    write,
    entity_type: str,
    entity_id: str,
    correlation_id: UUID,
):
    """Await a storage write; audit and re-raise if it fails."""
    try:
        return await write
    except StorageError as e:
        if audit_logger:
            await audit_logger.log_save_failed(
                entity_type=entity_type,
                entity_id=entity_id,
                error_message=str(e),
                correlation_id=correlation_id,
            )
        raise
    except Exception as e:
        if audit_logger:
            await audit_logger.log_error(
                error_type=type(e).__name__,
                error_message=str(e),
                details={"entity_type": entity_type, "entity_id": entity_id},
                correlation_id=correlation_id,
            )
        raise


class ExpenseFlow:
    """
    Orchestrates expenses.

    Flow:
    1. Submit → Two-stage validation (errors block)
    2. Split → Splitting policy computes obligations
    3. Save → Full record persisted
    4. Toggle → Capability check, then only paid_by_apartments is written
    5. Balances → Full history refetched, legacy records upgraded,
                  everything recomputed from scratch
    6. Analytics → Same refetch, folded into spending per category
                   and per month
    """

    def __init__(
        self,
        expense_storage: ExpenseStorageInterface,
        registry_storage: RegistryStorageInterface,
        validator: Optional[ExpenseSubmissionValidator] = None,
        policy: Optional[SplittingPolicy] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._expense_storage = expense_storage
        self._registry_storage = registry_storage
        self._policy = policy or SplittingPolicy()
        self._validator = validator or ExpenseSubmissionValidator(self._policy)
        self._migrator = ExpenseMigrator(expense_storage, self._policy)
        self._audit_logger = audit_logger

    async def create_expense(
        self,
        submission: ExpenseSubmission,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Validate, split and save a submitted expense.

        Raises:
            InvalidInputError: If validation found errors
            StorageError: If the save failed
        """
        correlation_id = correlation_id or create_correlation_id()
        registry, categories = await load_registry(self._registry_storage)

        result = self._validator.validate(submission, registry, categories)
        if result.has_errors:
            if self._audit_logger:
                await self._audit_logger.log_expense_rejected(
                    paid_by=submission.paid_by_apartment,
                    issues=result.error_messages,
                    correlation_id=correlation_id,
                )
            raise InvalidInputError(self._validator.get_user_friendly_summary(result))

        split = self._policy.split_for_category_id(
            submission.amount,
            submission.paid_by_apartment,
            submission.category_id,
            registry,
            categories,
        )
        expense = Expense(
            description=submission.description,
            amount=submission.amount,
            date=submission.date or datetime.utcnow(),
            category_id=submission.category_id,
            paid_by_apartment=submission.paid_by_apartment,
            owed_by_apartments=split.owed_by_apartments,
            per_apartment_share=split.per_apartment_share,
            paid_by_apartments=[],
            receipt=submission.receipt,
        )

        await self._persist(
            self._expense_storage.save_expense(expense),
            "expense",
            expense.id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_expense_created(
                expense_id=expense.id,
                paid_by=expense.paid_by_apartment,
                amount=str(expense.amount),
                owed_by=expense.owed_by_apartments,
                per_apartment_share=str(expense.per_apartment_share),
                correlation_id=correlation_id,
            )

        return expense

    async def load_expenses(
        self,
        registry: Optional[ApartmentRegistry] = None,
        categories: Optional[CategoryCatalog] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Expense]:
        """Fetch the full history as current Expenses, backfilling legacy records."""
        if registry is None or categories is None:
            registry, categories = await load_registry(self._registry_storage)

        records = await self._expense_storage.list_expense_records()
        expenses = await self._migrator.migrate_all(
            records, registry, categories, correlation_id=correlation_id
        )

        if self._audit_logger:
            by_id = {expense.id: expense for expense in expenses}
            for expense_id in self._migrator.last_report.migrated:
                await self._audit_logger.log_expense_migrated(
                    expense_id=expense_id,
                    owed_by=by_id[expense_id].owed_by_apartments,
                    per_apartment_share=str(by_id[expense_id].per_apartment_share),
                    correlation_id=correlation_id,
                )
            for expense_id, error in self._migrator.last_report.failed.items():
                await self._audit_logger.log_migration_failed(
                    expense_id=expense_id,
                    error_message=error,
                    correlation_id=correlation_id,
                )

        return expenses

    async def get_expense(
        self,
        expense_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Fetch one expense, upgrading it if it is a legacy record.

        Raises:
            NotFoundError: If no such expense exists
        """
        raw = await self._expense_storage.get_expense_record(expense_id)
        if raw is None:
            raise NotFoundError(f"Expense not found: {expense_id}")
        registry, categories = await load_registry(self._registry_storage)
        expenses = await self._migrator.migrate_all(
            [raw], registry, categories, correlation_id=correlation_id
        )
        return expenses[0]

    async def toggle_payment(
        self,
        expense_id: str,
        target_apartment_id: str,
        paid: bool,
        actor: Actor,
        correlation_id: Optional[UUID] = None,
    ) -> Expense:
        """
        Mark one owing apartment as paid or unpaid.

        The payer apartment (and admins) may toggle anyone; everyone
        else only their own apartment.

        Raises:
            PermissionDeniedError: If the actor may not toggle the target
            InvalidInputError: If the target does not owe on this expense
        """
        correlation_id = correlation_id or create_correlation_id()
        expense = await self.get_expense(expense_id, correlation_id)

        try:
            require_toggle_permission(actor, expense, target_apartment_id)
        except PermissionDeniedError as e:
            await self._denied("toggle_payment", actor, e, correlation_id)
            raise

        updated = set_paid(expense, target_apartment_id, paid)
        if updated.paid_by_apartments != expense.paid_by_apartments:
            await self._persist(
                self._expense_storage.update_expense_fields(expense.id, paid_update(updated)),
                "expense",
                expense.id,
                correlation_id,
            )

        if self._audit_logger:
            await self._audit_logger.log_payment_toggled(
                expense_id=expense.id,
                target_apartment=target_apartment_id,
                acting_apartment=actor.apartment_id,
                paid=paid,
                correlation_id=correlation_id,
            )

        return updated

    async def delete_expense(
        self,
        expense_id: str,
        actor: Actor,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete an expense. Only its payer apartment or an admin may."""
        correlation_id = correlation_id or create_correlation_id()
        expense = await self.get_expense(expense_id, correlation_id)

        if not can_delete_expense(actor, expense):
            error = PermissionDeniedError(
                f"Apartment {actor.apartment_id} may not delete expense {expense_id}"
            )
            await self._denied("delete_expense", actor, error, correlation_id)
            raise error

        deleted = await self._persist(
            self._expense_storage.delete_expense(expense_id),
            "expense",
            expense_id,
            correlation_id,
        )
        if self._audit_logger:
            await self._audit_logger.log_expense_deleted(
                expense_id=expense_id,
                apartment_id=actor.apartment_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def get_balances(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> dict[str, ApartmentBalance]:
        """
        Recompute every apartment's balance from the full history.

        Raises:
            InconsistentStateError: If a stored expense violates an invariant
        """
        correlation_id = correlation_id or create_correlation_id()
        registry, categories = await load_registry(self._registry_storage)

        try:
            expenses = await self.load_expenses(registry, categories, correlation_id)
            return aggregate_balances(expenses, registry)
        except InconsistentStateError as e:
            if self._audit_logger:
                await self._audit_logger.log_inconsistent_state(
                    expense_id=e.expense_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def get_outstanding(
        self,
        apartment_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> Decimal:
        """Total still owed to apartment_id on expenses it paid."""
        expenses = await self.load_expenses(correlation_id=correlation_id)
        return total_outstanding(expenses, apartment_id)

    async def get_spending_summary(
        self,
        month: Optional[str] = None,
        months: int = DEFAULT_TRAILING_MONTHS,
        correlation_id: Optional[UUID] = None,
    ) -> SpendingSummary:
        """
        Spending per category (for one YYYY-MM month, or all time when
        month is None) and per month over the trailing window.

        Raises:
            InvalidInputError: If month is not YYYY-MM
        """
        registry, categories = await load_registry(self._registry_storage)
        expenses = await self.load_expenses(registry, categories, correlation_id)
        return spending_summary(expenses, categories, month=month, months=months)

    async def _persist(self, write, entity_type: str, entity_id: str, correlation_id: UUID):
        return await persist_write(
            self._audit_logger, write, entity_type, entity_id, correlation_id
        )

    async def _denied(
        self,
        action: str,
        actor: Actor,
        error: PermissionDeniedError,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_permission_denied(
                action=action,
                apartment_id=actor.apartment_id,
                error_message=str(error),
                correlation_id=correlation_id,
            )


class DistributionFlow:
    """
    Orchestrates ad-hoc payment distribution.

    Flow:
    1. Preview → Split computed against the current registry (nothing saved)
    2. Dispatch → One payment request per owing apartment

    A partial dispatch is reported, not rolled back.
    """

    def __init__(
        self,
        notification_storage: NotificationStorageInterface,
        registry_storage: RegistryStorageInterface,
        policy: Optional[SplittingPolicy] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._registry_storage = registry_storage
        self._policy = policy or SplittingPolicy()
        self._dispatcher = PaymentRequestDispatcher(notification_storage)
        self._audit_logger = audit_logger

    async def preview(
        self,
        amount,
        payer_id: str,
        description: str = "Shared expense",
        category: Optional[str] = None,
        due_date: Optional[datetime] = None,
    ) -> PaymentDistribution:
        registry, _ = await load_registry(self._registry_storage)
        return distribute_payment(
            amount,
            payer_id,
            registry,
            description=description,
            category=category,
            due_date=due_date,
            policy=self._policy,
        )

    async def dispatch(
        self,
        distribution: PaymentDistribution,
        actor: Actor,
        correlation_id: Optional[UUID] = None,
    ) -> list[Notification]:
        """
        Send the payment requests.

        Raises:
            NotificationDispatchError: If only some requests were saved
        """
        correlation_id = correlation_id or create_correlation_id()
        payer_id = distribution.paying_apartment.id

        try:
            sent = await self._dispatcher.send(distribution, requested_by=actor.user_id)
        except NotificationDispatchError as e:
            if self._audit_logger:
                await self._audit_logger.log_payment_requests(
                    paying_apartment=payer_id,
                    notification_ids=[n.id for n in e.sent],
                    failed_apartments=e.failed,
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            await self._audit_logger.log_payment_requests(
                paying_apartment=payer_id,
                notification_ids=[n.id for n in sent],
                failed_apartments=[],
                correlation_id=correlation_id,
            )
        return sent


class CommunityFlow:
    """
    Orchestrates announcements and polls.

    Both are broadcast records: one row per announcement or poll, with a
    per-apartment read flag or ballot inside it. Acting for one
    apartment only ever rewrites that apartment's entry.
    """

    def __init__(
        self,
        notification_storage: NotificationStorageInterface,
        poll_storage: PollStorageInterface,
        registry_storage: RegistryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._notification_storage = notification_storage
        self._poll_storage = poll_storage
        self._registry_storage = registry_storage
        self._audit_logger = audit_logger

    async def _require_admin(self, actor: Actor, action: str, correlation_id: UUID) -> None:
        try:
            require_admin(actor, action)
        except PermissionDeniedError as e:
            if self._audit_logger:
                await self._audit_logger.log_permission_denied(
                    action=action,
                    apartment_id=actor.apartment_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def create_announcement(
        self,
        title: str,
        message: str,
        actor: Actor,
        priority: NotificationPriority = NotificationPriority.MEDIUM,
        expires_at: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Notification:
        """Broadcast to every apartment. Expires after the configured days."""
        correlation_id = correlation_id or create_correlation_id()
        await self._require_admin(actor, "send announcements", correlation_id)

        registry, _ = await load_registry(self._registry_storage)
        if expires_at is None:
            days = get_settings().app.announcement_expiry_days
            expires_at = datetime.utcnow() + timedelta(days=days)

        announcement = create_announcement(
            title=title,
            message=message,
            apartment_ids=registry.ids,
            created_by=actor.user_id,
            priority=priority,
            expires_at=expires_at,
        )
        await persist_write(
            self._audit_logger,
            self._notification_storage.save_notification(announcement),
            "notification",
            announcement.id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_announcement_created(
                notification_id=announcement.id,
                created_by=actor.user_id,
                apartment_count=len(registry.ids),
                correlation_id=correlation_id,
            )
        return announcement

    async def list_unread(
        self,
        apartment_id: str,
        now: Optional[datetime] = None,
    ) -> list[Notification]:
        notifications = await self._notification_storage.list_notifications(apartment_id)
        return unread_for(notifications, apartment_id, now)

    async def mark_read(
        self,
        notification_id: str,
        actor: Actor,
        correlation_id: Optional[UUID] = None,
    ) -> Notification:
        """Mark read for the actor's apartment only."""
        correlation_id = correlation_id or create_correlation_id()
        notification = await self._notification_storage.get_notification(notification_id)
        if notification is None:
            raise NotFoundError(f"Notification not found: {notification_id}")

        updated = notification.mark_read(actor.apartment_id)
        await persist_write(
            self._audit_logger,
            self._notification_storage.update_notification_fields(
                notification_id, {"is_read": updated.is_read}
            ),
            "notification",
            notification_id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_notification_read(
                notification_id=notification_id,
                apartment_id=actor.apartment_id,
                correlation_id=correlation_id,
            )
        return updated

    async def mark_all_read(
        self,
        actor: Actor,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """Mark every unread notification read for the actor's apartment."""
        correlation_id = correlation_id or create_correlation_id()
        notifications = await self._notification_storage.list_notifications(actor.apartment_id)

        count = 0
        for notification in notifications:
            if notification.is_read_for(actor.apartment_id):
                continue
            await self.mark_read(notification.id, actor, correlation_id)
            count += 1
        return count

    async def create_poll(
        self,
        question: str,
        options: list[str],
        actor: Actor,
        expires_at: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Poll:
        """Create a poll open to every apartment."""
        correlation_id = correlation_id or create_correlation_id()
        await self._require_admin(actor, "create polls", correlation_id)

        registry, _ = await load_registry(self._registry_storage)
        poll = create_poll(
            question=question,
            option_texts=options,
            apartment_ids=registry.ids,
            created_by=actor.user_id,
            expires_at=expires_at,
        )
        await persist_write(
            self._audit_logger,
            self._poll_storage.save_poll(poll),
            "poll",
            poll.id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_poll_created(
                poll_id=poll.id,
                created_by=actor.user_id,
                option_count=len(poll.options),
                correlation_id=correlation_id,
            )
        return poll

    async def _get_poll(self, poll_id: str) -> Poll:
        poll = await self._poll_storage.get_poll(poll_id)
        if poll is None:
            raise NotFoundError(f"Poll not found: {poll_id}")
        return poll

    async def vote(
        self,
        poll_id: str,
        option_id: str,
        actor: Actor,
        now: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Poll:
        """Cast or replace the actor apartment's vote."""
        correlation_id = correlation_id or create_correlation_id()
        poll = await self._get_poll(poll_id)

        previous = poll.votes.get(actor.apartment_id)
        updated = poll.cast_vote(actor.apartment_id, option_id, now)
        await persist_write(
            self._audit_logger,
            self._poll_storage.update_poll_fields(poll_id, {"ballots": updated.ballots}),
            "poll",
            poll_id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_vote_cast(
                poll_id=poll_id,
                apartment_id=actor.apartment_id,
                option_id=option_id,
                replaced=previous,
                correlation_id=correlation_id,
            )
        return updated

    async def close_poll(
        self,
        poll_id: str,
        actor: Actor,
        correlation_id: Optional[UUID] = None,
    ) -> Poll:
        correlation_id = correlation_id or create_correlation_id()
        await self._require_admin(actor, "close polls", correlation_id)

        poll = await self._get_poll(poll_id)
        closed = poll.close()
        await persist_write(
            self._audit_logger,
            self._poll_storage.update_poll_fields(poll_id, {"is_active": False}),
            "poll",
            poll_id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_poll_closed(
                poll_id=poll_id,
                closed_by=actor.user_id,
                correlation_id=correlation_id,
            )
        return closed

    async def poll_results(self, poll_id: str) -> dict[str, int]:
        poll = await self._get_poll(poll_id)
        return poll.results()


class SettlementFlow:
    """
    Orchestrates direct payments between apartments.

    Flow:
    1. Record → Pending payment saved
    2. Approve/Reject → Admin only; only pending payments move
    3. Balance sheets → Derived per month, never stored
    """

    def __init__(
        self,
        payment_storage: PaymentStorageInterface,
        expense_flow: ExpenseFlow,
        registry_storage: RegistryStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._payment_storage = payment_storage
        self._expense_flow = expense_flow
        self._registry_storage = registry_storage
        self._audit_logger = audit_logger

    async def record_payment(
        self,
        payer_id: str,
        payee_id: str,
        amount,
        month_year: Optional[str] = None,
        expense_id: Optional[str] = None,
        receipt_ref: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Payment:
        correlation_id = correlation_id or create_correlation_id()
        registry, _ = await load_registry(self._registry_storage)

        payment = record_payment(
            payer_id,
            payee_id,
            amount,
            month_year or month_key(datetime.utcnow()),
            registry,
            expense_id=expense_id,
            receipt_ref=receipt_ref,
        )
        await persist_write(
            self._audit_logger,
            self._payment_storage.save_payment(payment),
            "payment",
            payment.id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_payment_recorded(
                payment_id=payment.id,
                payer_id=payer_id,
                payee_id=payee_id,
                amount=str(payment.amount),
                correlation_id=correlation_id,
            )
        return payment

    async def _decide(
        self,
        payment_id: str,
        actor: Actor,
        approved: bool,
        correlation_id: Optional[UUID],
    ) -> Payment:
        correlation_id = correlation_id or create_correlation_id()
        payment = await self._payment_storage.get_payment(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment not found: {payment_id}")

        try:
            decided = approve_payment(payment, actor) if approved else reject_payment(payment, actor)
        except PermissionDeniedError as e:
            if self._audit_logger:
                await self._audit_logger.log_permission_denied(
                    action="approve_payment" if approved else "reject_payment",
                    apartment_id=actor.apartment_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        await persist_write(
            self._audit_logger,
            self._payment_storage.update_payment_fields(payment_id, decision_update(decided)),
            "payment",
            payment_id,
            correlation_id,
        )

        if self._audit_logger:
            await self._audit_logger.log_payment_decided(
                payment_id=payment_id,
                approved=approved,
                decided_by=actor.user_id,
                correlation_id=correlation_id,
            )
        return decided

    async def approve(
        self,
        payment_id: str,
        actor: Actor,
        correlation_id: Optional[UUID] = None,
    ) -> Payment:
        return await self._decide(payment_id, actor, True, correlation_id)

    async def reject(
        self,
        payment_id: str,
        actor: Actor,
        correlation_id: Optional[UUID] = None,
    ) -> Payment:
        return await self._decide(payment_id, actor, False, correlation_id)

    async def pending_payments(self) -> list[Payment]:
        return await self._payment_storage.list_payments(status=PaymentStatus.PENDING)

    async def balance_sheets(
        self,
        month_year: str,
        opening_balances: Optional[dict[str, Decimal]] = None,
    ) -> list[BalanceSheet]:
        registry, categories = await load_registry(self._registry_storage)
        expenses = await self._expense_flow.load_expenses(registry, categories)
        payments = await self._payment_storage.list_payments(month_year=month_year)
        return build_balance_sheets(month_year, registry, expenses, payments, opening_balances)


class AppComponents(NamedTuple):
    expense_flow: ExpenseFlow
    distribution_flow: DistributionFlow
    community_flow: CommunityFlow
    settlement_flow: SettlementFlow
    registry_storage: RegistryStorageInterface
    sheets_client: Optional[GoogleSheetsClient]


def create_app_components(
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on in-memory storage.
    """
    sheets_client = None
    audit_logger = None

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            expense_storage = GoogleSheetsExpenseStorage(sheets_client)
            registry_storage = GoogleSheetsRegistryStorage(sheets_client)
            notification_storage = GoogleSheetsNotificationStorage(sheets_client)
            poll_storage = GoogleSheetsPollStorage(sheets_client)
            payment_storage = GoogleSheetsPaymentStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        expense_storage = InMemoryExpenseStorage()
        registry_storage = InMemoryRegistryStorage()
        notification_storage = InMemoryNotificationStorage()
        poll_storage = InMemoryPollStorage()
        payment_storage = InMemoryPaymentStorage()
        audit_logger = AuditLogger()  # Local-only logging

    policy = SplittingPolicy()
    expense_flow = ExpenseFlow(
        expense_storage,
        registry_storage,
        policy=policy,
        audit_logger=audit_logger,
    )

    return AppComponents(
        expense_flow=expense_flow,
        distribution_flow=DistributionFlow(
            notification_storage,
            registry_storage,
            policy=policy,
            audit_logger=audit_logger,
        ),
        community_flow=CommunityFlow(
            notification_storage,
            poll_storage,
            registry_storage,
            audit_logger=audit_logger,
        ),
        settlement_flow=SettlementFlow(
            payment_storage,
            expense_flow,
            registry_storage,
            audit_logger=audit_logger,
        ),
        registry_storage=registry_storage,
        sheets_client=sheets_client,
    )
