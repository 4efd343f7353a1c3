"""
Ledger Engine Package

The synchronous core: splitting, payment-state tracking, balance
aggregation, distribution previews, schema migration, settlement and
spending analytics. Nothing here caches results between calls.
"""

from apartment_share.ledger.splitting import (
    SplitResult,
    SplittingPolicy,
    is_split_category,
    to_cents,
)
from apartment_share.ledger.tracker import (
    mark_paid,
    mark_unpaid,
    paid_update,
    set_paid,
)
from apartment_share.ledger.permissions import (
    can_approve_payment,
    can_delete_expense,
    can_toggle_payment,
    require_admin,
    require_toggle_permission,
)
from apartment_share.ledger.balances import (
    aggregate_balances,
    check_consistency,
    outstanding_for,
    total_balance,
    total_outstanding,
    unsettled_apartments,
)
from apartment_share.ledger.distribution import (
    ApartmentShare,
    PaymentDistribution,
    PaymentRequestDispatcher,
    build_payment_requests,
    distribute_payment,
)
from apartment_share.ledger.migration import (
    ExpenseMigrator,
    MigrationReport,
    backfill_update,
    needs_backfill,
    parse_expense_record,
    upgrade_expense,
)
from apartment_share.ledger.analytics import (
    CategorySpending,
    MonthlySpending,
    SpendingSummary,
    category_spending,
    monthly_spending,
    spending_summary,
)
from apartment_share.ledger.settlement import (
    approve_payment,
    build_balance_sheets,
    decision_update,
    record_payment,
    reject_payment,
)

__all__ = [
    # Splitting
    "SplitResult",
    "SplittingPolicy",
    "is_split_category",
    "to_cents",
    # Payment state
    "mark_paid",
    "mark_unpaid",
    "paid_update",
    "set_paid",
    # Capabilities
    "can_approve_payment",
    "can_delete_expense",
    "can_toggle_payment",
    "require_admin",
    "require_toggle_permission",
    # Balances
    "aggregate_balances",
    "check_consistency",
    "outstanding_for",
    "total_balance",
    "total_outstanding",
    "unsettled_apartments",
    # Distribution
    "ApartmentShare",
    "PaymentDistribution",
    "PaymentRequestDispatcher",
    "build_payment_requests",
    "distribute_payment",
    # Migration
    "ExpenseMigrator",
    "MigrationReport",
    "backfill_update",
    "needs_backfill",
    "parse_expense_record",
    "upgrade_expense",
    # Analytics
    "CategorySpending",
    "MonthlySpending",
    "SpendingSummary",
    "category_spending",
    "monthly_spending",
    "spending_summary",
    # Settlement
    "approve_payment",
    "build_balance_sheets",
    "decision_update",
    "record_payment",
    "reject_payment",
]
