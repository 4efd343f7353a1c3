"""
Two-Stage Expense Submission Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Amount is a positive number
- Paying apartment is registered
- Category is known
- Description is present
Any failure here is an error; the expense is not created.

STAGE 2 - SEMANTIC VALIDATION:
- Unusually large amounts
- Dates too far in the future
- Non-split category notice (the payer will bear the full cost)
These are warnings shown to the submitter; they never block creation.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them for human review.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from apartment_share.config import get_settings
from apartment_share.ledger.splitting import SplittingPolicy
from apartment_share.models.expense import ExpenseSubmission
from apartment_share.models.registry import ApartmentRegistry, CategoryCatalog
from apartment_share.models.validation import ValidationIssue, ValidationResult


class ExpenseSubmissionValidator:
    """
    Validates a submitted expense before the split is computed.

    Stage 1: Schema validation (errors)
    Stage 2: Semantic validation (warnings, only if stage 1 passed)
    """

    def __init__(self, policy: Optional[SplittingPolicy] = None):
        self._policy = policy or SplittingPolicy()
        self._settings = get_settings().app

    def _validate_schema(
        self,
        submission: ExpenseSubmission,
        registry: ApartmentRegistry,
        categories: CategoryCatalog,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        if not submission.amount.is_finite() or submission.amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
                severity="error",
                suggested_fix="Enter the amount that was paid",
            ))
        elif submission.amount.as_tuple().exponent < -2:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Amount can have at most two decimal places",
                severity="error",
                suggested_fix="Round the amount to the nearest paisa",
            ))

        if registry.size == 0:
            issues.append(ValidationIssue(
                field="paid_by_apartment",
                issue_type="missing",
                message="No apartments are registered",
                severity="error",
                suggested_fix="Seed the apartment registry first",
            ))
        elif not registry.contains(submission.paid_by_apartment):
            issues.append(ValidationIssue(
                field="paid_by_apartment",
                issue_type="unknown",
                message=f"Unknown apartment: {submission.paid_by_apartment}",
                severity="error",
                suggested_fix="Select the apartment that paid",
            ))

        if categories.get(submission.category_id) is None:
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="unknown",
                message=f"Unknown category: {submission.category_id}",
                severity="error",
                suggested_fix="Select one of the listed categories",
            ))

        if not submission.description:
            issues.append(ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
                suggested_fix="Describe what the money was spent on",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _validate_semantic(
        self,
        submission: ExpenseSubmission,
        categories: CategoryCatalog,
        now: datetime,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        max_amount = Decimal(str(self._settings.max_expense_amount))
        if submission.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount (₹{submission.amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        max_future_date = now + timedelta(days=self._settings.future_date_tolerance_days)
        if submission.date and submission.date.replace(tzinfo=None) > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({submission.date.date()}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        category_name = categories.name_for(submission.category_id)
        if not self._policy.is_split_category(category_name):
            issues.append(ValidationIssue(
                field="category_id",
                issue_type="not_split",
                message=f"{category_name} expenses are not split; the paying apartment bears the full cost",
                severity="info",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def validate(
        self,
        submission: ExpenseSubmission,
        registry: ApartmentRegistry,
        categories: CategoryCatalog,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(submission, registry, categories)
        all_issues.extend(schema_issues)

        # Only run stage 2 if stage 1 passes
        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                submission, categories, now or datetime.utcnow()
            )
            all_issues.extend(semantic_issues)

        return ValidationResult(
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            issues=all_issues,
            warnings=[i.message for i in all_issues if i.severity == "warning"],
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show to residents.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed!"

        lines = []

        if not result.schema_valid:
            lines.append("❌ The expense could not be added:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        if result.has_errors:
            lines.append("")
            lines.append("Please fix the issues above before continuing.")

        return "\n".join(lines)
