"""
Input Validation

Every add / edit / pay request is validated BEFORE anything is sent to
storage. A request with errors never reaches the repository, so the
record store cannot be left half-changed by bad input.

Two severities:
- error: blocks the request (missing field, negative amount)
- warning: reported but allowed (suspiciously large amount)

IMPORTANT: Validation NEVER silently fixes issues.
A negative amount is rejected, not turned positive.
"""

import math
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from paylogix.config import get_settings
from paylogix.errors import ValidationError
from paylogix.models.records import ValidationIssue, ValidationResult


def to_amount(value: Any) -> Optional[Decimal]:
    """
    Convert user input to a Decimal amount.

    Returns None for anything that is not a finite number. Floats go
    through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


class RecordValidator:
    """Validates record fields and payment amounts."""

    def __init__(
        self,
        allow_missing_due_date: Optional[bool] = None,
        max_amount: Optional[float] = None,
    ):
        settings = get_settings().app
        self._allow_missing_due_date = (
            settings.allow_missing_due_date
            if allow_missing_due_date is None
            else allow_missing_due_date
        )
        self._max_amount = Decimal(str(
            settings.max_amount if max_amount is None else max_amount
        ))

    def _check_description(self, description: Optional[str]) -> list[ValidationIssue]:
        if description is None or not description.strip():
            return [ValidationIssue(
                field="description",
                issue_type="missing",
                message="Description is required",
                severity="error",
            )]
        return []

    def _check_amount(self, field: str, value: Any) -> list[ValidationIssue]:
        if value is None or value == "":
            return [ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{field.replace('_', ' ').capitalize()} is required",
                severity="error",
            )]

        amount = to_amount(value)
        if amount is None:
            return [ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=f"{field.replace('_', ' ').capitalize()} must be a number",
                severity="error",
            )]

        if amount < 0:
            return [ValidationIssue(
                field=field,
                issue_type="negative",
                message=f"{field.replace('_', ' ').capitalize()} cannot be negative",
                severity="error",
            )]

        if amount > self._max_amount:
            return [ValidationIssue(
                field=field,
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.0f}) seems unusually high",
                severity="warning",
            )]

        return []

    def _check_date(
        self,
        field: str,
        value: Optional[date],
        required: bool,
    ) -> list[ValidationIssue]:
        if value is None:
            if required:
                return [ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"{field.replace('_', ' ').capitalize()} is required",
                    severity="error",
                )]
            return []

        if not isinstance(value, date):
            return [ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message=f"{field.replace('_', ' ').capitalize()} must be a date",
                severity="error",
            )]
        return []

    def check_receivable(
        self,
        description: Optional[str],
        total_amount: Any,
        due_date: Optional[date],
        paid_amount: Decimal = Decimal("0"),
    ) -> ValidationResult:
        """
        Validate receivable fields.

        `paid_amount` is the amount already paid; an edit may not lower
        the total below it.
        """
        issues = []
        issues.extend(self._check_description(description))
        amount_issues = self._check_amount("total_amount", total_amount)
        issues.extend(amount_issues)
        issues.extend(self._check_date(
            "due_date",
            due_date,
            required=not self._allow_missing_due_date,
        ))

        total = to_amount(total_amount)
        if not any(i.severity == "error" for i in amount_issues) and total < paid_amount:
            issues.append(ValidationIssue(
                field="total_amount",
                issue_type="below_paid",
                message=(
                    f"Total ({total:,.0f}) cannot be less than the amount "
                    f"already paid ({paid_amount:,.0f})"
                ),
                severity="error",
            ))

        return ValidationResult(issues=issues)

    def check_revenue(
        self,
        description: Optional[str],
        amount: Any,
        revenue_date: Optional[date],
    ) -> ValidationResult:
        """Validate revenue fields. The date is always required."""
        issues = []
        issues.extend(self._check_description(description))
        issues.extend(self._check_amount("amount", amount))
        issues.extend(self._check_date("date", revenue_date, required=True))
        return ValidationResult(issues=issues)

    def check_payment(self, payment_amount: Any) -> ValidationResult:
        """Validate a payment amount."""
        return ValidationResult(
            issues=self._check_amount("payment_amount", payment_amount)
        )

    @staticmethod
    def ensure_valid(result: ValidationResult, action: str) -> None:
        """
        Raise ValidationError if the result has any error-level issue.

        Raises:
            ValidationError: listing every error message
        """
        if result.is_valid:
            return
        messages = "; ".join(issue.message for issue in result.errors)
        raise ValidationError(f"Cannot {action}: {messages}", result.issues)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.

        This is what we show next to the form.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if result.errors:
            lines.append("❌ Please fix the following:")
            for issue in result.errors:
                lines.append(f"   • {issue.message}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for issue in result.warnings:
                lines.append(f"   • {issue.message}")

        return "\n".join(lines)
