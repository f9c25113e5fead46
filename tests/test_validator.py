"""Tests for input validation."""

from datetime import date
from decimal import Decimal

import pytest

from paylogix.errors import ValidationError
from paylogix.validation import RecordValidator, to_amount


class TestToAmount:
    """Tests for converting user input to amounts."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (1500, Decimal("1500")),
            ("  250 ", Decimal("250")),
            (0.1, Decimal("0.1")),
            (Decimal("7"), Decimal("7")),
        ],
    )
    def test_valid_input(self, value, expected):
        assert to_amount(value) == expected

    @pytest.mark.parametrize("value", [None, True, "abc", float("nan"), float("inf"), "Infinity"])
    def test_invalid_input(self, value):
        assert to_amount(value) is None


class TestRecordValidator:
    """Tests for RecordValidator."""

    def test_valid_receivable(self, validator):
        result = validator.check_receivable("Invoice", 1000, date(2024, 3, 5))
        assert result.is_valid is True
        assert result.issues == []

    def test_missing_fields(self, validator):
        """Test that every problem is reported at once."""
        result = validator.check_receivable("", None, None)
        fields = {issue.field for issue in result.errors}
        assert fields == {"description", "total_amount", "due_date"}

    def test_non_numeric_amount(self, validator):
        result = validator.check_revenue("Sale", "twelve", date(2024, 3, 5))
        assert result.errors[0].issue_type == "invalid_value"

    def test_negative_amount_is_not_fixed(self, validator):
        """Test that negatives are rejected, never turned positive."""
        result = validator.check_payment(-100)
        assert result.is_valid is False
        assert result.errors[0].issue_type == "negative"

    def test_large_amount_is_only_a_warning(self):
        validator = RecordValidator(allow_missing_due_date=False, max_amount=1000)
        result = validator.check_revenue("Sale", 5000, date(2024, 3, 5))
        assert result.is_valid is True
        assert result.warnings[0].issue_type == "suspicious_value"

    def test_total_below_paid(self, validator):
        result = validator.check_receivable(
            "Invoice", 100, date(2024, 3, 5), paid_amount=Decimal("150")
        )
        assert [issue.issue_type for issue in result.errors] == ["below_paid"]

    def test_revenue_date_always_required(self):
        validator = RecordValidator(allow_missing_due_date=True, max_amount=1e10)
        assert validator.check_receivable("Invoice", 10, None).is_valid is True
        assert validator.check_revenue("Sale", 10, None).is_valid is False

    def test_ensure_valid_raises_with_issues(self, validator):
        result = validator.check_payment(None)
        with pytest.raises(ValidationError, match="Cannot record payment") as exc_info:
            validator.ensure_valid(result, "record payment")
        assert len(exc_info.value.issues) == 1

    def test_ensure_valid_passes_warnings(self):
        validator = RecordValidator(allow_missing_due_date=False, max_amount=1)
        validator.ensure_valid(validator.check_payment(5), "record payment")

    def test_user_friendly_summary(self, validator):
        result = validator.check_receivable("", 100, date(2024, 3, 5))
        summary = validator.get_user_friendly_summary(result)
        assert "Description is required" in summary
