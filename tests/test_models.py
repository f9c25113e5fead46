"""
Tests for PayLogix

Test strategy:
1. Unit tests for individual components (models, validators, projector)
2. Flow tests for the record store (with in-memory storage)
3. No real API calls in tests (fake worksheets stand in for Google Sheets)
"""

import pytest
from datetime import date
from decimal import Decimal
from uuid import uuid4

from pydantic import TypeAdapter

from paylogix.models.records import (
    ChangeKind,
    EditingItem,
    ExternalChange,
    Receivable,
    ReceivableEdit,
    RecordKind,
    Revenue,
    RevenueEdit,
    ValidationIssue,
    ValidationResult,
    parse_record,
)
from paylogix.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestRecordModels:
    """Tests for receivable and revenue models."""

    def test_receivable_creation(self):
        """Test Receivable model creation."""
        receivable = Receivable(
            id="r1",
            description="Invoice #12",
            total_amount=Decimal("1500000"),
            due_date=date(2024, 3, 5),
        )
        assert receivable.paid_amount == Decimal("0")
        assert receivable.remaining == Decimal("1500000")
        assert receivable.is_paid is False

    def test_receivable_paid_in_full(self):
        """Test that a receivable with nothing remaining is paid."""
        receivable = Receivable(
            id="r1",
            description="Invoice",
            total_amount=Decimal("1000"),
            paid_amount=Decimal("1000"),
        )
        assert receivable.remaining == Decimal("0")
        assert receivable.is_paid is True

    def test_receivable_strips_whitespace(self):
        """Test that whitespace is stripped from the description."""
        receivable = Receivable(id="r1", description="  Invoice  ", total_amount=1)
        assert receivable.description == "Invoice"

    def test_receivable_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Receivable(id="r1", description="Test", total_amount=Decimal("-100"))

    def test_receivable_blank_due_date_is_none(self):
        """Test that an empty date cell from storage means no due date."""
        receivable = Receivable(
            id="r1", description="Test", total_amount="100", due_date=""
        )
        assert receivable.due_date is None

    def test_revenue_parses_storage_strings(self):
        """Test Revenue built from the string values storage returns."""
        revenue = parse_record(RecordKind.REVENUE, {
            "id": "v1",
            "description": "Consulting",
            "amount": "250000",
            "date": "2024-03-01",
            "created_at": "2024-03-01T10:00:00+00:00",
            "unexpected_column": "ignored",
        })
        assert isinstance(revenue, Revenue)
        assert revenue.amount == Decimal("250000")
        assert revenue.date == date(2024, 3, 1)

    def test_record_kind_tables(self):
        """Test table names for each kind."""
        assert RecordKind.RECEIVABLE.table == "receivables"
        assert RecordKind.REVENUE.table == "revenues"


class TestExternalChange:
    """Tests for change notifications."""

    def test_insert_uses_new_record(self):
        change = ExternalChange(
            table=RecordKind.RECEIVABLE,
            change_kind=ChangeKind.INSERT,
            new_record={"id": "r1"},
        )
        assert change.record == {"id": "r1"}
        assert change.record_id == "r1"

    def test_delete_uses_old_record(self):
        """Test that deletes carry the id in the old record only."""
        change = ExternalChange(
            table="revenue",
            change_kind="delete",
            old_record={"id": "v9"},
        )
        assert change.table == RecordKind.REVENUE
        assert change.record_id == "v9"

    def test_delete_without_payload(self):
        change = ExternalChange(table=RecordKind.REVENUE, change_kind=ChangeKind.DELETE)
        assert change.record == {}
        assert change.record_id is None


class TestEditingItem:
    """Tests for the tagged editing variant."""

    def test_discriminates_on_kind(self):
        """Test that the kind tag picks the variant."""
        adapter = TypeAdapter(EditingItem)
        item = adapter.validate_python({
            "kind": "revenue",
            "data": {"id": "v1", "description": "Sale", "amount": "10"},
        })
        assert isinstance(item, RevenueEdit)
        assert isinstance(item.data, Revenue)

    def test_receivable_edit_defaults_kind(self):
        item = ReceivableEdit(
            data=Receivable(id="r1", description="Invoice", total_amount=5)
        )
        assert item.kind == "receivable"

    def test_unknown_kind_rejected(self):
        adapter = TypeAdapter(EditingItem)
        with pytest.raises(ValueError):
            adapter.validate_python({"kind": "bill", "data": {}})


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="Receivable created",
        )
        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            description="Payment recorded",
            details={"payment_amount": "500", "paid_amount": "1000"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "payment_recorded"
        assert log_dict["details"]["paid_amount"] == "1000"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            description="Revenue deleted",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "record_deleted"  # event_type
        assert row[10] == "True"  # is_user_action

    def test_audit_event_builder_record_created(self):
        """Test AuditEventBuilder.record_created."""
        correlation_id = uuid4()

        event = AuditEventBuilder.record_created(
            kind="receivable",
            record_id="r1",
            description="Invoice #12",
            amount="1500000",
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.RECORD_CREATED
        assert event.entity_type == "receivable"
        assert event.entity_id == "r1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_validation_failed(self):
        """Test that rejected input is a warning."""
        event = AuditEventBuilder.validation_failed(
            kind="revenue",
            action="add revenue",
            issues=[{"field": "amount", "issue_type": "negative"}],
            correlation_id=None,
        )
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.severity == AuditSeverity.WARNING

    def test_audit_event_builder_persistence_failed(self):
        event = AuditEventBuilder.persistence_failed(
            kind="receivable",
            action="record payment",
            error_message="quota exceeded",
            record_id="r1",
            correlation_id=None,
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "quota exceeded"


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test errors block the result."""
        result = ValidationResult(
            issues=[
                ValidationIssue(
                    field="total_amount",
                    issue_type="missing",
                    message="Total amount required",
                    severity="error",
                ),
            ],
        )
        assert result.is_valid is False
        assert len(result.errors) == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="suspicious_value",
                    message="Amount seems high",
                    severity="warning",
                ),
            ],
        )
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_validation_issue_severity_is_constrained(self):
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
