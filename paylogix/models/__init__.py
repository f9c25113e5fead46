"""
Data Models Package

This package contains all Pydantic models used in PayLogix.
All data flowing through the system must conform to these schemas.
"""

from paylogix.models.records import (
    ChangeKind,
    DashboardView,
    EditingItem,
    ExternalChange,
    Receivable,
    ReceivableEdit,
    ReceivablesSummary,
    Record,
    RecordKind,
    Revenue,
    RevenueEdit,
    RevenuesSummary,
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

__all__ = [
    # Record models
    "ChangeKind",
    "DashboardView",
    "EditingItem",
    "ExternalChange",
    "Receivable",
    "ReceivableEdit",
    "ReceivablesSummary",
    "Record",
    "RecordKind",
    "Revenue",
    "RevenueEdit",
    "RevenuesSummary",
    "ValidationIssue",
    "ValidationResult",
    "parse_record",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
