"""
Audit Models for PayLogix

Every mutation of the ledger is logged for audit purposes.
This provides:
1. Complete traceability of who changed what and when
2. Debugging information when storage and screen disagree
3. A record of changes that arrived from other sessions

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from paylogix.models.records import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Local mutations
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    PAYMENT_RECORDED = "payment_recorded"

    # Loading
    RECORDS_LOADED = "records_loaded"

    # Failures
    VALIDATION_FAILED = "validation_failed"
    PERSISTENCE_FAILED = "persistence_failed"
    SESSION_MISSING = "session_missing"

    # Changes pushed from shared storage
    EXTERNAL_CHANGE_APPLIED = "external_change_applied"
    EXTERNAL_CHANGE_IGNORED = "external_change_ignored"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what record is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Kind of record ('receivable' or 'revenue')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Storage id of the record this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one user action"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action in this session?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_created("receivable", record_id, ...)
        event = AuditEventBuilder.payment_recorded(receivable_id, ...)
    """

    @staticmethod
    def record_created(
        kind: str,
        record_id: str,
        description: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} created: {description[:200]} - Rp{amount}",
            details={
                "description": description,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        kind: str,
        record_id: str,
        changes: dict,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} updated",
            details={"changes": changes},
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(
        kind: str,
        record_id: str,
        existed_in_storage: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"{kind.capitalize()} deleted",
            details={"existed_in_storage": existed_in_storage},
            is_user_action=True,
        )

    @staticmethod
    def payment_recorded(
        receivable_id: str,
        payment_amount: str,
        paid_amount: str,
        total_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            entity_type="receivable",
            entity_id=receivable_id,
            correlation_id=correlation_id,
            description=f"Payment of Rp{payment_amount} recorded",
            details={
                "payment_amount": payment_amount,
                "paid_amount": paid_amount,
                "total_amount": total_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def records_loaded(
        kind: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORDS_LOADED,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            correlation_id=correlation_id,
            description=f"Loaded {count} {kind} records",
            details={"count": count},
        )

    @staticmethod
    def validation_failed(
        kind: str,
        action: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=kind,
            correlation_id=correlation_id,
            description=f"{action} rejected with {len(issues)} issues",
            details={
                "action": action,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def persistence_failed(
        kind: str,
        action: str,
        error_message: str,
        record_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=kind,
            entity_id=record_id,
            correlation_id=correlation_id,
            description=f"Storage failed during {action}",
            error_message=error_message,
            details={"action": action},
        )

    @staticmethod
    def session_missing(action: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_MISSING,
            severity=AuditSeverity.WARNING,
            description=f"No active session, skipped {action}",
            details={"action": action},
        )

    @staticmethod
    def external_change(
        kind: str,
        change_kind: str,
        record_id: Optional[str],
        applied: bool,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.EXTERNAL_CHANGE_APPLIED
            if applied
            else AuditEventType.EXTERNAL_CHANGE_IGNORED
        )
        outcome = "applied" if applied else "ignored"
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.DEBUG,
            entity_type=kind,
            entity_id=record_id,
            description=f"External {change_kind} {outcome}",
            details={"change_kind": change_kind},
        )

