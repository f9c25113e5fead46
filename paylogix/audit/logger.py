"""
Audit Logger

DESIGN DECISION: Every mutation of the ledger is logged.
This provides:
1. Complete traceability
2. Debugging capability when screen and storage disagree
3. A trail of changes that arrived from other sessions

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from paylogix.models.audit import AuditEvent, AuditEventBuilder
from paylogix.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (the AuditLog worksheet)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("paylogix.audit")

    def log_local(self, event: AuditEvent) -> None:
        """Log an event locally only. Safe to call from synchronous code."""
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        self.log_local(event)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_record_created(
        self,
        kind: str,
        record_id: str,
        description: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log creation of a receivable or revenue."""
        event = AuditEventBuilder.record_created(
            kind=kind,
            record_id=record_id,
            description=description,
            amount=amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_updated(
        self,
        kind: str,
        record_id: str,
        changes: dict,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an edit."""
        event = AuditEventBuilder.record_updated(
            kind=kind,
            record_id=record_id,
            changes=changes,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_record_deleted(
        self,
        kind: str,
        record_id: str,
        existed_in_storage: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a delete, including deletes of already-missing records."""
        event = AuditEventBuilder.record_deleted(
            kind=kind,
            record_id=record_id,
            existed_in_storage=existed_in_storage,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_payment_recorded(
        self,
        receivable_id: str,
        payment_amount: str,
        paid_amount: str,
        total_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a payment against a receivable."""
        event = AuditEventBuilder.payment_recorded(
            receivable_id=receivable_id,
            payment_amount=payment_amount,
            paid_amount=paid_amount,
            total_amount=total_amount,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_records_loaded(
        self,
        kind: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.records_loaded(
            kind=kind,
            count=count,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_validation_failed(
        self,
        kind: str,
        action: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log rejected input."""
        event = AuditEventBuilder.validation_failed(
            kind=kind,
            action=action,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_persistence_failed(
        self,
        kind: str,
        action: str,
        error_message: str,
        record_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure."""
        event = AuditEventBuilder.persistence_failed(
            kind=kind,
            action=action,
            error_message=error_message,
            record_id=record_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_session_missing(self, action: str) -> None:
        await self.log(AuditEventBuilder.session_missing(action))

    def log_external_change(
        self,
        kind: str,
        change_kind: str,
        record_id: Optional[str],
        applied: bool,
    ) -> None:
        """
        Log an external change.

        Synchronous and local-only: change notifications are applied
        from synchronous handlers, and echoing every poll result back
        into the audit sheet would double its size.
        """
        self.log_local(AuditEventBuilder.external_change(
            kind=kind,
            change_kind=change_kind,
            record_id=record_id,
            applied=applied,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., recording a payment).
    Pass it through all subsequent operations.
    """
    return uuid4()
