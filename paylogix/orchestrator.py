"""
Main Orchestrator for PayLogix

This module ties together all the components and defines the flows the
dashboard drives:
1. Start (session check → feed baseline → initial load)
2. Add / edit / pay / delete (validate → persist → apply → re-project)
3. Refresh (poll the change feed → apply external changes)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No data access without a session in the shared variant
- Edits are dispatched on the editing item's `kind` tag, never on its shape
- Every step is audited

This is the "glue" that the Streamlit app talks to. It holds no state of
its own beyond what the store and projector hold.
"""

from datetime import date
from typing import Any, Optional
from uuid import UUID

from paylogix.audit import AuditLogger, create_correlation_id
from paylogix.config import Settings, get_settings
from paylogix.errors import NotFoundError
from paylogix.models.records import (
    DashboardView,
    EditingItem,
    ReceivableEdit,
    Record,
    RecordKind,
    RevenueEdit,
)
from paylogix.services.realtime import ChangeFeed, PollingChangeFeed
from paylogix.services.session import (
    SessionProvider,
    UserSession,
    settings_session_provider,
)
from paylogix.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordRepository,
    JsonFileKeyValueStorage,
    LocalRecordRepository,
)
from paylogix.store import RecordStore, ViewProjector
from paylogix.validation import RecordValidator


class DashboardFlow:
    """
    Orchestrates the two-tab dashboard.

    Flow for every action:
    1. Validate input (store)
    2. Persist (repository) - the store is untouched until this succeeds
    3. Apply the confirmed record (store)
    4. Recompute the view (projector, via subscription)
    """

    def __init__(
        self,
        store: RecordStore,
        projector: Optional[ViewProjector] = None,
        change_feed: Optional[ChangeFeed] = None,
        session_provider: Optional[SessionProvider] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._projector = projector or ViewProjector(store)
        self._feed = change_feed
        self._sessions = session_provider
        self._audit_logger = audit_logger or AuditLogger()
        self._unsubscribe_feed = None

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def view(self) -> DashboardView:
        return self._projector.view

    @property
    def session(self) -> Optional[UserSession]:
        return self._sessions.get_session() if self._sessions else None

    @property
    def requires_session(self) -> bool:
        return self._sessions is not None

    @property
    def has_change_feed(self) -> bool:
        return self._feed is not None

    async def start(self, correlation_id: Optional[UUID] = None) -> bool:
        """
        Load the dashboard.

        Returns False without touching storage when a session is required
        and nobody is signed in.
        """
        correlation_id = correlation_id or create_correlation_id()

        if self.requires_session and self.session is None:
            await self._audit_logger.log_session_missing("load dashboard")
            return False

        if self._feed is not None:
            if self._unsubscribe_feed is None:
                self._unsubscribe_feed = self._feed.subscribe(self._store.apply_change)
            # Baseline before load: see services/realtime
            await self._feed.poll_once()

        await self._store.load(correlation_id=correlation_id)
        return True

    async def refresh(self) -> int:
        """
        Pull pending external changes once.

        Returns:
            Number of change messages delivered
        """
        if self._feed is None:
            return 0
        return len(await self._feed.poll_once())

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    async def add_receivable(
        self,
        description: str,
        total_amount: Any,
        due_date: Optional[date],
        correlation_id: Optional[UUID] = None,
    ) -> Record:
        return await self._store.add_receivable(
            description,
            total_amount,
            due_date,
            correlation_id=correlation_id or create_correlation_id(),
        )

    async def add_revenue(
        self,
        description: str,
        amount: Any,
        revenue_date: Optional[date],
        correlation_id: Optional[UUID] = None,
    ) -> Record:
        return await self._store.add_revenue(
            description,
            amount,
            revenue_date,
            correlation_id=correlation_id or create_correlation_id(),
        )

    async def pay(
        self,
        receivable_id: str,
        payment_amount: Any,
        correlation_id: Optional[UUID] = None,
    ) -> Record:
        return await self._store.record_payment(
            receivable_id,
            payment_amount,
            correlation_id=correlation_id or create_correlation_id(),
        )

    async def delete(
        self,
        kind: RecordKind,
        record_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        correlation_id = correlation_id or create_correlation_id()
        if kind == RecordKind.RECEIVABLE:
            await self._store.delete_receivable(record_id, correlation_id=correlation_id)
        else:
            await self._store.delete_revenue(record_id, correlation_id=correlation_id)

    def open_edit(self, kind: RecordKind, record_id: str) -> EditingItem:
        """
        Snapshot a record into the tagged editing variant.

        Raises:
            NotFoundError: the record is no longer in the store
        """
        record = self._store.get(kind, record_id)
        if record is None:
            raise NotFoundError(kind.value, record_id)
        if kind == RecordKind.RECEIVABLE:
            return ReceivableEdit(data=record)
        return RevenueEdit(data=record)

    async def submit_edit(
        self,
        item: EditingItem,
        description: str,
        amount: Any,
        record_date: Optional[date],
        correlation_id: Optional[UUID] = None,
    ) -> Record:
        """
        Save the edit form for whichever record is being edited.

        `amount` is the total for a receivable and the amount for a revenue;
        `record_date` is the due date or the revenue date.
        """
        correlation_id = correlation_id or create_correlation_id()

        if item.kind == "receivable":
            return await self._store.update_receivable(
                item.data.id,
                description,
                amount,
                record_date,
                correlation_id=correlation_id,
            )
        elif item.kind == "revenue":
            return await self._store.update_revenue(
                item.data.id,
                description,
                amount,
                record_date,
                correlation_id=correlation_id,
            )
        raise ValueError(f"Unknown editing item kind: {item.kind}")


def create_app_components(
    settings: Optional[Settings] = None,
    sheets_client: Optional[GoogleSheetsClient] = None,
) -> DashboardFlow:
    """
    Factory function to create the dashboard for the configured backend.

    Every call builds a fresh store, projector and change feed: one per
    browser session. Only `sheets_client` (stateless apart from its
    connection) may be shared between sessions.

    - "sheets": shared Google Sheets spreadsheet, session-scoped records,
      polling change feed, audit log persisted to the AuditLog sheet
    - "local":  JSON documents in a local directory, no session, no feed

    Raises:
        pydantic.ValidationError: required settings for the backend are missing
    """
    settings = settings or get_settings()
    app_settings = settings.app
    validator = RecordValidator(
        allow_missing_due_date=app_settings.allow_missing_due_date,
        max_amount=app_settings.max_amount,
    )

    if app_settings.backend == "sheets":
        sessions = settings_session_provider(settings.session)
        sheets_client = sheets_client or GoogleSheetsClient(settings.google_sheets)
        repository = GoogleSheetsRecordRepository(sessions, sheets_client)
        audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))

        realtime = settings.realtime
        feed = (
            PollingChangeFeed(repository, interval_seconds=realtime.poll_interval_seconds)
            if realtime.enabled
            else None
        )
    else:
        local = settings.local_storage
        repository = LocalRecordRepository(
            JsonFileKeyValueStorage(local.data_dir),
            keys={
                RecordKind.RECEIVABLE: local.receivables_key,
                RecordKind.REVENUE: local.revenues_key,
            },
        )
        sessions = None
        audit_logger = AuditLogger()  # Local-only logging
        feed = None

    store = RecordStore(repository, validator=validator, audit_logger=audit_logger)
    return DashboardFlow(
        store,
        change_feed=feed,
        session_provider=sessions,
        audit_logger=audit_logger,
    )
