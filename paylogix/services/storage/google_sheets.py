"""
Google Sheets Storage Implementation

DESIGN DECISION: A shared Google Sheets spreadsheet is the remote backend because:
1. Several people (and devices) can work on the same ledger
2. Users can inspect their data directly in Sheets
3. No database setup required
4. Built-in backup (Google's infrastructure)

TRADEOFFS:
- No server-assigned ids (we generate UUIDs before appending)
- No push notifications (see services/realtime for the polling feed)
- Limited query capabilities (we filter and sort in Python)

Every row carries the owner's user_id. Rows belonging to other users are
invisible: they are skipped on read and treated as missing on update/delete.

gspread is blocking, so every call runs in a worker thread via
asyncio.to_thread and never stalls the event loop.
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from paylogix.config import GoogleSheetsSettings, get_settings
from paylogix.models.audit import AuditEvent, AuditEventType, AuditSeverity
from paylogix.models.records import RecordKind, utcnow
from paylogix.services.session import SessionProvider, UserSession
from paylogix.services.storage.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    NoSessionError,
    NotFoundError,
    PersistenceError,
    RecordRepository,
    sort_rows,
)


logger = structlog.get_logger(__name__)


# Column mappings per table
RECORD_COLUMNS: dict[RecordKind, list[str]] = {
    RecordKind.RECEIVABLE: [
        "id",
        "user_id",
        "created_at",
        "description",
        "total_amount",
        "paid_amount",
        "due_date",
    ],
    RecordKind.REVENUE: [
        "id",
        "user_id",
        "created_at",
        "description",
        "amount",
        "date",
    ],
}

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise BackendConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise BackendConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise BackendConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_table_sheet(self, kind: RecordKind) -> gspread.Worksheet:
        """Get or create the worksheet for a record kind."""
        title = (
            self._settings.receivables_sheet_name
            if kind == RecordKind.RECEIVABLE
            else self._settings.revenues_sheet_name
        )
        return self._get_or_create_sheet(title, RECORD_COLUMNS[kind], rows=1000)

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


class GoogleSheetsRecordRepository(RecordRepository):
    """
    Google Sheets implementation of record storage.

    Records are stored as rows, one worksheet per kind, one record per row.
    """

    def __init__(
        self,
        session_provider: SessionProvider,
        client: Optional[GoogleSheetsClient] = None,
    ):
        self._sessions = session_provider
        self._client = client or GoogleSheetsClient()

    def _require_session(self) -> UserSession:
        session = self._sessions.get_session()
        if session is None:
            raise NoSessionError("Sign in required before accessing records")
        return session

    def _record_to_row(self, kind: RecordKind, record: dict[str, Any]) -> list[str]:
        """Convert a record dict to a spreadsheet row."""
        return [
            "" if record.get(column) is None else str(record[column])
            for column in RECORD_COLUMNS[kind]
        ]

    def _row_to_record(self, kind: RecordKind, row: list) -> dict[str, Any]:
        """Convert a spreadsheet row to a record dict. Empty cells become None."""
        columns = RECORD_COLUMNS[kind]
        padded = list(row) + [""] * (len(columns) - len(row))
        record = {}
        for column, value in zip(columns, padded):
            if column == "description":
                record[column] = value
            else:
                record[column] = value if value != "" else None
        return record

    def _owned_rows(
        self,
        kind: RecordKind,
        sheet: gspread.Worksheet,
        user_id: str,
    ) -> list[tuple[int, dict[str, Any]]]:
        """(sheet row number, record) for every row owned by user_id."""
        owned = []
        # Start from 2 (row 1 is header)
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if not row or not row[0]:  # Skip empty rows
                continue
            record = self._row_to_record(kind, row)
            if record.get("user_id") == user_id:
                owned.append((idx, record))
        return owned

    def _find(
        self,
        kind: RecordKind,
        sheet: gspread.Worksheet,
        user_id: str,
        record_id: str,
    ) -> Optional[tuple[int, dict[str, Any]]]:
        for idx, record in self._owned_rows(kind, sheet, user_id):
            if record["id"] == record_id:
                return idx, record
        return None

    def _insert_sync(
        self,
        kind: RecordKind,
        payload: dict[str, Any],
        user_id: str,
    ) -> dict[str, Any]:
        record = {
            **payload,
            "id": str(uuid4()),
            "user_id": user_id,
            "created_at": utcnow().isoformat(),
        }
        sheet = self._client.get_table_sheet(kind)
        sheet.append_row(self._record_to_row(kind, record), value_input_option="RAW")
        return self._row_to_record(kind, self._record_to_row(kind, record))

    def _update_sync(
        self,
        kind: RecordKind,
        record_id: str,
        patch: dict[str, Any],
        user_id: str,
    ) -> dict[str, Any]:
        sheet = self._client.get_table_sheet(kind)
        found = self._find(kind, sheet, user_id, record_id)
        if found is None:
            raise NotFoundError(kind.value, record_id)

        idx, current = found
        # id and owner are never patched
        updated = {**current, **patch, "id": record_id, "user_id": user_id}
        row = self._record_to_row(kind, updated)
        sheet.update(
            range_name=f"A{idx}",
            values=[row],
            value_input_option="RAW",
        )
        return self._row_to_record(kind, row)

    def _delete_sync(self, kind: RecordKind, record_id: str, user_id: str) -> bool:
        sheet = self._client.get_table_sheet(kind)
        found = self._find(kind, sheet, user_id, record_id)
        if found is None:
            return False
        sheet.delete_rows(found[0])
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _query_sync(self, kind: RecordKind, user_id: str) -> list[dict[str, Any]]:
        sheet = self._client.get_table_sheet(kind)
        return [record for _, record in self._owned_rows(kind, sheet, user_id)]

    async def insert(self, kind: RecordKind, payload: dict[str, Any]) -> dict[str, Any]:
        """Append a record owned by the signed-in user."""
        session = self._require_session()
        try:
            return await asyncio.to_thread(
                self._insert_sync, kind, payload, session.user_id
            )
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to save {kind.value}: {e}")

    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        """Rewrite the record's row with the patch applied."""
        session = self._require_session()
        try:
            return await asyncio.to_thread(
                self._update_sync, kind, record_id, patch, session.user_id
            )
        except (NotFoundError, PersistenceError):
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to update {kind.value}: {e}")

    async def delete(self, kind: RecordKind, record_id: str) -> bool:
        """Remove the record's row."""
        session = self._require_session()
        try:
            return await asyncio.to_thread(
                self._delete_sync, kind, record_id, session.user_id
            )
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to delete {kind.value}: {e}")

    async def query(
        self,
        kind: RecordKind,
        order_column: str,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """List the signed-in user's records."""
        session = self._require_session()
        try:
            rows = await asyncio.to_thread(self._query_sync, kind, session.user_id)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(f"Failed to list {kind.table}: {e}")
        return sort_rows(rows, order_column, descending)


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        def safe_get(index: int, default: str = "") -> str:
            try:
                return row[index] if row[index] else default
            except IndexError:
                return default

        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _append_sync(self, event: AuditEvent) -> None:
        sheet = self._client.get_audit_sheet()
        sheet.append_row(event.to_sheets_row(), value_input_option="RAW")

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            await asyncio.to_thread(self._append_sync, event)
            return True
        except Exception as e:
            # Don't raise - audit logging should not break the main flow
            logger.warning(
                "audit_append_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        try:
            all_rows = await asyncio.to_thread(
                lambda: self._client.get_audit_sheet().get_all_values()
            )
        except Exception as e:
            raise PersistenceError(f"Failed to get audit events: {e}")

        events = []
        for row in all_rows[1:]:
            if row and row[0]:
                try:
                    events.append(self._row_to_event(row))
                except (ValueError, json.JSONDecodeError):
                    continue  # Skip malformed rows

        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
