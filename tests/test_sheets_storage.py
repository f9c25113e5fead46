"""
Tests for the Google Sheets backend.

A fake worksheet stands in for gspread; no network access.
"""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from paylogix.errors import NoSessionError, NotFoundError, PersistenceError
from paylogix.models.audit import AuditEvent, AuditEventType
from paylogix.models.records import RecordKind
from paylogix.services.session import StaticSessionProvider, UserSession
from paylogix.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsRecordRepository,
)
from paylogix.services.storage.google_sheets import RECORD_COLUMNS
from paylogix.store import RecordStore


@pytest.fixture
def sessions():
    return StaticSessionProvider(UserSession(user_id="alice", email="alice@example.com"))


@pytest.fixture
def sheets_repository(sessions, client):
    return GoogleSheetsRecordRepository(sessions, client)


def other_users_row():
    return ["other-1", "bob", "2024-01-01T00:00:00+00:00", "Bob's invoice", "999", "0", "2024-01-01"]


class TestGoogleSheetsRecordRepository:
    """Tests for row mapping and owner scoping."""

    def test_insert_stamps_owner(self, sheets_repository, client):
        record = asyncio.run(sheets_repository.insert(
            RecordKind.RECEIVABLE,
            {"description": "Invoice", "total_amount": "1000", "paid_amount": "0", "due_date": None},
        ))

        assert record["user_id"] == "alice"
        assert record["due_date"] is None
        row = client.sheets[RecordKind.RECEIVABLE].rows[1]
        assert row[0] == record["id"]
        assert row[6] == ""

    def test_query_only_returns_own_rows(self, sheets_repository, client):
        client.sheets[RecordKind.RECEIVABLE].rows.append(other_users_row())
        asyncio.run(sheets_repository.insert(
            RecordKind.RECEIVABLE,
            {"description": "Mine", "total_amount": "5", "paid_amount": "0"},
        ))

        rows = asyncio.run(sheets_repository.query(RecordKind.RECEIVABLE, "due_date"))

        assert [row["description"] for row in rows] == ["Mine"]

    def test_other_users_rows_cannot_be_changed(self, sheets_repository, client):
        sheet = client.sheets[RecordKind.RECEIVABLE]
        sheet.rows.append(other_users_row())

        with pytest.raises(NotFoundError):
            asyncio.run(sheets_repository.update(RecordKind.RECEIVABLE, "other-1", {"paid_amount": "1"}))
        assert asyncio.run(sheets_repository.delete(RecordKind.RECEIVABLE, "other-1")) is False
        assert sheet.rows[1] == other_users_row()

    def test_update_rewrites_row_in_place(self, sheets_repository, client):
        record = asyncio.run(sheets_repository.insert(
            RecordKind.REVENUE, {"description": "Sale", "amount": "10", "date": "2024-03-01"}
        ))

        updated = asyncio.run(sheets_repository.update(
            RecordKind.REVENUE, record["id"], {"amount": "25", "user_id": "mallory"}
        ))

        assert updated["amount"] == "25"
        assert updated["user_id"] == "alice"
        assert len(client.sheets[RecordKind.REVENUE].rows) == 2

    def test_delete_removes_row(self, sheets_repository, client):
        record = asyncio.run(sheets_repository.insert(
            RecordKind.REVENUE, {"description": "Sale", "amount": "10", "date": "2024-03-01"}
        ))

        assert asyncio.run(sheets_repository.delete(RecordKind.REVENUE, record["id"])) is True
        assert client.sheets[RecordKind.REVENUE].rows == [RECORD_COLUMNS[RecordKind.REVENUE]]

    def test_no_session_never_touches_the_sheet(self, client):
        """Test that signed-out access fails before any sheet call."""
        repository = GoogleSheetsRecordRepository(StaticSessionProvider(), client)

        with pytest.raises(NoSessionError):
            asyncio.run(repository.query(RecordKind.RECEIVABLE, "due_date"))
        with pytest.raises(NoSessionError):
            asyncio.run(repository.insert(RecordKind.REVENUE, {"description": "x"}))

        assert client.calls == 0

    def test_sheet_failure_becomes_persistence_error(self, sheets_repository, client):
        client.sheets[RecordKind.REVENUE].fail = True

        with pytest.raises(PersistenceError, match="quota exceeded"):
            asyncio.run(sheets_repository.insert(RecordKind.REVENUE, {"description": "x"}))

    def test_short_rows_are_padded(self, sheets_repository, client):
        client.sheets[RecordKind.RECEIVABLE].rows.append(["r1", "alice", "", "Old", "10"])

        rows = asyncio.run(sheets_repository.query(RecordKind.RECEIVABLE, "id"))

        assert rows[0]["paid_amount"] is None
        assert rows[0]["due_date"] is None


class TestStoreOverSheets:
    """End-to-end: record store persisting to the fake spreadsheet."""

    def test_add_and_pay(self, sheets_repository, client, validator):
        store = RecordStore(sheets_repository, validator=validator)

        receivable = asyncio.run(store.add_receivable("Invoice", 1000, date(2024, 3, 5)))
        asyncio.run(store.record_payment(receivable.id, 400))

        row = client.sheets[RecordKind.RECEIVABLE].rows[1]
        assert row[5] == "400"
        assert store.get_receivable(receivable.id).paid_amount == Decimal("400")

    def test_signed_out_store_is_unchanged(self, client, validator):
        store = RecordStore(
            GoogleSheetsRecordRepository(StaticSessionProvider(), client),
            validator=validator,
        )

        with pytest.raises(NoSessionError):
            asyncio.run(store.add_revenue("Sale", 100, date(2024, 3, 5)))

        assert store.revenues == ()


class TestGoogleSheetsAuditStorage:
    """Tests for the AuditLog worksheet."""

    def test_append_and_read_back(self, client):
        storage = GoogleSheetsAuditStorage(client)
        older = AuditEvent(
            event_type=AuditEventType.RECORD_CREATED,
            description="created",
            entity_id="r1",
            timestamp=datetime(2024, 3, 1, tzinfo=timezone.utc),
            details={"amount": "100"},
            is_user_action=True,
        )
        newer = AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            description="deleted",
            timestamp=datetime(2024, 3, 2, tzinfo=timezone.utc),
        )

        assert asyncio.run(storage.append_event(older)) is True
        assert asyncio.run(storage.append_event(newer)) is True
        events = asyncio.run(storage.get_recent_events())

        assert [e.event_id for e in events] == [newer.event_id, older.event_id]
        assert events[1].details == {"amount": "100"}
        assert events[1].is_user_action is True

    def test_malformed_rows_skipped(self, client):
        client.audit.rows.append(["not-a-uuid", "yesterday"])
        storage = GoogleSheetsAuditStorage(client)

        assert asyncio.run(storage.get_recent_events()) == []

    def test_append_failure_does_not_raise(self, client):
        client.audit.fail = True
        storage = GoogleSheetsAuditStorage(client)
        event = AuditEvent(event_type=AuditEventType.RECORD_CREATED, description="x")

        assert asyncio.run(storage.append_event(event)) is False
