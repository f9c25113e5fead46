"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Run against a shared Google Sheets spreadsheet (multi-session)
2. Run against local files with no account at all
3. Use in-memory storage for testing
4. Keep the record store decoupled from storage implementation

The interface deals in plain dicts (the wire shape of a record), not in
models. The record store owns conversion to Receivable / Revenue so both
backends go through exactly the same validation.
"""

from abc import ABC, abstractmethod
from typing import Any

from paylogix.errors import (
    BackendConnectionError,
    NoSessionError,
    NotFoundError,
    PersistenceError,
)
from paylogix.models.audit import AuditEvent
from paylogix.models.records import RecordKind


class RecordRepository(ABC):
    """
    Abstract interface for record persistence.

    Every method is a confirmation: when it returns, the change is durable.
    When it raises PersistenceError, nothing was changed.
    """

    @abstractmethod
    async def insert(self, kind: RecordKind, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a new record.

        Args:
            kind: Which table to insert into
            payload: Record fields without an id

        Returns:
            The stored record, including its assigned id

        Raises:
            PersistenceError: If the insert fails
        """
        pass

    @abstractmethod
    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        """
        Apply a partial update to an existing record.

        Args:
            kind: Which table the record lives in
            record_id: The record's id
            patch: Fields to overwrite; other fields are left alone

        Returns:
            The full record after the update

        Raises:
            NotFoundError: If the record doesn't exist
            PersistenceError: If the update fails
        """
        pass

    @abstractmethod
    async def delete(self, kind: RecordKind, record_id: str) -> bool:
        """
        Delete a record by id.

        Returns:
            True if a record was deleted, False if it was already gone

        Raises:
            PersistenceError: If the delete fails
        """
        pass

    @abstractmethod
    async def query(
        self,
        kind: RecordKind,
        order_column: str,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        """
        List all records of a kind visible to the current session.

        Args:
            kind: Which table to read
            order_column: Column to sort by; empty values sort last
            descending: Sort direction

        Returns:
            List of records
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


def sort_rows(
    rows: list[dict[str, Any]],
    order_column: str,
    descending: bool = False,
) -> list[dict[str, Any]]:
    """
    Order rows by a column, keeping rows with an empty value at the end
    regardless of direction.

    Values are compared as strings, which is correct for ISO dates.
    """
    present = [row for row in rows if row.get(order_column) not in (None, "")]
    missing = [row for row in rows if row.get(order_column) in (None, "")]
    present.sort(key=lambda row: str(row[order_column]), reverse=descending)
    return present + missing


__all__ = [
    "AuditStorageInterface",
    "BackendConnectionError",
    "NoSessionError",
    "NotFoundError",
    "PersistenceError",
    "RecordRepository",
    "sort_rows",
]
