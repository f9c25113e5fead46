"""
Local Key-Value Storage Implementation

The local variant keeps each table as ONE serialized document under one key.
There is no account, no sharing and no change feed.

DESIGN DECISION: Every mutation re-serializes the whole table and saves it
before the call returns. Tables are small (a household ledger), and writing
the full list means the file on disk is always a complete, loadable snapshot.
We never write diffs.

The repository's in-memory copy is only replaced AFTER the save succeeds,
so a failed write leaves both the file and the copy as they were.
"""

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

import structlog

from paylogix.models.records import RecordKind, utcnow
from paylogix.services.storage.interface import (
    NotFoundError,
    PersistenceError,
    RecordRepository,
    sort_rows,
)


logger = structlog.get_logger(__name__)


class KeyValueStorage(ABC):
    """Minimal string key-value store."""

    @abstractmethod
    def load(self, key: str) -> Optional[str]:
        """Return the value saved under key, or None if nothing was saved."""
        pass

    @abstractmethod
    def save(self, key: str, value: str) -> None:
        """
        Save value under key, replacing any previous value.

        Raises:
            PersistenceError: If the value could not be written
        """
        pass


class MemoryKeyValueStorage(KeyValueStorage):
    """In-process store. Lost on exit; used for tests and demos."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def save(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileKeyValueStorage(KeyValueStorage):
    """
    One JSON file per key inside a data directory.

    Writes go to a temporary file that is then renamed over the target,
    so a crash mid-write never leaves a truncated document behind.
    """

    def __init__(self, data_dir: str):
        self._data_dir = Path(data_dir)

    def _path(self, key: str) -> Path:
        return self._data_dir / f"{key}.json"

    def load(self, key: str) -> Optional[str]:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceError(f"Failed to read {key}: {e}")

    def save(self, key: str, value: str) -> None:
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self._data_dir,
                prefix=f".{key}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_path, self._path(key))
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to save {key}: {e}")


class LocalRecordRepository(RecordRepository):
    """
    Record repository over a KeyValueStorage.

    Ids are generated here (UUID4 strings) since there is no server
    to assign them.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        keys: Optional[dict[RecordKind, str]] = None,
    ):
        self._storage = storage
        self._keys = keys or {kind: kind.table for kind in RecordKind}
        self._tables: dict[RecordKind, list[dict[str, Any]]] = {}

    def _rows(self, kind: RecordKind) -> list[dict[str, Any]]:
        """Current rows for a kind, loading them on first access."""
        if kind not in self._tables:
            raw = self._storage.load(self._keys[kind])
            if raw is None:
                rows = []
            else:
                try:
                    rows = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise PersistenceError(
                        f"Saved {kind.table} are not valid JSON: {e}"
                    )
                if not isinstance(rows, list):
                    raise PersistenceError(f"Saved {kind.table} are not a list")
            self._tables[kind] = rows
        return self._tables[kind]

    def _commit(self, kind: RecordKind, rows: list[dict[str, Any]]) -> None:
        """Serialize the full table, save it, then adopt it."""
        serialized = json.dumps(rows, ensure_ascii=False, default=str)
        self._storage.save(self._keys[kind], serialized)
        self._tables[kind] = rows
        logger.debug("local_table_saved", table=kind.table, rows=len(rows))

    async def insert(self, kind: RecordKind, payload: dict[str, Any]) -> dict[str, Any]:
        record = {
            **payload,
            "id": str(uuid4()),
            "created_at": utcnow().isoformat(),
        }
        self._commit(kind, [*self._rows(kind), record])
        return dict(record)

    async def update(
        self,
        kind: RecordKind,
        record_id: str,
        patch: dict[str, Any],
    ) -> dict[str, Any]:
        rows = list(self._rows(kind))
        for idx, row in enumerate(rows):
            if row.get("id") == record_id:
                rows[idx] = {**row, **patch, "id": record_id}
                self._commit(kind, rows)
                return dict(rows[idx])

        raise NotFoundError(kind.value, record_id)

    async def delete(self, kind: RecordKind, record_id: str) -> bool:
        rows = self._rows(kind)
        remaining = [row for row in rows if row.get("id") != record_id]
        if len(remaining) == len(rows):
            return False
        self._commit(kind, remaining)
        return True

    async def query(
        self,
        kind: RecordKind,
        order_column: str,
        descending: bool = False,
    ) -> list[dict[str, Any]]:
        rows = [dict(row) for row in self._rows(kind)]
        return sort_rows(rows, order_column, descending)
