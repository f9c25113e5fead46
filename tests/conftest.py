"""Shared fixtures: in-memory storage and fake worksheets, so no test touches disk or network."""

from typing import Optional

import pytest

from paylogix.errors import PersistenceError
from paylogix.models.records import RecordKind
from paylogix.services.storage import LocalRecordRepository, MemoryKeyValueStorage
from paylogix.services.storage.google_sheets import AUDIT_COLUMNS, RECORD_COLUMNS
from paylogix.store import RecordStore
from paylogix.validation import RecordValidator


class FlakyKeyValueStorage(MemoryKeyValueStorage):
    """Memory storage whose saves can be switched to fail."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        super().__init__(initial)
        self.fail_saves = False

    def save(self, key: str, value: str) -> None:
        if self.fail_saves:
            raise PersistenceError("disk full")
        super().save(key, value)


@pytest.fixture
def validator():
    return RecordValidator(allow_missing_due_date=False, max_amount=10_000_000_000)


@pytest.fixture
def kv_storage():
    return FlakyKeyValueStorage()


@pytest.fixture
def repository(kv_storage):
    return LocalRecordRepository(kv_storage)


@pytest.fixture
def store(repository, validator):
    return RecordStore(repository, validator=validator)


class FakeWorksheet:
    """The subset of gspread.Worksheet the backend uses."""

    def __init__(self, header):
        self.rows = [list(header)]
        self.fail = False

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        if self.fail:
            raise RuntimeError("quota exceeded")
        self.rows.append([str(v) for v in values])

    def update(self, range_name, values, value_input_option=None):
        index = int(range_name[1:]) - 1
        self.rows[index] = list(values[0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    """Stands in for GoogleSheetsClient: one fake worksheet per table."""

    def __init__(self):
        self.sheets = {kind: FakeWorksheet(RECORD_COLUMNS[kind]) for kind in RecordKind}
        self.audit = FakeWorksheet(AUDIT_COLUMNS)
        self.calls = 0

    def get_table_sheet(self, kind):
        self.calls += 1
        return self.sheets[kind]

    def get_audit_sheet(self):
        return self.audit


@pytest.fixture
def client():
    return FakeSheetsClient()
