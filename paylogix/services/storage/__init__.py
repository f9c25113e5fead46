"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets backs the shared (remote) variant; a key-value store of JSON
documents backs the local variant.
"""

from paylogix.services.storage.interface import (
    AuditStorageInterface,
    BackendConnectionError,
    NoSessionError,
    NotFoundError,
    PersistenceError,
    RecordRepository,
    sort_rows,
)
from paylogix.services.storage.local import (
    JsonFileKeyValueStorage,
    KeyValueStorage,
    LocalRecordRepository,
    MemoryKeyValueStorage,
)
from paylogix.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordRepository,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "RecordRepository",
    "sort_rows",
    # Exceptions
    "BackendConnectionError",
    "NoSessionError",
    "NotFoundError",
    "PersistenceError",
    # Local implementation
    "JsonFileKeyValueStorage",
    "KeyValueStorage",
    "LocalRecordRepository",
    "MemoryKeyValueStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordRepository",
]
