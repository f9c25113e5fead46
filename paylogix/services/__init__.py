"""Services package."""

from paylogix.services.realtime import ChangeFeed, PollingChangeFeed
from paylogix.services.session import (
    SessionProvider,
    StaticSessionProvider,
    UserSession,
    settings_session_provider,
)
from paylogix.services.storage import (
    AuditStorageInterface,
    BackendConnectionError,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsRecordRepository,
    JsonFileKeyValueStorage,
    KeyValueStorage,
    LocalRecordRepository,
    MemoryKeyValueStorage,
    NoSessionError,
    NotFoundError,
    PersistenceError,
    RecordRepository,
)

__all__ = [
    # Change feed
    "ChangeFeed",
    "PollingChangeFeed",
    # Session
    "SessionProvider",
    "StaticSessionProvider",
    "UserSession",
    "settings_session_provider",
    # Storage services
    "AuditStorageInterface",
    "BackendConnectionError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsRecordRepository",
    "JsonFileKeyValueStorage",
    "KeyValueStorage",
    "LocalRecordRepository",
    "MemoryKeyValueStorage",
    "NoSessionError",
    "NotFoundError",
    "PersistenceError",
    "RecordRepository",
]
