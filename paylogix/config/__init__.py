"""Configuration package."""

from paylogix.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    LocalStorageSettings,
    RealtimeSettings,
    SessionSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GoogleSheetsSettings",
    "LocalStorageSettings",
    "RealtimeSettings",
    "SessionSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
