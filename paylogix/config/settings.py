"""
Configuration Management for PayLogix

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets (remote) storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the shared spreadsheet"
    )

    # Sheet names within the spreadsheet
    receivables_sheet_name: str = Field(
        default="receivables",
        description="Name of the sheet for receivables"
    )
    revenues_sheet_name: str = Field(
        default="revenues",
        description="Name of the sheet for revenues"
    )
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v


class LocalStorageSettings(BaseSettings):
    """Local (file-backed key-value) storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORAGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    data_dir: str = Field(
        default=".paylogix",
        description="Directory holding one JSON document per key"
    )
    receivables_key: str = Field(
        default="receivables",
        description="Key under which receivables are saved"
    )
    revenues_key: str = Field(
        default="revenues",
        description="Key under which revenues are saved"
    )


class RealtimeSettings(BaseSettings):
    """Change feed configuration (remote variant only)."""

    model_config = SettingsConfigDict(
        env_prefix="REALTIME_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    enabled: bool = Field(
        default=True,
        description="Poll shared storage for changes made by other sessions"
    )
    poll_interval_seconds: float = Field(
        default=5.0,
        ge=0.5,
        le=300.0,
        description="Seconds between polls of shared storage"
    )


class SessionSettings(BaseSettings):
    """
    Signed-in user for the remote variant.

    There is no sign-in screen; the identity is configured.
    Leave user_id unset to run without a session (no data access).
    """

    model_config = SettingsConfigDict(
        env_prefix="SESSION_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    user_id: Optional[str] = Field(
        default=None,
        description="Owner id stamped on created records"
    )
    email: Optional[str] = Field(
        default=None,
        description="Shown in the dashboard header"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    backend: Literal["sheets", "local"] = Field(
        default="local",
        description="Where records are persisted"
    )

    currency_symbol: str = Field(
        default="Rp",
        description="Symbol shown before every amount"
    )

    allow_missing_due_date: bool = Field(
        default=False,
        description="Accept receivables without a due date"
    )

    # Validation thresholds
    max_amount: float = Field(
        default=10_000_000_000.0,
        description="Amounts above this get a warning (sanity check only)"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def local_storage(self) -> LocalStorageSettings:
        return LocalStorageSettings()

    @property
    def realtime(self) -> RealtimeSettings:
        return RealtimeSettings()

    @property
    def session(self) -> SessionSettings:
        return SessionSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    sections = {
        "app": lambda: settings.app,
        "google_sheets": lambda: settings.google_sheets,
        "local_storage": lambda: settings.local_storage,
        "realtime": lambda: settings.realtime,
        "session": lambda: settings.session,
    }

    for name, load in sections.items():
        try:
            load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
