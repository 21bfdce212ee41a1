"""
Configuration Management for Payments Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

All tunables (timeouts, retry policy, hashing cost, storage backend)
are declared here so the rest of the package never reads the
environment directly.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Ledger engine behaviour: timeouts, retries, hashing cost."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    transfer_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for persisting one transfer before failing closed"
    )
    persistence_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per persistence call before giving up"
    )
    retry_wait_multiplier: float = Field(
        default=0.5,
        ge=0.0,
        description="Exponential backoff multiplier"
    )
    retry_wait_min_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Minimum wait between persistence attempts"
    )
    retry_wait_max_seconds: float = Field(
        default=4.0,
        ge=0.0,
        description="Maximum wait between persistence attempts"
    )
    password_hash_iterations: int = Field(
        default=120_000,
        ge=1,
        description="pbkdf2_sha256 rounds for newly hashed passwords (passlib)"
    )
    notification_title: str = Field(
        default="New Transaction",
        min_length=1,
        description="Title of the notification sent to the receiver"
    )
    seed_when_empty: bool = Field(
        default=True,
        description="Seed the demo accounts when storage returns no accounts"
    )

    @model_validator(mode="after")
    def check_wait_bounds(self) -> "LedgerSettings":
        if self.retry_wait_max_seconds < self.retry_wait_min_seconds:
            raise ValueError("retry_wait_max_seconds cannot be below retry_wait_min_seconds")
        return self


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the Google Sheets spreadsheet to use"
    )

    # Sheet names within the spreadsheet
    accounts_sheet_name: str = Field(
        default="Accounts",
        description="Name of the sheet for accounts"
    )
    records_sheet_name: str = Field(
        default="TransactionRecords",
        description="Name of the sheet for transaction records"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before running the service."
            )
        return v


class LoggingSettings(BaseSettings):
    """Structured logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        extra="ignore"
    )

    level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    json_output: bool = Field(
        default=True,
        description="Render log lines as JSON instead of console text"
    )

    @field_validator('level')
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level


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

    # Sub-settings are loaded lazily so a missing Google Sheets
    # configuration does not prevent in-memory use.

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def logging(self) -> LoggingSettings:
        return LoggingSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus a
    "<name>_error" entry for every section that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("ledger", "google_sheets", "logging"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
