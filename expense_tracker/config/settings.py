"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Which storage backend runs is decided from these values once, at startup,
and the resulting store is passed explicitly to the API and the dashboard.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class FirebaseSettings(BaseSettings):
    """Firestore (durable storage) configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FIREBASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    project_id: Optional[str] = Field(
        default=None,
        description="Google Cloud project hosting the Firestore database"
    )
    service_account: Optional[str] = Field(
        default=None,
        description="Service account credentials as a JSON string"
    )
    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to a service account credentials JSON file"
    )

    # Collection names within the database
    expenses_collection: str = Field(
        default="expenses",
        description="Collection holding expense documents"
    )
    counters_collection: str = Field(
        default="counters",
        description="Collection holding id counter documents"
    )
    transaction_max_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="How many times Firestore retries a conflicting counter transaction"
    )

    @field_validator('service_account')
    @classmethod
    def validate_service_account(cls, v: Optional[str]) -> Optional[str]:
        """Service account JSON must at least parse."""
        if v:
            try:
                json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f"FIREBASE_SERVICE_ACCOUNT is not valid JSON: {e}")
        return v or None

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Firebase credentials file not found at {v}. "
                "Make sure it exists before running the application."
            )
        return v or None

    @property
    def is_configured(self) -> bool:
        """Durable storage is used only when a project is configured."""
        return bool(self.project_id)

    @property
    def service_account_info(self) -> Optional[dict]:
        """Parsed service account JSON, if one was supplied inline."""
        if not self.service_account:
            return None
        return json.loads(self.service_account)


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

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum log level"
    )
    log_json: bool = Field(
        default=True,
        description="Render logs as JSON (False gives colored console output)"
    )

    # HTTP server
    api_host: str = Field(
        default="127.0.0.1",
        description="Interface the API binds to"
    )
    api_port: int = Field(
        default=5000,
        ge=1,
        le=65535,
        description="Port the API listens on"
    )

    # Month boundaries are computed in this timezone
    timezone: str = Field(
        default="UTC",
        description="IANA timezone name used for month ranges"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        """Get the configured timezone object."""
        return ZoneInfo(self.timezone)


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

    @property
    def firebase(self) -> FirebaseSettings:
        return FirebaseSettings()

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


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, plus
    "<name>_error" entries explaining failures.
    Firebase being absent is valid: the in-memory store is used instead.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    try:
        firebase = settings.firebase
        results["firebase"] = True
        results["firebase_configured"] = firebase.is_configured
    except Exception as e:
        results["firebase"] = False
        results["firebase_configured"] = False
        results["firebase_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
