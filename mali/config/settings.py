"""
Configuration Management for the Mali ledger

Every knob is read from the environment (or .env) through pydantic-settings.

Sub-settings are built on first access, so a missing Sheets
configuration only matters when the Sheets backend is selected and a
missing Gemini key only disables advice.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


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

    # One worksheet per record collection
    accounts_sheet_name: str = Field(default="Accounts")
    sessions_sheet_name: str = Field(default="Sessions")
    entries_sheet_name: str = Field(default="Entries")
    audit_sheet_name: str = Field(default="AuditLog")

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


class GeminiSettings(BaseSettings):
    """
    Gemini LLM configuration.

    The API key is optional: without it the advice feature answers
    with a fixed "not configured" message instead of failing.
    """

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Gemini model to use"
    )
    max_tokens: int = Field(
        default=1024,
        ge=100,
        le=8192,
        description="Maximum tokens in response"
    )
    temperature: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Give up on the advice call after this long"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class AppSettings(BaseSettings):
    """
    Ledger-wide settings (backend, currencies, advice sample size).

    Read without a prefix, e.g. ``STORAGE_BACKEND=google_sheets``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    storage_backend: Literal["memory", "google_sheets"] = Field(
        default="memory",
        description="Where accounts, sessions and entries are kept"
    )

    # Currencies are labels only; nothing is converted
    default_currency: str = Field(
        default="SAR",
        min_length=1,
        max_length=10,
    )
    supported_currencies: str = Field(
        default="SAR,USD,EUR,KWD,AED,EGP",
        description="Comma-separated list of currencies offered to users"
    )

    advice_sample_size: int = Field(
        default=5,
        ge=0,
        le=50,
        description="How many pending entries are shown to the advice service"
    )

    @property
    def supported_currencies_list(self) -> list[str]:
        """Get supported currencies as a list."""
        return [c.strip().upper() for c in self.supported_currencies.split(",") if c.strip()]


class Settings(BaseSettings):
    """
    Root settings container.

    Entry point for the sub-settings above.
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
    def gemini(self) -> GeminiSettings:
        return GeminiSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Process-wide settings instance.

    Cached; tests call get_settings.cache_clear() after
    changing the environment.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Startup check of each settings group.

    Returns {group: ok} plus ``<group>_error`` messages for failures.
    The Sheets group is only checked when it is the selected backend.
    """
    results = {}

    settings = get_settings()

    try:
        app = settings.app
        results["app"] = True
    except Exception as e:
        app = None
        results["app"] = False
        results["app_error"] = str(e)

    # Sheets are only required when selected as the backend
    if app is not None and app.storage_backend == "google_sheets":
        try:
            _ = settings.google_sheets
            results["google_sheets"] = True
        except Exception as e:
            results["google_sheets"] = False
            results["google_sheets_error"] = str(e)

    try:
        results["gemini"] = settings.gemini.is_configured
    except Exception as e:
        results["gemini"] = False
        results["gemini_error"] = str(e)

    return results
