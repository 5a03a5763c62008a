"""
Configuration Management for Finanzas Pro

Settings come from the environment (or .env) through pydantic-settings.

Each external service gets its own prefixed section.
The app only consumes two credentials (the table store and the AI key);
everything else has a sensible default so the app can start offline.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets table storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file"
    )
    spreadsheet_id: str = Field(
        ...,
        description="ID of the spreadsheet holding the finance tables"
    )

    # One worksheet per table
    users_sheet_name: str = Field(default="users")
    transactions_sheet_name: str = Field(default="transactions")
    debts_sheet_name: str = Field(default="debts")
    goals_sheet_name: str = Field(default="savings_goals")
    tags_sheet_name: str = Field(default="tags")
    audit_sheet_name: str = Field(
        default="audit_log",
        description="Worksheet holding the audit trail"
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

    def sheet_names(self) -> dict[str, str]:
        """Map table names to worksheet titles."""
        return {
            "users": self.users_sheet_name,
            "transactions": self.transactions_sheet_name,
            "debts": self.debts_sheet_name,
            "savings_goals": self.goals_sheet_name,
            "tags": self.tags_sheet_name,
        }


class GeminiSettings(BaseSettings):
    """Gemini LLM configuration."""

    model_config = SettingsConfigDict(
        env_prefix="GEMINI_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # A missing key surfaces when advice is requested
    api_key: Optional[str] = Field(
        default=None,
        description="Gemini API key"
    )
    model_name: str = Field(
        default="gemini-2.5-flash",
        description="Model used for every advice request"
    )
    max_tokens: int = Field(
        default=2048,
        ge=100,
        le=8192,
        description="Reply length cap"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=1.0,
        description="Model temperature"
    )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_key.strip())


class AppSettings(BaseSettings):
    """
    Application-wide settings.

    Unprefixed variables (LOG_LEVEL, DEFAULT_THEME, CURRENCY_SYMBOL...).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="development, staging or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Show tracebacks in the UI"
    )
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Browser session
    default_theme: str = Field(
        default="dark",
        pattern="^(dark|light)$",
        description="Theme used when none has been saved"
    )

    # Display
    currency_symbol: str = Field(
        default="$",
        description="Symbol prefixed to formatted amounts"
    )
    search_min_length: int = Field(
        default=2,
        ge=1,
        description="Minimum search term length before matching"
    )
    search_result_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum number of quick-search results"
    )


class Settings(BaseSettings):
    """
    Entry point to every settings section.

    Sections are built on access so a missing one only fails where it is used.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

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
    Cached settings root.

    Only the root is cached; sections re-read the environment on each access.
    """
    return Settings()


def validate_all_settings() -> dict[str, object]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid} plus an ``<name>_error``
    entry for every section that failed. Useful for startup checks.
    """
    results: dict[str, object] = {}

    settings = get_settings()

    sections = {
        "google_sheets": lambda: settings.google_sheets,
        "gemini": lambda: settings.gemini,
        "app": lambda: settings.app,
    }

    for name, load in sections.items():
        try:
            loaded = load()
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)
            continue

        if name == "gemini" and not loaded.is_configured:
            results[name] = False
            results[f"{name}_error"] = "GEMINI_API_KEY is not set"

    return results
