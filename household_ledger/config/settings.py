"""
Configuration Management for Household Ledger

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CATEGORIES = (
    "Food,Transportation,Housing,Entertainment,Healthcare,Utilities,Shopping,Other"
)


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

    # One worksheet per collection
    transactions_sheet_name: str = Field(default="Transactions")
    budgets_sheet_name: str = Field(default="Budgets")
    assets_sheet_name: str = Field(default="Assets")
    liabilities_sheet_name: str = Field(default="Liabilities")
    recurring_rules_sheet_name: str = Field(default="RecurringRules")
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


class LedgerSettings(BaseSettings):
    """
    Engine behaviour settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="Application environment"
    )

    # View defaults
    rollover_enabled: bool = Field(
        default=True,
        description="Carry unspent/overspent budget into the next month"
    )
    default_person: str = Field(
        default="joint",
        pattern="^(joint|you|wife)$",
        description="Person scope selected when a session starts"
    )
    default_date_range: str = Field(
        default="this-month",
        pattern="^(this-month|last-month|three-months|year-to-date|custom)$",
        description="Dashboard date range selected when a session starts"
    )
    categories: str = Field(
        default=DEFAULT_CATEGORIES,
        description="Comma-separated list of spending categories offered in forms"
    )
    top_contributors: int = Field(
        default=3,
        ge=1,
        le=20,
        description="How many top contributors to show per budget line"
    )

    # CSV import limits
    max_csv_size_kb: int = Field(
        default=1024,
        ge=1,
        le=10240,
        description="Maximum accepted CSV upload size in KB"
    )

    @property
    def categories_list(self) -> list[str]:
        """Get categories as a list."""
        return [c.strip() for c in self.categories.split(",") if c.strip()]

    @property
    def max_csv_size_bytes(self) -> int:
        return self.max_csv_size_kb * 1024


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
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()


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

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.ledger
        results["ledger"] = True
    except Exception as e:
        results["ledger"] = False
        results["ledger_error"] = str(e)

    return results
