"""
Configuration Management for Expense Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see which storage backends exist and
ensures all required configuration is validated at startup.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Local file storage configuration (used when nobody is logged in)."""

    model_config = SettingsConfigDict(
        env_prefix="LOCAL_STORAGE_",
        extra="ignore"
    )

    path: str = Field(
        default="expense_tracker_data.json",
        description="Path to the local JSON document"
    )

    # Fixed keys inside the local document
    expenses_key: str = Field(
        default="expenses",
        description="Key holding the expense collection"
    )
    budget_key: str = Field(
        default="monthlyBudget",
        description="Key holding the monthly budget"
    )
    income_key: str = Field(
        default="monthlyIncome",
        description="Key holding the monthly income"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets remote storage configuration."""

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
    expenses_sheet_name: str = Field(
        default="Expenses",
        description="Name of the sheet for expense records"
    )
    users_sheet_name: str = Field(
        default="Users",
        description="Name of the sheet for per-user budget and income"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before logging in."
            )
        return v


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
    log_level: str = Field(
        default="INFO",
        description="Minimum level for local structured logs"
    )

    # Query defaults
    default_sort: str = Field(
        default="name-asc",
        description="Sort key applied to a fresh filter state"
    )
    top_expenses_limit: int = Field(
        default=8,
        ge=1,
        le=100,
        description="How many entries the top expenses list shows"
    )

    # Budget colouring thresholds (percent of budget used)
    budget_warning_threshold: int = Field(
        default=70,
        ge=0,
        le=100,
        description="Percentage at which the budget turns to 'warning'"
    )
    budget_danger_threshold: int = Field(
        default=90,
        ge=0,
        le=100,
        description="Percentage at which the budget turns to 'danger'"
    )

    # Validation thresholds
    max_expense_amount: float = Field(
        default=10_000_000.0,
        description="Maximum reasonable expense amount (for sanity checking)"
    )
    max_name_length: int = Field(
        default=200,
        description="Maximum length of an expense name"
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

    # Note: These are loaded lazily to allow partial configuration.
    # Google Sheets is only needed once somebody logs in.

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

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

    try:
        _ = settings.storage
        results["storage"] = True
    except Exception as e:
        results["storage"] = False
        results["storage_error"] = str(e)

    try:
        _ = settings.google_sheets
        results["google_sheets"] = True
    except Exception as e:
        results["google_sheets"] = False
        results["google_sheets_error"] = str(e)

    try:
        _ = settings.app
        results["app"] = True
    except Exception as e:
        results["app"] = False
        results["app_error"] = str(e)

    return results
