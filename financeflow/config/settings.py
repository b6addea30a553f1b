"""
FinanceFlow settings.

Each concern reads its own environment prefix; the root Settings object
hands them out lazily so the app still starts in memory when the Google
Sheets variables are absent.
"""

import warnings
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GoogleSheetsSettings(BaseSettings):
    """Where the ledger worksheets live."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        extra="ignore"
    )

    credentials_path: str = Field(
        ...,
        description="Service account key file used to reach the ledger spreadsheet"
    )
    spreadsheet_id: str = Field(
        ...,
        description="Spreadsheet holding the wallet, category, transaction and preference tabs"
    )

    # Worksheet names within the spreadsheet
    wallets_sheet_name: str = Field(default="Wallets")
    categories_sheet_name: str = Field(default="Categories")
    transactions_sheet_name: str = Field(default="Transactions")
    preferences_sheet_name: str = Field(default="Preferences")
    audit_sheet_name: str = Field(default="AuditLog")

    @field_validator('credentials_path')
    @classmethod
    def check_key_file(cls, value: str) -> str:
        # The key may be mounted after start-up, so only warn.
        if not Path(value).exists():
            warnings.warn(f"No service account key at {value}; Sheets storage will fail to connect.")
        return value


class AppSettings(BaseSettings):
    """Ledger behaviour and display defaults, read from the environment and .env."""

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
        description="Show raw errors in the UI"
    )
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Where ledger data is kept"
    )

    # Display
    default_currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="Currency assigned to new accounts"
    )
    recent_transactions_limit: int = Field(
        default=5,
        ge=1,
        le=50,
        description="How many transactions the home screen lists"
    )
    quick_add_category_limit: int = Field(
        default=8,
        ge=0,
        le=20,
        description="How many expense categories get a quick-add button"
    )
    top_category_count: int = Field(
        default=3,
        ge=1,
        le=10,
        description="How many top expense categories analytics highlights"
    )

    # Validation thresholds
    max_transaction_amount: float = Field(
        default=10_000_000.0,
        description="Amounts above this get a 'please double-check' warning"
    )
    future_date_tolerance_days: int = Field(
        default=1,
        ge=0,
        description="How many days in the future a transaction date can be without a warning"
    )


class Settings(BaseSettings):
    """Entry point handing out the per-concern settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Sub-settings are loaded lazily so the app can start with only
    # part of the configuration present (e.g. no Google credentials).

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Cached for the process; get_settings.cache_clear() re-reads the environment."""
    return Settings()


def validate_all_settings() -> dict:
    """
    Try to load every settings group.

    Maps each group name to whether it loaded; a failed group also gets
    a "<name>_error" entry. create_app_components uses the
    "google_sheets" flag to decide between Sheets and in-memory storage.
    """
    checks = {}
    settings = get_settings()

    try:
        settings.google_sheets
        checks["google_sheets"] = True
    except Exception as exc:
        checks["google_sheets"] = False
        checks["google_sheets_error"] = str(exc)

    try:
        settings.app
        checks["app"] = True
    except Exception as exc:
        checks["app"] = False
        checks["app_error"] = str(exc)

    return checks
