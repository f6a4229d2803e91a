"""
Configuration Management for Pocketbook

Every setting is read from the environment through pydantic-settings.
The ledger limits live next to the storage settings so a deployment
can see every knob that changes how balances are enforced.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Rules applied by the ledger consistency engine."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        extra="ignore"
    )

    max_wallet_balance: Decimal = Field(
        default=Decimal("1e9"),
        gt=0,
        description="Largest absolute wallet balance accepted after a mutation"
    )
    settlement_category: str = Field(
        default="Settlement",
        description="Category given to settle-up transactions"
    )
    split_description_prefix: str = Field(
        default="Split: ",
        description="Prefix on the payer's expense created by a split"
    )


class GoogleSheetsSettings(BaseSettings):
    """Where the Google Sheets backend keeps its worksheets."""

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

    # One worksheet per record kind
    users_sheet_name: str = Field(default="Users")
    transactions_sheet_name: str = Field(default="Transactions")
    friends_sheet_name: str = Field(default="Friends")
    splits_sheet_name: str = Field(default="Splits")
    audit_sheet_name: str = Field(
        default="AuditLog",
        description="Name of the sheet for audit logs"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: str) -> str:
        if not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "The google_sheets backend will fail to connect until it does."
            )
        return v


class AppSettings(BaseSettings):
    """Process-wide settings: environment and which store to build."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    app_environment: str = Field(
        default="development",
        description="development, staging or production"
    )
    debug_mode: bool = Field(
        default=False,
        description="Verbose logging"
    )
    storage_backend: str = Field(
        default="memory",
        pattern="^(memory|google_sheets)$",
        description="Which ledger store to build at startup"
    )


class Settings(BaseSettings):
    """Root settings container."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Loaded lazily so the in-memory backend runs without Sheets credentials

    @property
    def ledger(self) -> LedgerSettings:
        return LedgerSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """Cached settings root; get_settings.cache_clear() forces a reload."""
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Try to load each settings group.

    Returns {group: loaded}, plus "<group>_error" for every group that failed.
    """
    results = {}
    settings = get_settings()

    for name in ("ledger", "google_sheets", "app"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
