"""
Configuration Management for Ledgerbook

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Tolerances, matcher weights and import limits are read from one place
so the stores, reports and matcher agree on the same numbers.
"""

from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReconciliationSettings(BaseSettings):
    """Bank statement matcher configuration."""

    model_config = SettingsConfigDict(
        env_prefix="RECONCILIATION_",
        extra="ignore"
    )

    amount_weight: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        description="Weight of the amount score"
    )
    date_weight: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Weight of the date proximity score"
    )
    description_weight: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Weight of the description similarity score"
    )
    date_penalty_per_day: float = Field(
        default=33.33,
        gt=0.0,
        description="Points lost per day between statement and voucher date"
    )
    min_token_length: int = Field(
        default=3,
        ge=1,
        description="Shortest word considered when comparing descriptions"
    )
    min_accuracy: float = Field(
        default=40.0,
        ge=0.0,
        le=100.0,
        description="Candidates scoring below this are discarded"
    )

    @model_validator(mode='after')
    def validate_weights(self) -> 'ReconciliationSettings':
        total = self.amount_weight + self.date_weight + self.description_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Matcher weights must add up to 1.0 (got {total})")
        return self


class ImportSettings(BaseSettings):
    """Bank statement file import configuration."""

    model_config = SettingsConfigDict(
        env_prefix="IMPORT_",
        extra="ignore"
    )

    max_upload_size_mb: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Maximum statement file size in MB"
    )
    supported_file_formats: str = Field(
        default="csv,xlsx,xlsm",
        description="Comma-separated list of supported statement formats"
    )
    date_formats: str = Field(
        default="%Y-%m-%d,%d/%m/%Y,%d-%m-%Y,%d.%m.%Y,%d/%m/%y,%d-%b-%Y,%d %b %Y",
        description="Comma-separated strptime formats tried in order"
    )
    csv_encoding: str = Field(
        default="utf-8-sig",
        description="Encoding used to decode CSV statements"
    )

    @property
    def supported_formats_list(self) -> list[str]:
        """Get supported formats as a list."""
        return [fmt.strip().lower() for fmt in self.supported_file_formats.split(",")]

    @property
    def date_formats_list(self) -> list[str]:
        return [fmt.strip() for fmt in self.date_formats.split(",") if fmt.strip()]

    @property
    def max_upload_size_bytes(self) -> int:
        """Get max upload size in bytes."""
        return self.max_upload_size_mb * 1024 * 1024


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEDGERBOOK_",
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
        description="Minimum level written to the structured log"
    )

    # Accounting rules
    balance_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Largest debit/credit difference still treated as balanced"
    )
    base_currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="Currency assigned to ledgers created without one"
    )
    future_date_tolerance_days: int = Field(
        default=7,
        ge=0,
        description="How many days in the future a voucher may be dated without a warning"
    )
    report_cache_size: int = Field(
        default=32,
        ge=1,
        description="Trial balances kept per store version before the oldest is evicted"
    )

    # Mock service behaviour
    simulated_latency_ms: int = Field(
        default=0,
        ge=0,
        le=5000,
        description="Artificial delay applied to every store call"
    )

    # Audit identity recorded on each operation
    audit_user_id: str = Field(default="user1")
    audit_user_name: str = Field(default="Admin User")

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator('base_currency')
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


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

    # Sub-settings are loaded lazily to allow partial configuration

    @property
    def app(self) -> AppSettings:
        return AppSettings()

    @property
    def reconciliation(self) -> ReconciliationSettings:
        return ReconciliationSettings()

    @property
    def imports(self) -> ImportSettings:
        return ImportSettings()


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

    for name in ("app", "reconciliation", "imports"):
        try:
            getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
