# backend/foliotrack/config.py
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- DATABASE_URL: Holdings store connection string
- REFERENCE_CURRENCY: Currency all aggregate figures are reported in
- MARKET_DATA_*: Quote provider tuning (timeout, concurrency)

Environment-specific behavior:
- test: Uses an in-memory SQLite database unless DATABASE_URL is set
- development/production: Fall back to a local SQLite file

Usage:
    from foliotrack.config import settings

    reference = settings.reference_currency
"""
import re
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find the .env file in project root (parent of backend/)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _BACKEND_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"

_CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - DATABASE_URL: SQLAlchemy connection string for the holdings store
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: "text" or "json" (default: "text")
        - REFERENCE_CURRENCY: Reporting currency (default: "EUR")

    Market data settings (optional, with sensible defaults):
        - YAHOO_TIMEOUT: Request timeout in seconds (default: 10)
        - MARKET_DATA_MAX_CONCURRENCY: Parallel provider calls (default: 8)
        - HISTORY_LOOKBACK_DAYS: Extra days fetched before a window start
          so the first days can be forward-filled (default: 7)
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    database_url: str | None = Field(
        default=None,
        description="Holdings store connection string"
    )

    reference_currency: str = Field(
        default="EUR",
        description="Currency all aggregate values are normalized into"
    )

    # =========================================================================
    # MARKET DATA
    # =========================================================================
    yahoo_timeout: int = Field(
        default=10,
        ge=1,
        le=120,
        description="Yahoo Finance request timeout in seconds"
    )
    market_data_max_concurrency: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum concurrent quote/history/rate lookups"
    )
    history_lookback_days: int = Field(
        default=7,
        ge=0,
        le=31,
        description="Days of price history fetched before a window start"
    )

    app_name: str = "Foliotrack"
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("reference_currency")
    @classmethod
    def normalize_reference_currency(cls, v: str) -> str:
        """Normalize to an uppercase ISO 4217 code."""
        normalized = v.strip().upper()
        if not _CURRENCY_PATTERN.match(normalized):
            raise ValueError(
                f"REFERENCE_CURRENCY must be a 3-letter currency code, got: '{v}'"
            )
        return normalized

    @model_validator(mode="after")
    def validate_database_config(self) -> "Settings":
        """
        Fill in the database URL based on environment.

        Rules:
        - test: in-memory SQLite
        - development/production: local SQLite file next to the project
        """
        if self.database_url is None:
            if self.environment == "test":
                object.__setattr__(self, "database_url", "sqlite:///:memory:")
            else:
                default_path = _PROJECT_ROOT / "foliotrack.db"
                object.__setattr__(self, "database_url", f"sqlite:///{default_path}")
        return self


# Create single instance
settings = Settings()
