"""Configuration settings for TickVault."""

import re
from datetime import date
from pathlib import Path
from typing import Literal

from pydantic import SecretStr, computed_field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from tickvault.catalog import DEFAULT_SYMBOLS
from tickvault.exceptions import ConfigurationError

_SYMBOL_PATTERN = re.compile(r"^[a-z][a-z0-9]*$")


class Settings(BaseSettings):
    """Application configuration settings using Pydantic BaseSettings."""

    # Storage connection (MySQL by default, any SQLAlchemy URL via database_url)
    db_host: str = ""
    db_port: int = 3306
    db_user: str = ""
    db_password: SecretStr = SecretStr("")
    db_name: str = ""
    db_driver: str = "mysql+pymysql"
    database_url: SecretStr | None = None  # Full override, e.g. for Postgres or SQLite
    db_pool_size: int = 10
    db_max_overflow: int = 0

    # Catalog and date range (both bounds inclusive)
    symbols: list[str] = list(DEFAULT_SYMBOLS)
    start_date: date = date(2020, 1, 1)
    end_date: date = date(2025, 4, 25)

    # Dukascopy fetch pacing
    fetch_base_url: str = "https://datafeed.dukascopy.com/datafeed"
    fetch_batch_size: int = 20  # Hourly files downloaded per batch
    fetch_pause_ms: int = 500  # Pause between batches
    fetch_timeout: float = 30.0
    fetch_max_retries: int = 3
    volume_units: Literal["units", "thousands", "millions"] = "units"
    decimal_factors: dict[str, int] = {}  # Per-symbol price factor overrides

    # Writes
    db_chunk_size: int = 1000  # Records per upsert statement
    hold_checkpoint_on_failure: bool = True

    # Local filesystem
    data_dir: str = "."
    checkpoint_file: str = "checkpoint.json"
    log_dir: str = "logs"
    log_tail_lines: int = 100
    show_progress: bool = True

    # Dashboard
    dashboard_host: str = "0.0.0.0"
    dashboard_port: int = 3000

    @computed_field  # type: ignore[prop-decorator]
    @property
    def checkpoint_path(self) -> str:
        """Local path for checkpoint file."""
        return str(Path(self.data_dir) / self.checkpoint_file)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def log_path(self) -> str:
        """Local directory holding per-run log files."""
        return str(Path(self.data_dir) / self.log_dir)

    @property
    def sqlalchemy_url(self) -> str:
        """SQLAlchemy connection URL assembled from the connection parameters."""
        if self.database_url is not None:
            return self.database_url.get_secret_value()
        password = self.db_password.get_secret_value()
        return (
            f"{self.db_driver}://{self.db_user}:{password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    def require_database(self) -> None:
        """Raise ConfigurationError if connection parameters are missing.

        An explicit ``database_url`` satisfies the requirement on its own.
        """
        if self.database_url is not None:
            return

        missing = [
            name
            for name, value in (
                ("DB_HOST", self.db_host),
                ("DB_USER", self.db_user),
                ("DB_PASSWORD", self.db_password.get_secret_value()),
                ("DB_NAME", self.db_name),
            )
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Missing required database settings: {', '.join(missing)}"
            )

    @field_validator("database_url", mode="before")
    @classmethod
    def _blank_url_is_unset(_cls, value):
        """An empty DATABASE_URL falls back to the DB_* parameters."""
        if isinstance(value, SecretStr):
            value = value.get_secret_value()
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator(
        "fetch_batch_size",
        "db_chunk_size",
        "db_pool_size",
        "log_tail_lines",
    )
    @classmethod
    def _ensure_positive(_cls, value: int, info) -> int:
        """Ensure sizes stay within safe bounds."""
        if value < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return value

    @field_validator("fetch_pause_ms", "fetch_max_retries", "db_max_overflow")
    @classmethod
    def _ensure_not_negative(_cls, value: int, info) -> int:
        if value < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return value

    @field_validator("symbols")
    @classmethod
    def _validate_symbols(_cls, value: list[str]) -> list[str]:
        """Symbols become table names, so keep them to plain identifiers."""
        if not value:
            raise ValueError("symbols must contain at least one symbol")
        for symbol in value:
            if not _SYMBOL_PATTERN.match(symbol):
                raise ValueError(f"invalid symbol {symbol!r} (lowercase alphanumeric only)")
        if len(set(value)) != len(value):
            raise ValueError("symbols must be unique")
        return value

    @model_validator(mode="after")
    def _validate_date_range(self) -> "Settings":
        if self.start_date > self.end_date:
            raise ValueError(
                f"start_date {self.start_date} is after end_date {self.end_date}"
            )
        return self

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
