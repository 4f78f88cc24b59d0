"""
Configuration schema (``billing_config.schema``).

A single frozen dataclass holding every runtime setting of the billing back
office.  Parsed from YAML by ``billing_config.loader``; obtained at runtime
only through ``billing_config.get_active_config()``.
"""

from __future__ import annotations

from dataclasses import dataclass

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class BillingConfig:
    """Runtime settings.  Defaults match ``sets/default.yaml``."""

    database_url: str = "sqlite:///billing.db"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10
    pool_timeout: int = 30
    sqlite_busy_timeout: float = 30.0
    default_currency: str = "EUR"
    log_level: str = "INFO"
    max_retries: int = 3
    notes_max_length: int = 10_000
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )
        for name in ("pool_size", "max_overflow", "pool_timeout", "max_retries"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        if self.notes_max_length < 1:
            raise ValueError("notes_max_length must be >= 1")
        if self.sqlite_busy_timeout <= 0:
            raise ValueError("sqlite_busy_timeout must be > 0")

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")
