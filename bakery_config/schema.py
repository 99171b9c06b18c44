"""
Configuration Schema (``bakery_config.schema``).

Frozen dataclasses for the runtime settings.  Every dataclass validates
itself in ``__post_init__`` and raises ``ValueError`` on bad values, so an
invalid configuration fails at load time rather than at first use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings.  Pool settings apply to PostgreSQL only."""

    url: str = "sqlite:///bakery.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800

    def __post_init__(self):
        if not self.url:
            raise ValueError("database.url is required")
        if self.pool_size < 1:
            raise ValueError("database.pool_size must be at least 1")
        if self.max_overflow < 0:
            raise ValueError("database.max_overflow cannot be negative")

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith("postgresql")


@dataclass(frozen=True)
class StockConfig:
    """Stock status thresholds."""

    # Fraction of min_level at or below which an item is critical
    critical_ratio: Decimal = Decimal("0.5")

    def __post_init__(self):
        if not Decimal("0") <= self.critical_ratio <= Decimal("1"):
            raise ValueError(
                f"stock.critical_ratio must be between 0 and 1, got {self.critical_ratio}"
            )


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"

    def __post_init__(self):
        if self.level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"logging.level must be one of {sorted(VALID_LOG_LEVELS)}, got '{self.level}'")

    @property
    def level_number(self) -> int:
        return logging.getLevelName(self.level.upper())


@dataclass(frozen=True)
class BakeryConfig:
    """The complete runtime configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    stock: StockConfig = field(default_factory=StockConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    checksum: str = ""
