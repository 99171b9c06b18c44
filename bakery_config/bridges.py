"""
Bridges from ``BakeryConfig`` to kernel infrastructure.

The kernel never imports ``bakery_config``; these helpers hand it plain
values instead.
"""

from __future__ import annotations

from sqlalchemy.engine import Engine

from bakery_config.schema import BakeryConfig
from bakery_kernel.db.engine import init_engine_from_url
from bakery_kernel.logging_config import configure_logging


def init_logging(config: BakeryConfig) -> None:
    configure_logging(level=config.logging.level_number)


def init_engine(config: BakeryConfig) -> Engine:
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )
