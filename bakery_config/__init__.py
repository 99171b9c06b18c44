"""
bakery_config -- single public entrypoint for runtime configuration.

``get_active_config()`` loads the shipped ``defaults.yaml``, merges an
optional override file on top, applies the ``DATABASE_URL`` and
``BAKERY_LOG_LEVEL`` environment variables and returns a validated,
frozen ``BakeryConfig``.  Every call emits a ``BAKERY_CONFIG_TRACE`` log
record carrying the configuration checksum.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from bakery_config.loader import (
    apply_env_overrides,
    compute_checksum,
    load_yaml_file,
    merge,
    parse_config,
)
from bakery_config.bridges import init_engine, init_logging
from bakery_config.schema import BakeryConfig, DatabaseConfig, LoggingConfig, StockConfig

_logger = logging.getLogger("bakery_kernel.config")

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(
    config_path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> BakeryConfig:
    """
    The public configuration entrypoint.

    Args:
        config_path: Optional YAML file merged over the defaults.
        env: Environment mapping (defaults to ``os.environ``).

    Raises:
        FileNotFoundError: ``config_path`` does not exist.
        ValueError: the merged configuration is invalid.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    if config_path is not None:
        data = merge(data, load_yaml_file(Path(config_path)))
    data = apply_env_overrides(data, os.environ if env is None else env)

    config = parse_config(data)
    _logger.info(
        "BAKERY_CONFIG_TRACE",
        extra={
            "trace_type": "BAKERY_CONFIG_TRACE",
            "checksum": config.checksum,
            "source": str(config_path) if config_path else "defaults",
            "dialect": "postgresql" if config.database.is_postgres else "sqlite",
        },
    )
    return config


__all__ = [
    "BakeryConfig",
    "DatabaseConfig",
    "LoggingConfig",
    "StockConfig",
    "compute_checksum",
    "init_engine",
    "init_logging",
    "get_active_config",
    "parse_config",
]
