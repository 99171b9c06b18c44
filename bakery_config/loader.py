"""
Configuration Loader (``bakery_config.loader``).

Responsibility
--------------
Loads YAML files and parses them into ``bakery_config.schema`` dataclasses.
Runtime callers use ``bakery_config.get_active_config()`` instead.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from bakery_config.schema import BakeryConfig, DatabaseConfig, LoggingConfig, StockConfig

ENV_DATABASE_URL = "DATABASE_URL"
ENV_LOG_LEVEL = "BAKERY_LOG_LEVEL"


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, name: str) -> Decimal:
    if isinstance(value, float):
        value = str(value)
    try:
        return Decimal(value)
    except (InvalidOperation, TypeError, ValueError) as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


def _section(data: Mapping[str, Any], name: str, allowed: set[str]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, Mapping):
        raise ValueError(f"'{name}' must be a mapping")
    unknown = set(section) - allowed
    if unknown:
        raise ValueError(f"unknown keys in '{name}': {sorted(unknown)}")
    return dict(section)


def merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into ``base`` (mappings merge, other values replace)."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env_overrides(data: Mapping[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    """Apply DATABASE_URL and BAKERY_LOG_LEVEL on top of parsed YAML."""
    overrides: dict[str, Any] = {}
    if env.get(ENV_DATABASE_URL):
        overrides["database"] = {"url": env[ENV_DATABASE_URL]}
    if env.get(ENV_LOG_LEVEL):
        overrides["logging"] = {"level": env[ENV_LOG_LEVEL]}
    return merge(data, overrides)


def parse_config(data: Mapping[str, Any]) -> BakeryConfig:
    """
    Parse a configuration dict into a ``BakeryConfig``.

    Raises:
        ValueError: unknown sections or keys, or values failing validation.
    """
    unknown = set(data) - {"database", "stock", "logging"}
    if unknown:
        raise ValueError(f"unknown configuration sections: {sorted(unknown)}")

    database = _section(
        data,
        "database",
        {"url", "echo", "pool_size", "max_overflow", "pool_timeout", "pool_recycle"},
    )
    stock = _section(data, "stock", {"critical_ratio"})
    logging_section = _section(data, "logging", {"level"})

    if "critical_ratio" in stock:
        stock["critical_ratio"] = parse_decimal(stock["critical_ratio"], "stock.critical_ratio")

    return BakeryConfig(
        database=DatabaseConfig(**database),
        stock=StockConfig(**stock),
        logging=LoggingConfig(**logging_section),
        checksum=compute_checksum(dict(data)),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization; identical data, identical checksum."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
