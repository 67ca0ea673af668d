"""
Configuration Loader (``settlement_config.loader``).

Responsibility
--------------
Loads the YAML configuration file, applies environment overrides, and parses
the result into the frozen dataclasses of ``settlement_config.schema``.  The
public runtime entry point is ``settlement_config.get_active_config()``.

Invariants enforced
-------------------
* Every invalid value raises ``ConfigurationError`` naming the offending key;
  unknown sections are rejected rather than ignored.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the effective
  (post-override) configuration.

Failure modes
-------------
* Missing YAML file  -> ``ConfigurationError``.
* Malformed YAML  -> ``ConfigurationError`` wrapping ``yaml.YAMLError``.
"""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from settlement_config.schema import (
    DatabaseConfig,
    DepositConfig,
    LoggingConfig,
    ReportingConfig,
    SettlementConfig,
)
from settlement_kernel.exceptions import ConfigurationError

ENV_CONFIG_PATH = "SETTLEMENT_CONFIG"
ENV_DATABASE_URL = "DATABASE_URL"
ENV_LOG_LEVEL = "SETTLEMENT_LOG_LEVEL"

_KNOWN_SECTIONS = frozenset({"database", "deposit", "reporting", "logging"})
_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        ConfigurationError: if the file is missing, unreadable, malformed,
            or its top level is not a mapping.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigurationError("path", f"file not found: {path}") from None
    except yaml.YAMLError as exc:
        raise ConfigurationError("path", f"malformed YAML in {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("path", f"top level of {path} must be a mapping")
    return data


def apply_env_overrides(
    data: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Return a copy of data with DATABASE_URL / SETTLEMENT_LOG_LEVEL applied."""
    env = os.environ if environ is None else environ
    merged = {
        key: dict(value) if isinstance(value, dict) else value
        for key, value in data.items()
    }
    if env.get(ENV_DATABASE_URL):
        merged.setdefault("database", {})
        merged["database"]["url"] = env[ENV_DATABASE_URL]
    if env.get(ENV_LOG_LEVEL):
        merged.setdefault("logging", {})
        merged["logging"]["level"] = env[ENV_LOG_LEVEL]
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 over the canonical JSON form of data."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(name, "must be a mapping")
    return value


def _int(section: dict[str, Any], key: str, default: int, minimum: int) -> int:
    value = section.get(key, default)
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationError(key, f"expected an integer, got {value!r}")
    if value < minimum:
        raise ConfigurationError(key, f"must be >= {minimum}, got {value}")
    return value


def _bool(section: dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigurationError(key, f"expected true or false, got {value!r}")
    return value


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    section = _section(data, "database")
    defaults = DatabaseConfig()
    url = section.get("url", defaults.url)
    if not isinstance(url, str) or not url.strip():
        raise ConfigurationError("database.url", "must be a non-empty string")
    return DatabaseConfig(
        url=url,
        echo=_bool(section, "echo", defaults.echo),
        pool_size=_int(section, "pool_size", defaults.pool_size, 1),
        max_overflow=_int(section, "max_overflow", defaults.max_overflow, 0),
        pool_timeout=_int(section, "pool_timeout", defaults.pool_timeout, 0),
        pool_recycle=_int(section, "pool_recycle", defaults.pool_recycle, -1),
    )


def parse_deposit(data: dict[str, Any]) -> DepositConfig:
    """
    Parse the deposit section.

    ``max_ratio_of_unpaid`` may be written as a string, an integer, or a YAML
    float; it is converted through its string form so 0.25 stays exact.
    """
    section = _section(data, "deposit")
    raw = section.get("max_ratio_of_unpaid", DepositConfig().max_ratio_of_unpaid)
    if isinstance(raw, bool):
        raise ConfigurationError("deposit.max_ratio_of_unpaid", f"not a number: {raw!r}")
    try:
        ratio = Decimal(str(raw))
    except InvalidOperation:
        raise ConfigurationError(
            "deposit.max_ratio_of_unpaid", f"not a number: {raw!r}"
        ) from None
    if not ratio.is_finite() or ratio <= 0 or ratio > 1:
        raise ConfigurationError(
            "deposit.max_ratio_of_unpaid", f"must be in (0, 1], got {ratio}"
        )
    return DepositConfig(max_ratio_of_unpaid=ratio)


def parse_reporting(data: dict[str, Any]) -> ReportingConfig:
    section = _section(data, "reporting")
    defaults = ReportingConfig()
    return ReportingConfig(
        default_best_clients_limit=_int(
            section, "default_best_clients_limit", defaults.default_best_clients_limit, 1
        ),
        require_admin=_bool(section, "require_admin", defaults.require_admin),
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    section = _section(data, "logging")
    level = str(section.get("level", LoggingConfig().level)).upper()
    if level not in _LOG_LEVELS:
        raise ConfigurationError("logging.level", f"unknown level {level!r}")
    return LoggingConfig(level=level)


def parse_config(
    data: dict[str, Any], source: str = "<defaults>"
) -> SettlementConfig:
    """
    Parse a configuration dict into a SettlementConfig.

    Preconditions:
        - Environment overrides, if any, are already applied.
    Postconditions:
        - ``checksum`` is computed over data exactly as given.
    Raises:
        ConfigurationError: on an unknown section or any invalid value.
    """
    unknown = set(data) - _KNOWN_SECTIONS
    if unknown:
        raise ConfigurationError(
            sorted(unknown)[0], "unknown configuration section"
        )
    return SettlementConfig(
        database=parse_database(data),
        deposit=parse_deposit(data),
        reporting=parse_reporting(data),
        logging=parse_logging(data),
        source=source,
        checksum=compute_checksum(data),
    )
