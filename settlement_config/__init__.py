"""
settlement_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides ``get_active_config()``, which resolves the YAML file to read,
    applies environment overrides, validates every value, and returns a
    frozen ``SettlementConfig``.

Architecture position:
    Configuration -- sits beside ``settlement_kernel`` and below
    ``settlement_services``.  The kernel never imports from this package;
    the orchestrator passes individual values (deposit ratio, reporting
    limit) down into kernel services.

Failure modes:
    - ``ConfigurationError`` -- missing file, malformed YAML, or an invalid
      value.

Audit relevance:
    Every successful ``get_active_config()`` call emits a ``config_loaded``
    log entry with the source path and checksum of the effective
    configuration.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from settlement_config.loader import (
    ENV_CONFIG_PATH,
    apply_env_overrides,
    load_yaml_file,
    parse_config,
)
from settlement_config.schema import (
    DatabaseConfig,
    DepositConfig,
    LoggingConfig,
    ReportingConfig,
    SettlementConfig,
)
from settlement_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> SettlementConfig:
    """The public configuration entrypoint.

    Resolution order for the file: explicit ``path``, then the
    ``SETTLEMENT_CONFIG`` environment variable, then the packaged
    ``sets/default.yaml``.  ``DATABASE_URL`` and ``SETTLEMENT_LOG_LEVEL``
    override the corresponding file values.

    Raises:
        ConfigurationError: If the file cannot be read or a value is invalid.
    """
    env = os.environ if environ is None else environ
    source = Path(path or env.get(ENV_CONFIG_PATH) or DEFAULT_CONFIG_PATH)

    data = apply_env_overrides(load_yaml_file(source), env)
    config = parse_config(data, source=str(source))

    _logger.info(
        "config_loaded",
        extra={
            "source": config.source,
            "checksum": config.checksum,
            "deposit_ratio": config.deposit.max_ratio_of_unpaid,
            "reporting_require_admin": config.reporting.require_admin,
        },
    )
    return config


__all__ = [
    "DEFAULT_CONFIG_PATH",
    "DatabaseConfig",
    "DepositConfig",
    "LoggingConfig",
    "ReportingConfig",
    "SettlementConfig",
    "get_active_config",
]
