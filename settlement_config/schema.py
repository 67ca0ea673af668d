"""
SettlementConfig schema.

Frozen dataclasses parsed from the YAML configuration by the loader.  Every
field has a default so a partial file (or no file at all) still yields a
complete configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``create_database``."""

    url: str = "sqlite:///settlement.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class DepositConfig:
    """Deposit guard: ceiling as a fraction of outstanding debt."""

    max_ratio_of_unpaid: Decimal = Decimal("0.25")


@dataclass(frozen=True)
class ReportingConfig:
    default_best_clients_limit: int = 2
    require_admin: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class SettlementConfig:
    """Complete runtime configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    deposit: DepositConfig = field(default_factory=DepositConfig)
    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: str = "<defaults>"
    checksum: str = ""
