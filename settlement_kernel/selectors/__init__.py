"""Read-only selectors (query side)."""

from settlement_kernel.selectors.base import BaseSelector
from settlement_kernel.selectors.contract_selector import ContractSelector
from settlement_kernel.selectors.report_selector import (
    DEFAULT_BEST_CLIENTS_LIMIT,
    ReportSelector,
)

__all__ = [
    "BaseSelector",
    "ContractSelector",
    "DEFAULT_BEST_CLIENTS_LIMIT",
    "ReportSelector",
]
