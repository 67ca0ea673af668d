"""Services for the settlement kernel (write side)."""

from settlement_kernel.services.deposit_service import (
    DEFAULT_MAX_RATIO_OF_UNPAID,
    DepositService,
)
from settlement_kernel.services.identity_service import IdentityService
from settlement_kernel.services.settlement_service import SettlementService

__all__ = [
    "DEFAULT_MAX_RATIO_OF_UNPAID",
    "DepositService",
    "IdentityService",
    "SettlementService",
]
