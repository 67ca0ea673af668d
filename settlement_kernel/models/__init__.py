"""Domain models for the settlement kernel."""

from settlement_kernel.models.contract import Contract, ContractStatus
from settlement_kernel.models.job import Job
from settlement_kernel.models.profile import Profile

__all__ = [
    "Contract",
    "ContractStatus",
    "Job",
    "Profile",
]
