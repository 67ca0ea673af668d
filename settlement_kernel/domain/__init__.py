"""Pure domain layer: roles, access policy, clock, and DTOs."""

from settlement_kernel.domain.access_policy import AccessPolicy, Operation, check_access
from settlement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from settlement_kernel.domain.dtos import (
    ActingProfile,
    ClientTotal,
    ContractInfo,
    JobInfo,
    ProfileInfo,
)
from settlement_kernel.domain.roles import OwnerColumn, ProfileRole, owner_column

__all__ = [
    "AccessPolicy",
    "ActingProfile",
    "ClientTotal",
    "Clock",
    "ContractInfo",
    "DeterministicClock",
    "JobInfo",
    "Operation",
    "OwnerColumn",
    "ProfileInfo",
    "ProfileRole",
    "SystemClock",
    "check_access",
    "owner_column",
]
