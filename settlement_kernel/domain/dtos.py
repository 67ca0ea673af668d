"""
Immutable DTOs returned across the kernel boundary.

Services and selectors never hand ORM entities to callers; they return these
frozen dataclasses so that a result stays valid after its session closes.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from settlement_kernel.domain.roles import ProfileRole


@dataclass(frozen=True)
class ActingProfile:
    """The resolved caller: who is acting and in which role."""

    id: UUID
    role: ProfileRole


@dataclass(frozen=True)
class ProfileInfo:
    id: UUID
    first_name: str
    last_name: str
    profession: str
    balance: Decimal
    role: ProfileRole

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class ContractInfo:
    id: UUID
    terms: str
    status: str
    client_id: UUID
    contractor_id: UUID

    @property
    def is_active(self) -> bool:
        return self.status != "terminated"


@dataclass(frozen=True)
class JobInfo:
    id: UUID
    description: str
    price: Decimal
    paid: bool
    payment_date: datetime | None
    contract_id: UUID


@dataclass(frozen=True)
class ClientTotal:
    """One row of the best-clients report."""

    client_id: UUID
    full_name: str
    total_paid: Decimal
