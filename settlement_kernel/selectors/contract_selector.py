"""
Module: settlement_kernel.selectors.contract_selector
Responsibility: Ownership-scoped reads over contracts and jobs, and the
    outstanding-debt aggregate consumed by the deposit guard.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Every listing is scoped by the acting profile's ownership column,
      chosen through ``owner_column(role)``; a caller never sees a contract
      or job on the other side of someone else's agreement.
    - "Active" means status != terminated everywhere in this module.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from settlement_kernel.domain.dtos import ActingProfile, ContractInfo, JobInfo
from settlement_kernel.domain.roles import owner_column
from settlement_kernel.exceptions import ContractNotFoundError
from settlement_kernel.models import Contract, ContractStatus, Job
from settlement_kernel.selectors.base import BaseSelector, contract_to_dto, job_to_dto


class ContractSelector(BaseSelector):
    """Reads contracts and jobs on behalf of an acting profile."""

    def get_contract(self, acting: ActingProfile, contract_id: UUID) -> ContractInfo:
        """
        Get a contract owned by the acting profile.

        Raises:
            ContractNotFoundError: If the contract does not exist or the
                acting profile is not on the owning side of it.
            ForbiddenError: If the acting role owns no side of a contract.
        """
        owner = Contract.owner_attribute(owner_column(acting.role, "get_contract"))
        stmt = select(Contract).where(
            Contract.id == contract_id,
            owner == acting.id,
        )
        contract = self.session.execute(stmt).scalar_one_or_none()
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        return contract_to_dto(contract)

    def list_active_contracts(self, acting: ActingProfile) -> list[ContractInfo]:
        """List the acting profile's non-terminated contracts."""
        owner = Contract.owner_attribute(owner_column(acting.role, "list_active_contracts"))
        stmt = (
            select(Contract)
            .where(
                owner == acting.id,
                Contract.status != ContractStatus.TERMINATED,
            )
            .order_by(Contract.created_at, Contract.id)
        )
        return [contract_to_dto(c) for c in self.session.execute(stmt).scalars()]

    def list_unpaid_jobs(self, acting: ActingProfile) -> list[JobInfo]:
        """List unpaid jobs under the acting profile's active contracts."""
        owner = Contract.owner_attribute(owner_column(acting.role, "list_unpaid_jobs"))
        stmt = (
            select(Job)
            .join(Contract, Job.contract_id == Contract.id)
            .where(
                Job.paid.is_(False),
                Contract.status != ContractStatus.TERMINATED,
                owner == acting.id,
            )
            .order_by(Job.created_at, Job.id)
        )
        return [job_to_dto(j) for j in self.session.execute(stmt).scalars()]

    def total_unpaid(self, client_id: UUID) -> Decimal:
        """
        Sum the price of unpaid jobs the client owes on active contracts.

        Returns Decimal("0") when there are none.
        """
        stmt = (
            select(func.sum(Job.price))
            .join(Contract, Job.contract_id == Contract.id)
            .where(
                Job.paid.is_(False),
                Contract.status != ContractStatus.TERMINATED,
                Contract.client_id == client_id,
            )
        )
        total = self.session.execute(stmt).scalar_one_or_none()
        if total is None:
            return Decimal("0")
        return Decimal(str(total)) if not isinstance(total, Decimal) else total
