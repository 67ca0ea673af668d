"""
Module: settlement_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors, plus
    the ORM -> DTO conversions shared by selectors and services.
Architecture position: Kernel > Selectors.  May import from db/, models/ and
    domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but MUST
      NOT call session.add(), session.delete(), session.commit(), or
      session.flush().
    - DTO return convention: selectors return frozen dataclasses, never ORM
      instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC

from sqlalchemy.orm import Session

from settlement_kernel.db.types import ensure_utc
from settlement_kernel.domain.dtos import ContractInfo, JobInfo, ProfileInfo
from settlement_kernel.domain.roles import ProfileRole
from settlement_kernel.models import Contract, Job, Profile


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only queries,
        and return DTOs or computed results.  They MUST NOT mutate any data.
    """

    def __init__(self, session: Session):
        self.session = session


def profile_to_dto(profile: Profile) -> ProfileInfo:
    return ProfileInfo(
        id=profile.id,
        first_name=profile.first_name,
        last_name=profile.last_name,
        profession=profile.profession,
        balance=profile.balance,
        role=ProfileRole(profile.role),
    )


def contract_to_dto(contract: Contract) -> ContractInfo:
    return ContractInfo(
        id=contract.id,
        terms=contract.terms,
        status=str(getattr(contract.status, "value", contract.status)),
        client_id=contract.client_id,
        contractor_id=contract.contractor_id,
    )


def job_to_dto(job: Job) -> JobInfo:
    return JobInfo(
        id=job.id,
        description=job.description,
        price=job.price,
        paid=bool(job.paid),
        payment_date=ensure_utc(job.payment_date),
        contract_id=job.contract_id,
    )
