"""
SettlementService -- atomic job payment from client to contractor.

Responsibility:
    Executes PayJob as one unit inside the caller's transaction: lock the
    job row, validate it, debit the client, credit the contractor, mark the
    job paid, and return the settled job.

Architecture position:
    Kernel > Services -- imperative shell.  Called by
    MarketplaceOrchestrator, which owns the transaction and rolls it back on
    any exception raised here.

Invariants enforced:
    - At most one settlement per job.  The job row is taken with
      ``SELECT ... FOR UPDATE SKIP LOCKED`` and the paid flag is flipped by
      ``UPDATE ... WHERE paid = false``; a lost race on either surfaces as an
      error, never as a second payment.
    - No overdraft.  The client is debited by a single conditional UPDATE
      (``balance >= price``), never by reading the balance into Python.
    - Conservation.  The debit and the credit use the same price value read
      from the locked row; price itself is never written.
    - All-or-nothing.  Every failure is raised before commit, so the
      caller's rollback undoes any debit or credit already issued.

Failure modes:
    - JobNotFoundError: no such job, or not the caller's, or its contract
      is terminated.
    - JobUnavailableError: row locked by a concurrent settlement, or the
      storage engine reported lock contention.  Retryable.
    - InsufficientFundsError: client balance below the job price.
    - AlreadyPaidError: the job was settled before this attempt.
"""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError

from settlement_kernel.db.engine import is_lock_contention
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.domain.dtos import ActingProfile, JobInfo
from settlement_kernel.exceptions import (
    AlreadyPaidError,
    InsufficientFundsError,
    JobNotFoundError,
    JobUnavailableError,
    ProfileNotFoundError,
    SettlementError,
    SettlementKernelError,
)
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models import Contract, ContractStatus, Job, Profile
from settlement_kernel.selectors.base import job_to_dto
from settlement_kernel.services.base import BaseService

logger = get_logger("services.settlement")


class SettlementService(BaseService):
    """
    Settles jobs by moving funds between profile balances.

    Non-goals:
        - Does NOT check the acting role; the access policy runs first.
        - Does NOT retry.  JobUnavailableError is returned to the caller.
        - Does NOT commit.
    """

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def pay_job(self, acting: ActingProfile, job_id: UUID) -> JobInfo:
        """
        Pay for a job on behalf of the client that owns it.

        Preconditions:
            - Caller is inside an open transaction it will roll back on error.
            - acting.role is client (checked by the access policy).

        Postconditions:
            - Client balance decreased by job.price, contractor balance
              increased by job.price, job.paid is True and
              job.payment_date is the clock's now().

        Raises:
            JobNotFoundError, JobUnavailableError, InsufficientFundsError,
            AlreadyPaidError.
        """
        logger.info(
            "settlement_started",
            extra={"job_id": str(job_id), "client_id": str(acting.id)},
        )
        try:
            settled = self._settle(acting, job_id)
        except (SettlementError, JobNotFoundError) as exc:
            logger.warning(
                "settlement_rejected",
                extra={"job_id": str(job_id), "code": exc.code, "retryable": exc.retryable},
            )
            raise
        except DBAPIError as exc:
            if not is_lock_contention(exc):
                raise
            logger.warning(
                "settlement_lock_contention",
                extra={"job_id": str(job_id)},
            )
            raise JobUnavailableError(str(job_id)) from exc

        logger.info(
            "settlement_completed",
            extra={
                "job_id": str(settled.id),
                "price": settled.price,
                "payment_date": settled.payment_date,
            },
        )
        return settled

    def _settle(self, acting: ActingProfile, job_id: UUID) -> JobInfo:
        locked = self._lock_unpaid_job(acting, job_id)
        if locked is None:
            raise self._explain_missing(acting, job_id)

        job, contractor_id = locked
        price = job.price

        self._debit(acting.id, job_id, price)
        self._credit(contractor_id, price)
        self._mark_paid(job_id)

        return job_to_dto(self._reload(job_id))

    def _lock_unpaid_job(self, acting: ActingProfile, job_id: UUID):
        # INVARIANT: skip, don't wait.  A row held by another settlement is
        # simply not returned.
        stmt = (
            select(Job, Contract.contractor_id)
            .join(Contract, Job.contract_id == Contract.id)
            .where(
                Job.id == job_id,
                Job.paid.is_(False),
                Contract.client_id == acting.id,
                Contract.status != ContractStatus.TERMINATED,
            )
            .with_for_update(skip_locked=True, of=Job)
            .execution_options(populate_existing=True)
        )
        row = self.session.execute(stmt).first()
        if row is None:
            return None
        return row[0], row[1]

    def _explain_missing(self, acting: ActingProfile, job_id: UUID) -> SettlementKernelError:
        """Tell contention apart from absence without taking a lock."""
        stmt = (
            select(Job.paid, Contract.status)
            .join(Contract, Job.contract_id == Contract.id)
            .where(
                Job.id == job_id,
                Contract.client_id == acting.id,
            )
        )
        row = self.session.execute(stmt).first()
        if row is None:
            return JobNotFoundError(str(job_id))
        if row.paid:
            return AlreadyPaidError(str(job_id))
        if row.status == ContractStatus.TERMINATED:
            return JobNotFoundError(str(job_id))
        return JobUnavailableError(str(job_id))

    def _debit(self, client_id: UUID, job_id: UUID, price) -> None:
        # INVARIANT: compare-and-decrement in one statement
        result = self.session.execute(
            update(Profile)
            .where(Profile.id == client_id, Profile.balance >= price)
            .values(balance=Profile.balance - price)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InsufficientFundsError(str(job_id), price)

    def _credit(self, contractor_id: UUID, price) -> None:
        result = self.session.execute(
            update(Profile)
            .where(Profile.id == contractor_id)
            .values(balance=Profile.balance + price)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ProfileNotFoundError(str(contractor_id))

    def _mark_paid(self, job_id: UUID) -> None:
        result = self.session.execute(
            update(Job)
            .where(Job.id == job_id, Job.paid.is_(False))
            .values(paid=True, payment_date=self._clock.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise AlreadyPaidError(str(job_id))

    def _reload(self, job_id: UUID) -> Job:
        return self.session.execute(
            select(Job)
            .where(Job.id == job_id)
            .execution_options(populate_existing=True)
        ).scalar_one()
