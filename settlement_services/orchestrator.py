"""
settlement_services.orchestrator -- transactional entry point for the kernel.

Responsibility:
    Owns the transaction boundary for every kernel operation.  Each public
    method opens one transaction, resolves the acting profile, applies the
    access policy, and dispatches to the selector or service that does the
    work.  This is the only object a transport layer needs to hold.

Architecture position:
    Services -- sits above ``settlement_kernel`` and ``settlement_config``.
    Kernel services and selectors are constructed per transaction, bound to
    that transaction's session.

Invariants enforced:
    - One transaction per call: commit on success, rollback on any
      exception, which is re-raised.
    - The access policy runs before any data other than the acting profile
      is read.
    - Storage-level lock contention (including at BEGIN or commit) surfaces
      as ``JobUnavailableError`` from ``pay_job`` and as
      ``StorageBusyError`` from every other operation.  Both are retryable.
    - Listings and reports run in read-only scopes, which never take the
      SQLite write lock.
    - Nothing is retried here.

Failure modes:
    - Any ``SettlementKernelError`` subclass from the kernel, unchanged.
    - ``DBAPIError`` for storage failures that are not lock contention.

Usage:
    from settlement_services import MarketplaceOrchestrator

    orchestrator = MarketplaceOrchestrator(database, config)
    job = orchestrator.pay_job(profile_id, job_id)
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import TypeVar
from uuid import UUID, uuid4

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from settlement_config.schema import SettlementConfig
from settlement_kernel.db.engine import Database, is_lock_contention
from settlement_kernel.db.types import ensure_utc, to_money
from settlement_kernel.domain.access_policy import AccessPolicy, Operation
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.domain.dtos import (
    ActingProfile,
    ClientTotal,
    ContractInfo,
    JobInfo,
    ProfileInfo,
)
from settlement_kernel.exceptions import (
    ContractNotFoundError,
    InvalidAmountError,
    InvalidDateRangeError,
    JobNotFoundError,
    JobUnavailableError,
    ProfileNotFoundError,
    SettlementKernelError,
    StorageBusyError,
)
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_kernel.selectors.contract_selector import ContractSelector
from settlement_kernel.selectors.report_selector import ReportSelector
from settlement_kernel.services.deposit_service import DepositService
from settlement_kernel.services.identity_service import IdentityService
from settlement_kernel.services.settlement_service import SettlementService
from settlement_kernel.utils.identifiers import parse_uuid

logger = get_logger("services.orchestrator")

T = TypeVar("T")

DateInput = datetime | str | None


def _parse_datetime(value: DateInput, other: DateInput) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return ensure_utc(value)
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except (TypeError, ValueError):
        raise InvalidDateRangeError(str(value), str(other)) from None


class MarketplaceOrchestrator:
    """Single entry point for contract, job, deposit and reporting calls.

    Contract:
        Receives a ``Database``, an optional ``SettlementConfig`` and an
        optional ``Clock``.  Holds no session between calls.

    Non-goals:
        - Does NOT parse request headers; callers pass the raw profile id.
        - Does NOT retry retryable errors.
    """

    def __init__(
        self,
        database: Database,
        config: SettlementConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._database = database
        self._config = config or SettlementConfig()
        self._clock = clock or SystemClock()
        self._policy = AccessPolicy(
            reporting_requires_admin=self._config.reporting.require_admin,
        )

    @property
    def config(self) -> SettlementConfig:
        return self._config

    @property
    def policy(self) -> AccessPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Contracts and jobs
    # ------------------------------------------------------------------

    def get_contract(self, profile_id: UUID | str, contract_id: UUID | str) -> ContractInfo:
        """Return one of the caller's contracts."""

        def run(session: Session, acting: ActingProfile) -> ContractInfo:
            parsed = parse_uuid(contract_id)
            if parsed is None:
                raise ContractNotFoundError(str(contract_id))
            return ContractSelector(session).get_contract(acting, parsed)

        return self._execute(Operation.GET_CONTRACT, profile_id, run, read_only=True)

    def list_active_contracts(self, profile_id: UUID | str) -> list[ContractInfo]:
        """Return the caller's non-terminated contracts."""
        return self._execute(
            Operation.LIST_ACTIVE_CONTRACTS,
            profile_id,
            lambda session, acting: ContractSelector(session).list_active_contracts(acting),
            read_only=True,
        )

    def list_unpaid_jobs(self, profile_id: UUID | str) -> list[JobInfo]:
        """Return unpaid jobs under the caller's active contracts."""
        return self._execute(
            Operation.LIST_UNPAID_JOBS,
            profile_id,
            lambda session, acting: ContractSelector(session).list_unpaid_jobs(acting),
            read_only=True,
        )

    # ------------------------------------------------------------------
    # Money movement
    # ------------------------------------------------------------------

    def pay_job(self, profile_id: UUID | str, job_id: UUID | str) -> JobInfo:
        """
        Settle a job on behalf of the client that owns it.

        Raises:
            UnauthenticatedError, ForbiddenError, JobNotFoundError,
            JobUnavailableError, InsufficientFundsError, AlreadyPaidError.
        """
        parsed = parse_uuid(job_id)

        def run(session: Session, acting: ActingProfile) -> JobInfo:
            if parsed is None:
                raise JobNotFoundError(str(job_id))
            return SettlementService(session, self._clock).pay_job(acting, parsed)

        return self._execute(
            Operation.PAY_JOB,
            profile_id,
            run,
            contention_error=lambda: JobUnavailableError(str(job_id)),
            job_id=str(parsed) if parsed else None,
        )

    def deposit(
        self,
        profile_id: UUID | str,
        target_profile_id: UUID | str,
        amount: Decimal | int | str,
    ) -> ProfileInfo:
        """
        Credit target_profile_id's balance, bounded by its outstanding debt.

        Raises:
            UnauthenticatedError, ProfileNotFoundError, InvalidAmountError,
            NoOutstandingDebtError, DepositLimitExceededError,
            StorageBusyError.
        """
        target = parse_uuid(target_profile_id)

        def run(session: Session, acting: ActingProfile) -> ProfileInfo:
            try:
                value = to_money(amount)
            except ValueError:
                raise InvalidAmountError(str(amount)) from None
            if target is None:
                raise ProfileNotFoundError(str(target_profile_id))
            service = DepositService(
                session,
                max_ratio_of_unpaid=self._config.deposit.max_ratio_of_unpaid,
            )
            return service.deposit(target, value)

        return self._execute(
            Operation.DEPOSIT,
            profile_id,
            run,
            target_profile_id=str(target) if target else None,
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def best_profession(
        self,
        profile_id: UUID | str,
        start: DateInput = None,
        end: DateInput = None,
    ) -> str:
        """Return the profession that earned the most in the window."""

        def run(session: Session, acting: ActingProfile) -> str:
            return ReportSelector(session).best_profession(
                _parse_datetime(start, end), _parse_datetime(end, start)
            )

        return self._execute(Operation.BEST_PROFESSION, profile_id, run, read_only=True)

    def best_clients(
        self,
        profile_id: UUID | str,
        start: DateInput = None,
        end: DateInput = None,
        limit: int | None = None,
    ) -> list[ClientTotal]:
        """Return the top-paying clients in the window."""
        effective_limit = (
            self._config.reporting.default_best_clients_limit if limit is None else limit
        )

        def run(session: Session, acting: ActingProfile) -> list[ClientTotal]:
            return ReportSelector(session).best_clients(
                _parse_datetime(start, end),
                _parse_datetime(end, start),
                effective_limit,
            )

        return self._execute(Operation.BEST_CLIENTS, profile_id, run, read_only=True)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _execute(
        self,
        operation: Operation,
        profile_id: UUID | str,
        handler: Callable[[Session, ActingProfile], T],
        contention_error: Callable[[], SettlementKernelError] | None = None,
        read_only: bool = False,
        **fields: str | None,
    ) -> T:
        with self._logged(operation, profile_id, **fields):
            try:
                with self._database.session_scope(read_only) as session:
                    acting = IdentityService(session).resolve_acting_profile(profile_id)
                    self._policy.check(acting, operation)
                    return handler(session, acting)
            except DBAPIError as exc:
                # Contention can also surface at BEGIN or COMMIT, outside
                # the service that handles it.
                if not is_lock_contention(exc):
                    raise
                logger.warning("lock_contention")
                if contention_error is None:
                    raise StorageBusyError(operation.value) from exc
                raise contention_error() from exc

    @contextmanager
    def _logged(
        self,
        operation: Operation,
        profile_id: UUID | str,
        **fields: str | None,
    ) -> Iterator[None]:
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=str(profile_id) if profile_id is not None else None,
            operation=operation.value,
            job_id=fields.get("job_id"),
            profile_id=fields.get("target_profile_id"),
        ):
            t0 = time.monotonic()
            logger.info("operation_started")
            try:
                yield
            except SettlementKernelError as exc:
                logger.info("operation_failed", extra={
                    "code": exc.code,
                    "retryable": exc.retryable,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                })
                raise
            except Exception as exc:
                logger.error("operation_failed", extra={
                    "error_type": type(exc).__name__,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                }, exc_info=True)
                raise
            logger.info("operation_completed", extra={
                "duration_ms": round((time.monotonic() - t0) * 1000, 2),
            })
