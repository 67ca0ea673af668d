"""
Typed Exception Hierarchy for the Settlement Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the settlement kernel must decide, without parsing messages,
whether a failure is worth retrying.  A payment that lost a lock race should
be retried; a payment that bounced on insufficient funds should not be
retried until the client's balance changes.

Every error therefore:
  1. Has a TYPED exception class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Has a RETRYABLE class attribute (contention vs. business rejection)
  4. Carries structured DATA as instance attributes

Example:
    try:
        orchestrator.pay_job(profile_id, job_id)
    except JobUnavailableError:
        schedule_retry()
    except InsufficientFundsError as e:
        respond(code=e.code, job_id=e.job_id, price=e.price)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SettlementKernelError (base)
    |
    +-- AccessError
    |   +-- UnauthenticatedError
    |   +-- ForbiddenError
    |
    +-- NotFoundError
    |   +-- ProfileNotFoundError
    |   +-- ContractNotFoundError
    |   +-- JobNotFoundError
    |
    +-- SettlementError
    |   +-- JobUnavailableError
    |   +-- InsufficientFundsError
    |   +-- AlreadyPaidError
    |
    +-- DepositError
    |   +-- InvalidAmountError
    |   +-- NoOutstandingDebtError
    |   +-- DepositLimitExceededError
    |
    +-- ReportingError
    |   +-- NoDataError
    |   +-- InvalidDateRangeError
    |   +-- InvalidLimitError
    |
    +-- StorageBusyError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                    | Retry | When Raised
------------|-------------------------|-------|-------------------------------------
Access      | UNAUTHENTICATED         | no    | Acting profile cannot be resolved
            | FORBIDDEN               | no    | Role may not invoke the operation
------------|-------------------------|-------|-------------------------------------
Not found   | PROFILE_NOT_FOUND       | no    | Target profile does not exist
            | CONTRACT_NOT_FOUND      | no    | Contract absent or not owned by caller
            | JOB_NOT_FOUND           | no    | Job absent or not owned by caller
------------|-------------------------|-------|-------------------------------------
Settlement  | JOB_UNAVAILABLE         | yes   | Job row locked by a concurrent payment
            | INSUFFICIENT_FUNDS      | no    | Client balance below job price
            | ALREADY_PAID            | no    | Job already settled
------------|-------------------------|-------|-------------------------------------
Deposit     | INVALID_AMOUNT          | no    | Amount not a positive number
            | NO_OUTSTANDING_DEBT     | no    | Client owes nothing on active contracts
            | DEPOSIT_LIMIT_EXCEEDED  | no    | Amount above the debt-relative ceiling
------------|-------------------------|-------|-------------------------------------
Reporting   | NO_DATA                 | no    | Aggregation matched no paid jobs
            | INVALID_DATE_RANGE      | no    | start is not before end
            | INVALID_LIMIT           | no    | Result limit is not positive
------------|-------------------------|-------|-------------------------------------
------------|-------------------------|-------|-------------------------------------
Storage     | STORAGE_BUSY            | yes   | Lock held by a concurrent transaction
Config      | CONFIGURATION_ERROR     | no    | Configuration value invalid

===============================================================================
"""

from decimal import Decimal


class SettlementKernelError(Exception):
    """
    Base exception for all settlement kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SETTLEMENT_KERNEL_ERROR"
    retryable: bool = False


# Access exceptions


class AccessError(SettlementKernelError):
    """Base exception for identity and authorization failures."""

    code: str = "ACCESS_ERROR"


class UnauthenticatedError(AccessError):
    """The acting profile could not be resolved."""

    code: str = "UNAUTHENTICATED"

    def __init__(self, profile_ref: str | None):
        self.profile_ref = profile_ref
        super().__init__(f"Cannot resolve acting profile: {profile_ref!r}")


class ForbiddenError(AccessError):
    """The acting profile's role may not invoke the operation."""

    code: str = "FORBIDDEN"

    def __init__(self, operation: str, role: str):
        self.operation = operation
        self.role = role
        super().__init__(f"Role '{role}' may not perform {operation}")


# Not-found exceptions


class NotFoundError(SettlementKernelError):
    """Entity absent, or not owned by the caller."""

    code: str = "NOT_FOUND"


class ProfileNotFoundError(NotFoundError):
    """Profile with given ID was not found."""

    code: str = "PROFILE_NOT_FOUND"

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Profile not found: {profile_id}")


class ContractNotFoundError(NotFoundError):
    """Contract not found for the acting profile."""

    code: str = "CONTRACT_NOT_FOUND"

    def __init__(self, contract_id: str):
        self.contract_id = contract_id
        super().__init__(f"Contract not found: {contract_id}")


class JobNotFoundError(NotFoundError):
    """No unpaid job with this ID belongs to the paying client."""

    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found for client: {job_id}")


# Settlement exceptions


class SettlementError(SettlementKernelError):
    """Base exception for job payment failures.  Always transactional."""

    code: str = "SETTLEMENT_ERROR"


class JobUnavailableError(SettlementError):
    """
    The job row is locked by a concurrent settlement.

    The attempt failed fast instead of waiting.  Retrying is safe.
    """

    code: str = "JOB_UNAVAILABLE"
    retryable: bool = True

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job {job_id} is being settled by another request, retry later")


class InsufficientFundsError(SettlementError):
    """Client balance is less than the job price."""

    code: str = "INSUFFICIENT_FUNDS"

    def __init__(self, job_id: str, price: Decimal):
        self.job_id = job_id
        self.price = price
        super().__init__(f"Client balance is less than amount to pay ({price}) for job {job_id}")


class AlreadyPaidError(SettlementError):
    """The job was already settled."""

    code: str = "ALREADY_PAID"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job already paid: {job_id}")


# Deposit exceptions


class DepositError(SettlementKernelError):
    """Base exception for deposit guard rejections."""

    code: str = "DEPOSIT_ERROR"


class InvalidAmountError(DepositError):
    """Deposit amount is not a positive monetary value."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str):
        self.amount = amount
        super().__init__(f"Deposit amount must be a positive number, got {amount!r}")


class NoOutstandingDebtError(DepositError):
    """Client has no unpaid jobs under active contracts."""

    code: str = "NO_OUTSTANDING_DEBT"

    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"No unpaid jobs for profile {profile_id}")


class DepositLimitExceededError(DepositError):
    """Deposit exceeds the allowed fraction of outstanding debt."""

    code: str = "DEPOSIT_LIMIT_EXCEEDED"

    def __init__(
        self,
        profile_id: str,
        amount: Decimal,
        ceiling: Decimal,
        total_unpaid: Decimal,
    ):
        self.profile_id = profile_id
        self.amount = amount
        self.ceiling = ceiling
        self.total_unpaid = total_unpaid
        super().__init__(
            f"Can't deposit more than {ceiling} "
            f"(share of {total_unpaid} total of jobs to pay), got {amount}"
        )


# Reporting exceptions


class ReportingError(SettlementKernelError):
    """Base exception for reporting aggregation errors."""

    code: str = "REPORTING_ERROR"


class NoDataError(ReportingError):
    """Aggregation matched no paid jobs."""

    code: str = "NO_DATA"

    def __init__(self, report: str):
        self.report = report
        super().__init__(f"No paid jobs match the {report} report window")


class InvalidDateRangeError(ReportingError):
    """Report window start is not strictly before its end."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"Report window start {start} must be before end {end}")


class InvalidLimitError(ReportingError):
    """Result limit is not a positive integer."""

    code: str = "INVALID_LIMIT"

    def __init__(self, limit: object):
        self.limit = limit
        super().__init__(f"Limit must be a positive integer, got {limit!r}")


# Storage exceptions


class StorageBusyError(SettlementKernelError):
    """
    A competing transaction held the lock this operation needed.

    Raised for every operation except pay_job, which reports the same
    condition as JobUnavailableError.  Retrying is safe.
    """

    code: str = "STORAGE_BUSY"
    retryable: bool = True

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Storage busy during {operation}, retry later")


# Configuration exceptions


class ConfigurationError(SettlementKernelError):
    """A configuration value is missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}': {reason}")
