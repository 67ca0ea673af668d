"""
Access Policy -- role-based gate in front of every kernel operation.

Responsibility:
    Decide, from the acting profile's role alone, whether an operation may
    run.  Evaluated before any data access so that a rejected call never
    touches a row or takes a lock.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - PAY_JOB is restricted to the client role.
    - Reporting operations are restricted to the admin role only when the
      policy is built with ``reporting_requires_admin=True``.
"""

from dataclasses import dataclass
from enum import Enum

from settlement_kernel.domain.dtos import ActingProfile
from settlement_kernel.domain.roles import ProfileRole
from settlement_kernel.exceptions import ForbiddenError


class Operation(str, Enum):
    """Operations exposed by the kernel."""

    GET_CONTRACT = "get_contract"
    LIST_ACTIVE_CONTRACTS = "list_active_contracts"
    LIST_UNPAID_JOBS = "list_unpaid_jobs"
    PAY_JOB = "pay_job"
    DEPOSIT = "deposit"
    BEST_PROFESSION = "best_profession"
    BEST_CLIENTS = "best_clients"


_REPORTING_OPERATIONS = frozenset({Operation.BEST_PROFESSION, Operation.BEST_CLIENTS})


@dataclass(frozen=True)
class AccessPolicy:
    """
    Role/operation predicate.

    Contract:
        ``is_allowed`` is total over (role, operation): unknown combinations
        are allowed unless a rule below restricts them.
    """

    reporting_requires_admin: bool = False

    def required_role(self, operation: Operation) -> ProfileRole | None:
        """Return the single role an operation is restricted to, if any."""
        if operation is Operation.PAY_JOB:
            return ProfileRole.CLIENT
        if operation in _REPORTING_OPERATIONS and self.reporting_requires_admin:
            return ProfileRole.ADMIN
        return None

    def is_allowed(self, role: ProfileRole | str, operation: Operation) -> bool:
        required = self.required_role(operation)
        return required is None or ProfileRole(role) is required

    def check(self, acting: ActingProfile, operation: Operation) -> None:
        """
        Raise unless the acting profile may perform the operation.

        Raises:
            ForbiddenError: If the role is not permitted.
        """
        if not self.is_allowed(acting.role, operation):
            raise ForbiddenError(operation.value, ProfileRole(acting.role).value)


DEFAULT_POLICY = AccessPolicy()


def check_access(
    acting: ActingProfile,
    operation: Operation,
    policy: AccessPolicy = DEFAULT_POLICY,
) -> None:
    """Module-level shorthand for ``policy.check(acting, operation)``."""
    policy.check(acting, operation)
