"""
DepositService -- balance top-ups bounded by outstanding debt.

Responsibility:
    Credits a client's balance, but only by up to a fixed fraction of what
    the client still owes on unpaid jobs under active contracts.

Architecture position:
    Kernel > Services.  Reads the outstanding debt through ContractSelector
    within the same transaction as the credit.

Invariants enforced:
    - The credit is one atomic ``UPDATE ... SET balance = balance + amount``.
    - The target profile row is locked (blocking FOR UPDATE) before the
      debt is summed, so two deposits to the same profile are evaluated one
      after the other rather than against the same stale total.
    - A rejected deposit writes nothing.

Failure modes:
    - InvalidAmountError: amount is not positive.
    - ProfileNotFoundError: target profile does not exist.
    - NoOutstandingDebtError: nothing owed on active contracts.
    - DepositLimitExceededError: amount above ratio x total unpaid.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select, update

from settlement_kernel.domain.dtos import ProfileInfo
from settlement_kernel.exceptions import (
    DepositLimitExceededError,
    InvalidAmountError,
    NoOutstandingDebtError,
    ProfileNotFoundError,
)
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models import Profile
from settlement_kernel.selectors.base import profile_to_dto
from settlement_kernel.selectors.contract_selector import ContractSelector
from settlement_kernel.services.base import BaseService

logger = get_logger("services.deposit")

DEFAULT_MAX_RATIO_OF_UNPAID = Decimal("0.25")


class DepositService(BaseService):
    """Applies deposits under the debt-relative ceiling."""

    def __init__(self, session, max_ratio_of_unpaid: Decimal = DEFAULT_MAX_RATIO_OF_UNPAID):
        super().__init__(session)
        self._max_ratio = max_ratio_of_unpaid

    def deposit_ceiling(self, total_unpaid: Decimal) -> Decimal:
        """Largest deposit allowed against the given outstanding debt."""
        return total_unpaid * self._max_ratio

    def deposit(self, profile_id: UUID, amount: Decimal) -> ProfileInfo:
        """
        Credit a profile's balance by amount.

        Preconditions:
            - Caller is inside an open transaction.

        Postconditions:
            - On success, balance increased by exactly amount.
            - On failure, nothing written.

        Raises:
            InvalidAmountError, ProfileNotFoundError,
            NoOutstandingDebtError, DepositLimitExceededError.
        """
        if not isinstance(amount, Decimal) or not amount.is_finite() or amount <= 0:
            raise InvalidAmountError(str(amount))

        profile = self.session.execute(
            select(Profile)
            .where(Profile.id == profile_id)
            .with_for_update()
        ).scalar_one_or_none()
        if profile is None:
            raise ProfileNotFoundError(str(profile_id))

        total_unpaid = ContractSelector(self.session).total_unpaid(profile_id)
        if total_unpaid <= 0:
            logger.info(
                "deposit_rejected",
                extra={"profile_id": str(profile_id), "code": NoOutstandingDebtError.code},
            )
            raise NoOutstandingDebtError(str(profile_id))

        ceiling = self.deposit_ceiling(total_unpaid)
        if amount > ceiling:
            logger.info(
                "deposit_rejected",
                extra={
                    "profile_id": str(profile_id),
                    "code": DepositLimitExceededError.code,
                    "amount": amount,
                    "ceiling": ceiling,
                },
            )
            raise DepositLimitExceededError(str(profile_id), amount, ceiling, total_unpaid)

        self.session.execute(
            update(Profile)
            .where(Profile.id == profile_id)
            .values(balance=Profile.balance + amount)
            .execution_options(synchronize_session=False)
        )

        refreshed = self.session.execute(
            select(Profile)
            .where(Profile.id == profile_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

        logger.info(
            "deposit_applied",
            extra={
                "profile_id": str(profile_id),
                "amount": amount,
                "total_unpaid": total_unpaid,
            },
        )
        return profile_to_dto(refreshed)
