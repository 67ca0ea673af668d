"""
Module: settlement_kernel.selectors.report_selector
Responsibility: Read-only aggregation over paid jobs for administrative
    reporting: the best-earning profession and the best-paying clients.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Only paid jobs contribute.  The optional window is exclusive on both
      ends (start < payment_date < end) and each bound applies on its own.
    - Ordering is deterministic: ties on the summed total break on
      profession name / client id ascending.
    - Sums are Decimal; nothing is accumulated in Python floats.

Failure modes:
    - NoDataError from best_profession() when nothing matches.
    - InvalidDateRangeError when start >= end.
    - InvalidLimitError when limit < 1.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, func, select

from settlement_kernel.db.types import ensure_utc
from settlement_kernel.domain.dtos import ClientTotal
from settlement_kernel.exceptions import (
    InvalidDateRangeError,
    InvalidLimitError,
    NoDataError,
)
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models import Contract, Job, Profile
from settlement_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.report")

DEFAULT_BEST_CLIENTS_LIMIT = 2


def _as_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class ReportSelector(BaseSelector):
    """Aggregations over paid jobs."""

    def best_profession(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> str:
        """
        Return the contractor profession that earned the most.

        Raises:
            NoDataError: If no paid job falls inside the window.
            InvalidDateRangeError: If start is not before end.
        """
        total = func.sum(Job.price).label("total")
        stmt = (
            select(Profile.profession, total)
            .select_from(Job)
            .join(Contract, Job.contract_id == Contract.id)
            .join(Profile, Contract.contractor_id == Profile.id)
            .group_by(Profile.profession)
            .order_by(total.desc(), Profile.profession.asc())
            .limit(1)
        )
        stmt = self._paid_within(stmt, start, end)

        row = self.session.execute(stmt).first()
        if row is None:
            raise NoDataError("best_profession")

        logger.debug(
            "best_profession_computed",
            extra={"profession": row.profession, "total": _as_decimal(row.total)},
        )
        return row.profession

    def best_clients(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int = DEFAULT_BEST_CLIENTS_LIMIT,
    ) -> list[ClientTotal]:
        """
        Return the clients that paid the most, highest total first.

        Returns an empty list when nothing matches.

        Raises:
            InvalidLimitError: If limit is not a positive integer.
            InvalidDateRangeError: If start is not before end.
        """
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidLimitError(limit)

        total = func.sum(Job.price).label("total")
        stmt = (
            select(Profile.id, Profile.first_name, Profile.last_name, total)
            .select_from(Job)
            .join(Contract, Job.contract_id == Contract.id)
            .join(Profile, Contract.client_id == Profile.id)
            .group_by(Profile.id, Profile.first_name, Profile.last_name)
            .order_by(total.desc(), Profile.id.asc())
            .limit(limit)
        )
        stmt = self._paid_within(stmt, start, end)

        return [
            ClientTotal(
                client_id=row.id,
                full_name=f"{row.first_name} {row.last_name}",
                total_paid=_as_decimal(row.total),
            )
            for row in self.session.execute(stmt)
        ]

    @staticmethod
    def _paid_within(stmt: Select, start: datetime | None, end: datetime | None) -> Select:
        start = ensure_utc(start)
        end = ensure_utc(end)
        if start is not None and end is not None and start >= end:
            raise InvalidDateRangeError(start.isoformat(), end.isoformat())

        stmt = stmt.where(Job.paid.is_(True))
        if start is not None:
            stmt = stmt.where(Job.payment_date > start)
        if end is not None:
            stmt = stmt.where(Job.payment_date < end)
        return stmt
