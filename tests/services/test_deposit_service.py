"""
Tests for DepositService.deposit.

These tests verify:
- Deposits up to a quarter of outstanding debt succeed
- Deposits above the ceiling, with no debt, or non-positive fail untouched
- Debt under terminated contracts and paid jobs does not count
- The ratio is configurable
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from settlement_kernel.domain.roles import ProfileRole
from settlement_kernel.exceptions import (
    DepositLimitExceededError,
    InvalidAmountError,
    NoOutstandingDebtError,
    ProfileNotFoundError,
)
from settlement_kernel.models import ContractStatus
from settlement_kernel.services.deposit_service import DepositService


@pytest.fixture
def indebted_client(make_profile, make_contract, make_job):
    """A client with balance 0 and 200 owed across two unpaid jobs."""
    client = make_profile(ProfileRole.CLIENT, "0")
    contractor = make_profile(ProfileRole.CONTRACTOR, "0")
    contract = make_contract(client, contractor)
    make_job(contract, price="120")
    make_job(contract, price="80")
    return client


class TestDepositWithinCeiling:

    def test_deposit_40_of_200_succeeds(self, indebted_client, session, balance_of):
        profile = DepositService(session).deposit(indebted_client.id, Decimal("40"))
        session.commit()

        assert profile.id == indebted_client.id
        assert profile.balance == Decimal("40")
        assert balance_of(indebted_client.id) == Decimal("40")

    def test_deposit_exactly_at_ceiling_succeeds(self, indebted_client, session, balance_of):
        DepositService(session).deposit(indebted_client.id, Decimal("50"))
        session.commit()

        assert balance_of(indebted_client.id) == Decimal("50")

    def test_deposit_logged(self, indebted_client, session, captured_logs):
        DepositService(session).deposit(indebted_client.id, Decimal("10"))
        session.commit()

        applied = [r for r in captured_logs() if r["message"] == "deposit_applied"]
        assert len(applied) == 1
        assert Decimal(applied[0]["total_unpaid"]) == Decimal("200")

    def test_custom_ratio(self, indebted_client, session, balance_of):
        service = DepositService(session, max_ratio_of_unpaid=Decimal("0.5"))
        service.deposit(indebted_client.id, Decimal("100"))
        session.commit()

        assert balance_of(indebted_client.id) == Decimal("100")


class TestDepositRejections:

    def test_deposit_60_of_200_fails(self, indebted_client, session, balance_of):
        with pytest.raises(DepositLimitExceededError) as exc_info:
            DepositService(session).deposit(indebted_client.id, Decimal("60"))
        session.rollback()

        err = exc_info.value
        assert err.ceiling == Decimal("50")
        assert err.total_unpaid == Decimal("200")
        assert err.amount == Decimal("60")
        assert balance_of(indebted_client.id) == Decimal("0")

    def test_no_outstanding_debt(self, make_profile, session):
        client = make_profile(ProfileRole.CLIENT, "0")
        with pytest.raises(NoOutstandingDebtError):
            DepositService(session).deposit(client.id, Decimal("1"))

    def test_terminated_and_paid_jobs_do_not_count(
        self, make_profile, make_contract, make_job, session
    ):
        client = make_profile(ProfileRole.CLIENT, "0")
        contractor = make_profile(ProfileRole.CONTRACTOR, "0")
        make_job(make_contract(client, contractor, ContractStatus.TERMINATED), price="400")
        make_job(make_contract(client, contractor), price="400", paid=True)
        make_job(make_contract(client, contractor, ContractStatus.NEW), price="40")

        with pytest.raises(DepositLimitExceededError) as exc_info:
            DepositService(session).deposit(client.id, Decimal("11"))

        assert exc_info.value.total_unpaid == Decimal("40")
        assert exc_info.value.ceiling == Decimal("10")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), Decimal("NaN")])
    def test_non_positive_amount(self, indebted_client, session, amount):
        with pytest.raises(InvalidAmountError):
            DepositService(session).deposit(indebted_client.id, amount)

    def test_unknown_profile(self, session):
        with pytest.raises(ProfileNotFoundError):
            DepositService(session).deposit(uuid4(), Decimal("1"))

    def test_rejection_logged(self, indebted_client, session, captured_logs):
        with pytest.raises(DepositLimitExceededError):
            DepositService(session).deposit(indebted_client.id, Decimal("60"))

        rejected = [r for r in captured_logs() if r["message"] == "deposit_rejected"]
        assert rejected[0]["code"] == "DEPOSIT_LIMIT_EXCEEDED"
