"""
Property-based tests for settlement and deposits.

Hypothesis generates balances, prices and deposit amounts; every example
builds fresh profiles so examples are independent.

Properties:
- pay_job succeeds exactly when balance >= price
- money is conserved across client and contractor
- balances never go negative
- a deposit succeeds exactly when amount <= ratio x outstanding debt
"""

from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from settlement_kernel.domain.roles import ProfileRole
from settlement_kernel.exceptions import (
    DepositLimitExceededError,
    InsufficientFundsError,
    InvalidAmountError,
)

cents = st.integers(min_value=0, max_value=1_000_000).map(lambda n: Decimal(n) / 100)
positive_cents = st.integers(min_value=1, max_value=1_000_000).map(lambda n: Decimal(n) / 100)

FIXTURE_SETTINGS = settings(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.function_scoped_fixture],
)


class TestPayJobProperties:

    @FIXTURE_SETTINGS
    @given(balance=cents, price=positive_cents)
    def test_success_iff_funded_and_conserved(
        self, make_profile, make_contract, make_job, orchestrator, balance_of, balance, price
    ):
        client = make_profile(ProfileRole.CLIENT, balance)
        contractor = make_profile(ProfileRole.CONTRACTOR, "0")
        job = make_job(make_contract(client, contractor), price=price)

        if balance >= price:
            orchestrator.pay_job(client.id, job.id)
            assert balance_of(client.id) == balance - price
            assert balance_of(contractor.id) == price
        else:
            with pytest.raises(InsufficientFundsError):
                orchestrator.pay_job(client.id, job.id)
            assert balance_of(client.id) == balance
            assert balance_of(contractor.id) == Decimal("0")

        assert balance_of(client.id) >= 0
        assert balance_of(client.id) + balance_of(contractor.id) == balance

    @FIXTURE_SETTINGS
    @given(prices=st.lists(positive_cents, min_size=1, max_size=6),
           balance=cents)
    def test_sequential_payments_never_overdraw(
        self, make_profile, make_contract, make_job, orchestrator, balance_of, prices, balance
    ):
        client = make_profile(ProfileRole.CLIENT, balance)
        contractor = make_profile(ProfileRole.CONTRACTOR, "0")
        contract = make_contract(client, contractor)
        jobs = [make_job(contract, price=p) for p in prices]

        expected = balance
        for job, price in zip(jobs, prices):
            try:
                orchestrator.pay_job(client.id, job.id)
                expected -= price
            except InsufficientFundsError:
                assert expected < price

        assert balance_of(client.id) == expected
        assert expected >= 0
        assert balance_of(contractor.id) == Decimal(balance) - expected


class TestDepositProperties:

    @FIXTURE_SETTINGS
    @given(debt=st.lists(st.integers(min_value=1, max_value=1000), min_size=1, max_size=4),
           amount=cents)
    def test_success_iff_within_quarter_of_debt(
        self, make_profile, make_contract, make_job, orchestrator, balance_of, debt, amount
    ):
        client = make_profile(ProfileRole.CLIENT, "0")
        contractor = make_profile(ProfileRole.CONTRACTOR, "0")
        contract = make_contract(client, contractor)
        for price in debt:
            make_job(contract, price=price)

        ceiling = Decimal(sum(debt)) * Decimal("0.25")
        if amount <= 0:
            with pytest.raises(InvalidAmountError):
                orchestrator.deposit(client.id, client.id, amount)
            assert balance_of(client.id) == 0
        elif amount <= ceiling:
            orchestrator.deposit(client.id, client.id, amount)
            assert balance_of(client.id) == amount
        else:
            with pytest.raises(DepositLimitExceededError):
                orchestrator.deposit(client.id, client.id, amount)
            assert balance_of(client.id) == 0
