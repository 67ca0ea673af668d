"""
Tests for ReportSelector.

These tests verify:
- Best profession sums paid jobs by contractor profession
- Best clients orders by total paid, truncated to limit
- Windows are exclusive on both ends, each bound on its own
- Ties break by profession name / client id
- Empty windows, bad ranges and bad limits fail as documented
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from settlement_kernel.domain.roles import ProfileRole
from settlement_kernel.exceptions import (
    InvalidDateRangeError,
    InvalidLimitError,
    NoDataError,
)
from settlement_kernel.selectors.report_selector import ReportSelector

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def earnings(make_profile, make_contract, make_job):
    """
    Paid work: programmers earn 300 (T0, T0+2d), wizard 250 (T0+1d).
    Clients: harry paid 150, ron paid 400.  One unpaid 1000 job is ignored.
    """
    harry = make_profile(ProfileRole.CLIENT, "0", "Harry", "Potter")
    ron = make_profile(ProfileRole.CLIENT, "0", "Ron", "Weasley")
    linus = make_profile(ProfileRole.CONTRACTOR, "0", "Linus", "Torvalds", "Programmer")
    merlin = make_profile(ProfileRole.CONTRACTOR, "0", "Merlin", "Ambrosius", "Wizard")

    make_job(make_contract(harry, linus), price="100", paid=True, payment_date=T0)
    make_job(make_contract(ron, linus), price="200", paid=True, payment_date=T0 + timedelta(days=2))
    make_job(make_contract(ron, merlin), price="200", paid=True, payment_date=T0 + timedelta(days=1))
    make_job(make_contract(harry, merlin), price="50", paid=True, payment_date=T0 + timedelta(days=1))
    make_job(make_contract(harry, merlin), price="1000")
    return {"harry": harry, "ron": ron}


class TestBestProfession:

    def test_unbounded(self, earnings, session):
        assert ReportSelector(session).best_profession() == "Programmer"

    def test_window_excludes_boundaries(self, earnings, session):
        # T0 and T0+2d sit exactly on the bounds and are excluded
        result = ReportSelector(session).best_profession(T0, T0 + timedelta(days=2))
        assert result == "Wizard"

    def test_start_only(self, earnings, session):
        result = ReportSelector(session).best_profession(start=T0 + timedelta(days=1, hours=1))
        assert result == "Programmer"

    def test_end_only(self, earnings, session):
        result = ReportSelector(session).best_profession(end=T0 + timedelta(days=2))
        assert result == "Wizard"

    def test_no_data(self, earnings, session):
        with pytest.raises(NoDataError):
            ReportSelector(session).best_profession(T0 + timedelta(days=10), T0 + timedelta(days=20))

    def test_empty_database(self, session):
        with pytest.raises(NoDataError):
            ReportSelector(session).best_profession()

    def test_tie_breaks_by_name(self, make_profile, make_contract, make_job, session):
        client = make_profile(ProfileRole.CLIENT)
        zoo = make_profile(ProfileRole.CONTRACTOR, profession="Zookeeper")
        art = make_profile(ProfileRole.CONTRACTOR, profession="Artist")
        make_job(make_contract(client, zoo), price="10", paid=True)
        make_job(make_contract(client, art), price="10", paid=True)

        assert ReportSelector(session).best_profession() == "Artist"

    @pytest.mark.parametrize("offset", [timedelta(0), timedelta(days=-1)])
    def test_invalid_range(self, session, offset):
        with pytest.raises(InvalidDateRangeError):
            ReportSelector(session).best_profession(T0, T0 + offset)


class TestBestClients:

    def test_default_limit_two(self, earnings, session):
        clients = ReportSelector(session).best_clients()
        assert [c.client_id for c in clients] == [earnings["ron"].id, earnings["harry"].id]
        assert clients[0].total_paid == Decimal("400")
        assert clients[0].full_name == "Ron Weasley"
        assert clients[1].total_paid == Decimal("150")

    def test_limit_truncates(self, earnings, session):
        clients = ReportSelector(session).best_clients(limit=1)
        assert len(clients) == 1
        assert clients[0].client_id == earnings["ron"].id

    def test_window(self, earnings, session):
        clients = ReportSelector(session).best_clients(T0, T0 + timedelta(days=2))
        totals = {c.client_id: c.total_paid for c in clients}
        assert totals == {earnings["ron"].id: Decimal("200"), earnings["harry"].id: Decimal("50")}

    def test_no_data_is_empty_list(self, session):
        assert ReportSelector(session).best_clients() == []

    def test_tie_breaks_by_client_id(self, make_profile, make_contract, make_job, session):
        contractor = make_profile(ProfileRole.CONTRACTOR)
        clients = [make_profile(ProfileRole.CLIENT) for _ in range(3)]
        for client in clients:
            make_job(make_contract(client, contractor), price="10", paid=True)

        result = ReportSelector(session).best_clients(limit=3)
        ids = [c.client_id for c in result]
        assert ids == sorted(ids, key=str)

    @pytest.mark.parametrize("limit", [0, -1, True, "2"])
    def test_invalid_limit(self, session, limit):
        with pytest.raises(InvalidLimitError):
            ReportSelector(session).best_clients(limit=limit)
