"""
Tests for the settle command-line front end.

Runs scripts/settle.py main() in-process against a SQLite file seeded with
the demo data.
"""

import json
from decimal import Decimal
from io import StringIO

import pytest

from scripts.settle import main


@pytest.fixture
def cli(tmp_path, monkeypatch):
    monkeypatch.delenv("SETTLEMENT_CONFIG", raising=False)
    url = f"sqlite:///{tmp_path / 'cli.db'}"

    def _run(*args: str) -> tuple[int, object, str]:
        out, err = StringIO(), StringIO()
        code = main(["--database-url", url, *args], stdout=out, stderr=err)
        payload = json.loads(out.getvalue()) if out.getvalue().strip() else None
        return code, payload, err.getvalue()

    return _run


@pytest.fixture
def seeded(cli):
    code, profiles, _ = cli("seed")
    assert code == 0
    return {p["name"]: p for p in profiles}


def _error(stderr: str) -> dict:
    return json.loads(stderr.strip().splitlines()[-1])


class TestCli:

    def test_init_db(self, cli):
        code, payload, _ = cli("init-db")
        assert code == 0
        assert payload == {"status": "ok"}

    def test_seed_lists_profiles(self, seeded):
        assert seeded["Harry Potter"]["role"] == "client"
        assert seeded["Linus Torvalds"]["role"] == "contractor"
        assert seeded["Ada Lovelace"]["role"] == "admin"

    def test_pay_job_flow(self, cli, seeded):
        harry = seeded["Harry Potter"]["id"]

        code, jobs, _ = cli("unpaid-jobs", "--as", harry)
        assert code == 0
        assert [Decimal(j["price"]) for j in jobs] == [Decimal("201")]

        code, job, _ = cli("pay-job", "--as", harry, jobs[0]["id"])
        assert code == 0
        assert job["paid"] is True

        code, _, stderr = cli("pay-job", "--as", harry, jobs[0]["id"])
        assert code == 1
        assert _error(stderr)["error"] == "ALREADY_PAID"

    def test_contractor_cannot_pay(self, cli, seeded):
        harry = seeded["Harry Potter"]["id"]
        linus = seeded["Linus Torvalds"]["id"]
        _, jobs, _ = cli("unpaid-jobs", "--as", harry)

        code, _, stderr = cli("pay-job", "--as", linus, jobs[0]["id"])
        assert code == 1
        assert _error(stderr)["error"] == "FORBIDDEN"

    def test_deposit_ceiling(self, cli, seeded):
        robot = seeded["Mr Robot"]["id"]

        code, _, stderr = cli("deposit", "--as", robot, robot, "31")
        assert code == 1
        assert _error(stderr)["error"] == "DEPOSIT_LIMIT_EXCEEDED"

        code, profile, _ = cli("deposit", "--as", robot, robot, "30")
        assert code == 0
        assert Decimal(profile["balance"]) == Decimal("261.11")

    def test_contracts(self, cli, seeded):
        harry = seeded["Harry Potter"]["id"]
        code, contracts, _ = cli("contracts", "--as", harry)
        assert code == 0
        assert len(contracts) == 1

        code, contract, _ = cli("contract", "--as", harry, contracts[0]["id"])
        assert code == 0
        assert contract["client_id"] == harry

    def test_reports(self, cli, seeded):
        admin = seeded["Ada Lovelace"]["id"]

        code, payload, _ = cli("best-profession", "--as", admin)
        assert code == 0
        assert payload == {"profession": "Programmer"}

        code, clients, _ = cli("best-clients", "--as", admin, "--limit", "3")
        assert code == 0
        assert [c["full_name"] for c in clients] == ["Harry Potter", "Mr Robot", "Ash Kethcum"]

    def test_unknown_caller(self, cli, seeded):
        code, _, stderr = cli("contracts", "--as", "nobody")
        assert code == 1
        assert _error(stderr)["error"] == "UNAUTHENTICATED"
