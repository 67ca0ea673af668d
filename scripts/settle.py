#!/usr/bin/env python3
"""
Command-line front end for the settlement kernel.

Every command runs through MarketplaceOrchestrator against the configured
database and prints its result as JSON on stdout.  Domain errors print
``{"error": <code>, "message": <text>}`` on stderr and exit with status 1.

Usage:
    python -m scripts.settle init-db
    python -m scripts.settle seed
    python -m scripts.settle contracts --as <profile_id>
    python -m scripts.settle unpaid-jobs --as <profile_id>
    python -m scripts.settle contract --as <profile_id> <contract_id>
    python -m scripts.settle pay-job --as <client_id> <job_id>
    python -m scripts.settle deposit --as <profile_id> <target_id> <amount>
    python -m scripts.settle best-profession --as <profile_id> [--start ISO] [--end ISO]
    python -m scripts.settle best-clients --as <profile_id> [--start ISO] [--end ISO] [--limit N]

Global options:
    --config PATH         YAML configuration (else SETTLEMENT_CONFIG, else default)
    --database-url URL    Overrides the configured database URL
"""

import argparse
import dataclasses
import json
import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any, TextIO

# ---------------------------------------------------------------------------
# Project root on sys.path
# ---------------------------------------------------------------------------
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from settlement_config import SettlementConfig, get_active_config  # noqa: E402
from settlement_kernel.db.engine import Database, create_database  # noqa: E402
from settlement_kernel.domain.roles import ProfileRole  # noqa: E402
from settlement_kernel.exceptions import SettlementKernelError  # noqa: E402
from settlement_kernel.logging_config import configure_logging  # noqa: E402
from settlement_kernel.models import Contract, ContractStatus, Job, Profile  # noqa: E402
from settlement_services import MarketplaceOrchestrator  # noqa: E402

# ---------------------------------------------------------------------------
# Demo data
# ---------------------------------------------------------------------------

# (first_name, last_name, profession, balance, role)
_SEED_PROFILES = [
    ("Harry", "Potter", "Wizard", "1150", ProfileRole.CLIENT),
    ("Mr", "Robot", "Hacker", "231.11", ProfileRole.CLIENT),
    ("John", "Snow", "Knows nothing", "451.3", ProfileRole.CLIENT),
    ("Ash", "Kethcum", "Pokemon master", "1.3", ProfileRole.CLIENT),
    ("John", "Lenon", "Musician", "64", ProfileRole.CONTRACTOR),
    ("Linus", "Torvalds", "Programmer", "1214", ProfileRole.CONTRACTOR),
    ("Alan", "Turing", "Programmer", "22", ProfileRole.CONTRACTOR),
    ("Aragorn", "II Elessar Telcontarvalds", "Fighter", "314", ProfileRole.CONTRACTOR),
    ("Ada", "Lovelace", "Auditor", "0", ProfileRole.ADMIN),
]

_SEED_PAYMENT_DATE = datetime(2020, 8, 15, 19, 11, 26, tzinfo=timezone.utc)

# (client index, contractor index, status, [(description, price, paid)])
_SEED_CONTRACTS = [
    (0, 4, ContractStatus.TERMINATED, [("work", "200", False)]),
    (0, 5, ContractStatus.IN_PROGRESS, [("work", "201", False), ("work", "2020", True)]),
    (1, 5, ContractStatus.IN_PROGRESS, [("work", "121", False), ("work", "200", True)]),
    (1, 6, ContractStatus.IN_PROGRESS, [("work", "21", True)]),
    (2, 4, ContractStatus.NEW, [("work", "121", False)]),
    (2, 6, ContractStatus.IN_PROGRESS, [("work", "21", True)]),
    (3, 7, ContractStatus.IN_PROGRESS, [("work", "200", False)]),
    (3, 6, ContractStatus.IN_PROGRESS, [("work", "200", True)]),
]


def seed(database: Database) -> list[dict[str, Any]]:
    """Insert the demo profiles, contracts and jobs. Returns the profiles."""
    with database.session_scope() as session:
        profiles = [
            Profile(
                first_name=first,
                last_name=last,
                profession=profession,
                balance=Decimal(balance),
                role=role.value,
            )
            for first, last, profession, balance, role in _SEED_PROFILES
        ]
        session.add_all(profiles)
        session.flush()

        for client_idx, contractor_idx, status, jobs in _SEED_CONTRACTS:
            contract = Contract(
                terms="bla bla bla",
                status=status.value,
                client_id=profiles[client_idx].id,
                contractor_id=profiles[contractor_idx].id,
            )
            session.add(contract)
            session.flush()
            for description, price, paid in jobs:
                session.add(Job(
                    description=description,
                    price=Decimal(price),
                    paid=paid,
                    payment_date=_SEED_PAYMENT_DATE if paid else None,
                    contract_id=contract.id,
                ))

        return [
            {"id": str(p.id), "name": p.full_name, "role": p.role}
            for p in profiles
        ]


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.asdict(value)
    if isinstance(value, list):
        return [_to_jsonable(v) for v in value]
    return value


def _emit(value: Any, stream: TextIO, indent: int | None = 2) -> None:
    stream.write(json.dumps(_to_jsonable(value), default=str, indent=indent))
    stream.write("\n")


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="settle",
        description="Contractor payment settlement kernel",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument("--database-url", help="Override the configured database URL")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create the schema")
    sub.add_parser("seed", help="Create the schema and insert demo data")

    def with_actor(name: str, help_text: str) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text)
        p.add_argument("--as", dest="actor", required=True, help="Acting profile id")
        return p

    with_actor("contracts", "List the caller's active contracts")
    with_actor("unpaid-jobs", "List unpaid jobs under the caller's active contracts")

    p = with_actor("contract", "Show one of the caller's contracts")
    p.add_argument("contract_id")

    p = with_actor("pay-job", "Pay for a job")
    p.add_argument("job_id")

    p = with_actor("deposit", "Deposit into a client's balance")
    p.add_argument("target_id")
    p.add_argument("amount")

    for name, help_text in (
        ("best-profession", "Profession that earned the most"),
        ("best-clients", "Clients that paid the most"),
    ):
        p = with_actor(name, help_text)
        p.add_argument("--start", help="Exclusive lower bound (ISO-8601)")
        p.add_argument("--end", help="Exclusive upper bound (ISO-8601)")
        if name == "best-clients":
            p.add_argument("--limit", type=int)

    return parser


def _dispatch(args: argparse.Namespace, orchestrator: MarketplaceOrchestrator) -> Any:
    command = args.command
    if command == "contracts":
        return orchestrator.list_active_contracts(args.actor)
    if command == "unpaid-jobs":
        return orchestrator.list_unpaid_jobs(args.actor)
    if command == "contract":
        return orchestrator.get_contract(args.actor, args.contract_id)
    if command == "pay-job":
        return orchestrator.pay_job(args.actor, args.job_id)
    if command == "deposit":
        return orchestrator.deposit(args.actor, args.target_id, args.amount)
    if command == "best-profession":
        return {"profession": orchestrator.best_profession(args.actor, args.start, args.end)}
    if command == "best-clients":
        return orchestrator.best_clients(args.actor, args.start, args.end, args.limit)
    raise ValueError(f"Unknown command: {command}")


def _load_config(args: argparse.Namespace) -> SettlementConfig:
    config = get_active_config(args.config)
    if args.database_url:
        config = dataclasses.replace(
            config,
            database=dataclasses.replace(config.database, url=args.database_url),
        )
    return config


def main(
    argv: list[str] | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
) -> int:
    out = stdout or sys.stdout
    err = stderr or sys.stderr
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(args)
        configure_logging(level=config.logging.level, stream=err)

        db_cfg = config.database
        database = create_database(
            db_cfg.url,
            echo=db_cfg.echo,
            pool_size=db_cfg.pool_size,
            max_overflow=db_cfg.max_overflow,
            pool_timeout=db_cfg.pool_timeout,
            pool_recycle=db_cfg.pool_recycle,
        )
        try:
            if args.command == "init-db":
                database.create_tables()
                result: Any = {"status": "ok"}
            elif args.command == "seed":
                database.create_tables()
                result = seed(database)
            else:
                result = _dispatch(args, MarketplaceOrchestrator(database, config))
        finally:
            database.dispose()
    except SettlementKernelError as exc:
        _emit({"error": exc.code, "message": str(exc)}, err, indent=None)
        return 1

    _emit(result, out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
