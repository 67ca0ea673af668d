"""
Module: settlement_kernel.db.types
Responsibility: Helpers for monetary and temporal values.  Centralizes
    coercion so that every service and selector handles money identically.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere in the kernel.  All monetary amounts are Decimal.
    - Money columns hold exactly MONEY_DECIMAL_PLACES fractional digits on
      every backend.  PostgreSQL stores Numeric(38, 9); SQLite, which has no
      decimal type, stores the amount as a scaled integer so that
      ``balance - price`` and ``balance >= price`` are integer arithmetic.
    - Timestamps leaving the kernel are timezone-aware UTC.

Failure modes:
    - On SQLite, amounts above about 9.2 billion overflow the 64-bit
      integer column.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import BigInteger, Numeric
from sqlalchemy.types import TypeDecorator

# 38 digits total, 9 decimal places
MONEY_DECIMAL_PLACES = 9
_MONEY_QUANTUM = Decimal(1).scaleb(-MONEY_DECIMAL_PLACES)


class Money(TypeDecorator):
    """
    Monetary amount column.

    Guarantees:
        - process_bind_param: Decimal or int in, rounded half-up to
          MONEY_DECIMAL_PLACES.  On SQLite the value is sent as
          ``amount * 10**MONEY_DECIMAL_PLACES``.
        - process_result_value: Decimal out with MONEY_DECIMAL_PLACES
          places, including for ``SUM()`` over the column.
    """

    impl = Numeric(38, MONEY_DECIMAL_PLACES)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(Numeric(38, MONEY_DECIMAL_PLACES))

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        amount = to_money(value).quantize(_MONEY_QUANTUM, rounding=ROUND_HALF_UP)
        if dialect.name == "sqlite":
            return int(amount.scaleb(MONEY_DECIMAL_PLACES))
        return amount

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if dialect.name == "sqlite":
            return Decimal(int(value)).scaleb(-MONEY_DECIMAL_PLACES)
        return Decimal(value).quantize(_MONEY_QUANTUM)


def money_from_str(value: str) -> Decimal:
    """
    Parse a monetary amount from a string.

    Raises:
        ValueError: If value is not a finite number.
    """
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Not a monetary amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a monetary amount: {value!r}")
    return amount


def to_money(value: Decimal | int | str) -> Decimal:
    """
    Coerce a caller-supplied amount to Decimal.

    Floats are rejected.

    Raises:
        ValueError: If value is a float, bool, or not a finite number.
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError(f"Monetary amounts must be Decimal, int or str, got {type(value).__name__}")
    if isinstance(value, Decimal):
        if not value.is_finite():
            raise ValueError(f"Not a monetary amount: {value!r}")
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, str):
        return money_from_str(value.strip())
    raise ValueError(f"Not a monetary amount: {value!r}")


def ensure_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a datetime to timezone-aware UTC.

    Naive values are taken to be UTC already; SQLite returns stored
    timestamps without an offset.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
