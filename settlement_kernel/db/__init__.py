"""Database layer - engine, base classes, types."""

from settlement_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from settlement_kernel.db.engine import Database, create_database, is_lock_contention
from settlement_kernel.db.types import Money, ensure_utc, to_money

__all__ = [
    "Database",
    "create_database",
    "is_lock_contention",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "Money",
    "ensure_utc",
    "to_money",
]
