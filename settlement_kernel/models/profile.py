"""
Module: settlement_kernel.models.profile
Responsibility: ORM persistence for participants (clients, contractors, and
    administrators) and their scalar monetary balance.
Architecture position: Kernel > Models.  May import from db/ and domain/roles
    only.  MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - balance >= 0 at all times.  The CHECK constraint is the last line of
      defence; the settlement engine never relies on it and instead debits
      through a conditional UPDATE (balance >= price).
    - balance is only ever changed by single-statement UPDATEs
      (decrement-if-sufficient, unconditional increment), never by
      read-modify-write in Python.

Failure modes:
    - IntegrityError if a write would drive balance negative.
"""

from decimal import Decimal

from sqlalchemy import CheckConstraint, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from settlement_kernel.db.base import TrackedBase
from settlement_kernel.domain.roles import ProfileRole


class Profile(TrackedBase):
    """
    A participant account with a role and monetary balance.

    Non-goals:
        - No transaction history is stored; the balance is the only record
          of settled funds.
    """

    __tablename__ = "profiles"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_profile_balance_non_negative"),
        Index("idx_profile_role", "role"),
    )

    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Display attribute, meaningful for contractors
    profession: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )

    balance: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    role: Mapped[ProfileRole] = mapped_column(
        String(20),
        nullable=False,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<Profile {self.id}: {self.full_name} ({self.role})>"
