"""
Module: settlement_kernel.models.job
Responsibility: ORM persistence for billable units of work under a contract.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - price > 0 (CHECK constraint) and never changed by settlement.
    - paid is monotonic: false -> true exactly once, together with
      payment_date, inside the settlement transaction.  The settlement engine
      writes both through ``UPDATE ... WHERE paid = false`` so the transition
      cannot be applied twice.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase, UUIDString
from settlement_kernel.models.contract import Contract


class Job(TrackedBase):
    """A billable unit of work, paid at most once."""

    __tablename__ = "jobs"

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_job_price_positive"),
        Index("idx_job_contract", "contract_id"),
        Index("idx_job_paid", "paid"),
        Index("idx_job_payment_date", "payment_date"),
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    price: Mapped[Decimal] = mapped_column(
        nullable=False,
    )

    paid: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    payment_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    contract_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("contracts.id"),
        nullable=False,
    )

    contract: Mapped[Contract] = relationship()

    def __repr__(self) -> str:
        state = "paid" if self.paid else "unpaid"
        return f"<Job {self.id}: {self.price} ({state})>"
