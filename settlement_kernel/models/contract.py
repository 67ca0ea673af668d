"""
Module: settlement_kernel.models.contract
Responsibility: ORM persistence for agreements binding one client profile to
    one contractor profile.
Architecture position: Kernel > Models.  May import from db/ and domain/roles
    only.

Invariants enforced:
    - Exactly one client and one contractor per contract (both NOT NULL).
    - A contract is payable iff status != terminated.
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from settlement_kernel.db.base import TrackedBase, UUIDString
from settlement_kernel.domain.roles import OwnerColumn
from settlement_kernel.models.profile import Profile


class ContractStatus(str, Enum):
    """Contract lifecycle status."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    TERMINATED = "terminated"


class Contract(TrackedBase):
    """
    An agreement between a client and a contractor.

    Guarantees:
        - client_id and contractor_id reference existing profiles.
        - is_active is False only for terminated contracts.
    """

    __tablename__ = "contracts"

    __table_args__ = (
        Index("idx_contract_client", "client_id"),
        Index("idx_contract_contractor", "contractor_id"),
        Index("idx_contract_status", "status"),
    )

    terms: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    status: Mapped[ContractStatus] = mapped_column(
        String(20),
        nullable=False,
        default=ContractStatus.NEW,
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("profiles.id"),
        nullable=False,
    )

    contractor_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("profiles.id"),
        nullable=False,
    )

    client: Mapped[Profile] = relationship(foreign_keys=[client_id])
    contractor: Mapped[Profile] = relationship(foreign_keys=[contractor_id])

    @property
    def is_active(self) -> bool:
        return self.status != ContractStatus.TERMINATED

    @classmethod
    def owner_attribute(cls, column: OwnerColumn):
        """Map an ownership column to the mapped attribute it names."""
        if column is OwnerColumn.CLIENT:
            return cls.client_id
        return cls.contractor_id

    def __repr__(self) -> str:
        return f"<Contract {self.id}: {self.status}>"
