"""
Roles and role-derived ownership.

Pure domain code: no I/O, no ORM imports.  ``owner_column`` replaces
string-keyed foreign-key selection ("ClientId" vs "ContractorId") with a
typed enum so callers cannot ask for a column that does not exist.
"""

from enum import Enum

from settlement_kernel.exceptions import ForbiddenError


class ProfileRole(str, Enum):
    """Participant role.  ADMIN sits outside settlement."""

    CLIENT = "client"
    CONTRACTOR = "contractor"
    ADMIN = "admin"


class OwnerColumn(Enum):
    """Which side of a contract a profile owns."""

    CLIENT = "client_id"
    CONTRACTOR = "contractor_id"


def owner_column(role: ProfileRole | str, operation: str = "ownership") -> OwnerColumn:
    """
    Map a role to the contract column that records its ownership.

    Raises:
        ForbiddenError: If the role owns no side of a contract (admin).
    """
    role = ProfileRole(role)
    if role is ProfileRole.CLIENT:
        return OwnerColumn.CLIENT
    if role is ProfileRole.CONTRACTOR:
        return OwnerColumn.CONTRACTOR
    raise ForbiddenError(operation, role.value)
