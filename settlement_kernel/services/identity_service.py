"""
Identity resolution for inbound calls.

The transport layer extracts a raw profile identifier (for HTTP, the
``profile_id`` header) and hands it here.  Resolution either yields an
``ActingProfile`` or fails with ``UnauthenticatedError``; nothing else about
the request is inspected.
"""

from uuid import UUID

from settlement_kernel.domain.dtos import ActingProfile
from settlement_kernel.domain.roles import ProfileRole
from settlement_kernel.exceptions import UnauthenticatedError
from settlement_kernel.logging_config import get_logger
from settlement_kernel.models import Profile
from settlement_kernel.services.base import BaseService
from settlement_kernel.utils.identifiers import parse_uuid

logger = get_logger("services.identity")


class IdentityService(BaseService):
    """Resolves the acting profile for a call."""

    def resolve_acting_profile(self, profile_ref: UUID | str | None) -> ActingProfile:
        """
        Resolve a raw profile reference to the acting profile.

        Raises:
            UnauthenticatedError: If the reference is missing, malformed,
                or names no profile.
        """
        profile_id = parse_uuid(profile_ref)
        if profile_id is None:
            logger.info("identity_rejected", extra={"reason": "malformed", "profile_ref": str(profile_ref)})
            raise UnauthenticatedError(None if profile_ref is None else str(profile_ref))

        profile = self.session.get(Profile, profile_id)
        if profile is None:
            logger.info("identity_rejected", extra={"reason": "unknown", "profile_ref": str(profile_id)})
            raise UnauthenticatedError(str(profile_id))

        return ActingProfile(id=profile.id, role=ProfileRole(profile.role))
