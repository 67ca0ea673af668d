"""
Identifier parsing utilities.

Identifiers arrive from the transport layer as strings.  A malformed
identifier is reported by the caller as the relevant "not found" error, so
parsing returns None instead of raising.
"""

from uuid import UUID


def parse_uuid(value: UUID | str | None) -> UUID | None:
    """
    Parse a UUID from a UUID or its string form.

    Returns:
        The UUID, or None if value is None or not a valid UUID.

    Example:
        >>> parse_uuid("550e8400-e29b-41d4-a716-446655440000")
        UUID('550e8400-e29b-41d4-a716-446655440000')
        >>> parse_uuid("42") is None
        True
    """
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        return None
    try:
        return UUID(value.strip())
    except ValueError:
        return None
