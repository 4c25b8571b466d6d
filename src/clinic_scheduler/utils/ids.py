"""Identifier parsing."""

from uuid import UUID

from clinic_scheduler.exceptions import InvalidIdError


def parse_id(value: str | UUID | None, resource_type: str) -> UUID:
    """Parse a client-supplied identifier.

    Args:
        value: Identifier as received from the client
        resource_type: Human readable resource name used in the error message

    Returns:
        The parsed UUID

    Raises:
        InvalidIdError: If the value is not a structurally valid UUID
    """
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str):
        raise InvalidIdError(resource_type, str(value))
    try:
        return UUID(value.strip())
    except ValueError:
        raise InvalidIdError(resource_type, value) from None
