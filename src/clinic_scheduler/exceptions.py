"""Common exceptions for the server.

Every error the scheduling core detects itself derives from ``SchedulingError``
and carries the message and HTTP status reported to the caller. Exception
handlers in ``exception_handlers`` turn them into ``{"success": false, "message": ...}``.
"""

from uuid import UUID


class SchedulingError(Exception):
    """Base class for errors reported to the caller."""

    status_code: int = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(SchedulingError):
    """Malformed, missing or contradictory input. Nothing was mutated."""

    status_code = 400


class InvalidIdError(SchedulingError):
    """An identifier string is not a structurally valid id.

    Raised before any persistence call is made.
    """

    status_code = 400

    def __init__(self, resource_type: str, identifier: str):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"Invalid {resource_type.lower()} ID")


class NotFoundError(SchedulingError):
    """Raised when a well-formed id matches no resource owned by the caller."""

    status_code = 404

    def __init__(self, resource_type: str, identifier: str | UUID):
        self.resource_type = resource_type
        self.identifier = identifier
        super().__init__(f"{resource_type} not found")


class AuthenticationError(SchedulingError):
    """No identity of the required type on the session."""

    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class PersistenceError(SchedulingError):
    """The repository layer failed; surfaced as a generic failure."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


class TransientInfraError(Exception):
    """Cache or real-time transport unreachable.

    Never reported to the caller: cache and dispatch code log it and carry on.
    """
