"""API dependencies for FastAPI endpoints."""

from collections.abc import Callable
from typing import Literal, TypeVar
from uuid import UUID

from fastapi import Depends, Request
from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from clinic_scheduler.constants import IDENTITY_DOCTOR, IDENTITY_PATIENT, SESSION_USER_KEY
from clinic_scheduler.exceptions import AuthenticationError
from clinic_scheduler.services.registry import get_service_registry

T = TypeVar("T")


def service[T](service_type: type[T]) -> Callable[[], T]:
    """FastAPI dependency that provides a service by type.

    Args:
        service_type: The type of service to retrieve from the registry

    Returns:
        A callable that returns the requested service instance

    Example:
        ```python
        @router.get("/endpoint")
        def endpoint(service: MyService = Depends(service(MyService))):
            return service.do_something()
        ```
    """

    def get_service() -> T:
        registry = get_service_registry()
        return registry.get(service_type)

    return get_service


class Identity(BaseModel):
    """Who is calling, as placed on the session by the login flow."""

    id: UUID
    type: Literal["doctor", "patient"]


def get_current_identity(request: Request) -> Identity | None:
    """Read the identity from the signed session cookie, or None when absent or malformed."""
    user = request.session.get(SESSION_USER_KEY)
    if not user:
        return None
    try:
        return Identity.model_validate(user)
    except PydanticValidationError:
        logger.debug("Ignoring malformed session identity")
        return None


def require_doctor(identity: Identity | None = Depends(get_current_identity)) -> UUID:
    """Id of the calling doctor. Raises AuthenticationError otherwise."""
    if identity is None or identity.type != IDENTITY_DOCTOR:
        raise AuthenticationError()
    return identity.id


def require_patient(identity: Identity | None = Depends(get_current_identity)) -> UUID:
    """Id of the calling patient. Raises AuthenticationError otherwise."""
    if identity is None or identity.type != IDENTITY_PATIENT:
        raise AuthenticationError()
    return identity.id
