"""Health check service module."""

from enum import StrEnum
from functools import lru_cache
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import text

from clinic_scheduler.cache import CacheBackend, get_cache_backend
from clinic_scheduler.database import get_engine
from clinic_scheduler.utils.version import VersionInfo, get_version


class ServerState(StrEnum):
    """Overall server state derived from the individual checks."""

    OPERATIONAL = "operational"
    DEGRADED = "degraded"
    ERROR = "error"


class CheckResult(BaseModel):
    """Outcome of one health check."""

    check: str
    success: bool
    critical: bool = True
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class HealthCheckResult(BaseModel):
    """Pydantic model representing the full health check response."""

    status: str
    server_state: ServerState
    version_info: VersionInfo
    checks: list[CheckResult] = Field(default_factory=list)


class HealthCheckService:
    """Checks the database (critical) and the cache backend (non-critical).

    A failed cache check only degrades the server: the caches fall back to
    pass-through and socket tokens cannot be stored.
    """

    def __init__(self, cache_backend: CacheBackend | None = None):
        self._cache_backend = cache_backend

    @property
    def cache_backend(self) -> CacheBackend:
        return self._cache_backend or get_cache_backend()

    def check_database(self) -> CheckResult:
        try:
            with get_engine().connect() as connection:
                connection.execute(text("SELECT 1"))
        except (SQLAlchemyError, ValueError) as e:
            logger.warning("Database health check failed: {}", e)
            return CheckResult(check="database_connection", success=False, message=f"Database unreachable: {e}")
        return CheckResult(check="database_connection", success=True, message="Database connection is healthy")

    def check_cache(self) -> CheckResult:
        backend = self.cache_backend
        details = {"backend": backend.name}
        if backend.ping():
            return CheckResult(check="cache", success=True, critical=False, message="Cache backend is reachable", details=details)
        logger.warning("Cache health check failed ({})", backend.name)
        return CheckResult(check="cache", success=False, critical=False, message="Cache backend is unreachable", details=details)

    def perform_health_check(self) -> HealthCheckResult:
        """Run every check and derive the server state."""
        checks = [self.check_database(), self.check_cache()]

        if any(not c.success and c.critical for c in checks):
            server_state = ServerState.ERROR
        elif any(not c.success for c in checks):
            server_state = ServerState.DEGRADED
        else:
            server_state = ServerState.OPERATIONAL

        return HealthCheckResult(
            status="error" if server_state == ServerState.ERROR else "ok",
            server_state=server_state,
            version_info=get_version(),
            checks=checks,
        )


@lru_cache
def get_health_check_service() -> HealthCheckService:
    """Return cached process-wide ``HealthCheckService`` (singleton)."""
    return HealthCheckService()
