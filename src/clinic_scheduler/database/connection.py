"""Database configuration and connection setup.

The SQLModel engine is created lazily, after application settings have been
loaded and possibly overridden by CLI flags, so importing this module never
requires ``CLINIC_SCHEDULER_DATABASE_URL`` to be set.
"""

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy.engine import Engine, make_url
from sqlmodel import Session, create_engine, text
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from clinic_scheduler.exceptions import SchedulingError
from clinic_scheduler.settings import get_settings

_engine: Engine | None = None


def _build_engine() -> Engine:
    """Create and return a new engine from current settings.

    Raises:
        ValueError: if database URL not configured.
    """
    settings = get_settings()
    database_url = settings.database_url
    if not database_url:
        raise ValueError("Database URL missing: provide CLINIC_SCHEDULER_DATABASE_URL env or --database-url CLI argument")

    if make_url(database_url).get_backend_name() == "sqlite":
        engine_local = create_engine(database_url, echo=settings.sql_log, connect_args={"check_same_thread": False})
    else:
        engine_local = create_engine(
            database_url,
            pool_pre_ping=True,
            pool_recycle=3600,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            echo=settings.sql_log,
            connect_args={"connect_timeout": 10},
        )
    logger.info("SQL echo is {}", "enabled" if settings.sql_log else "disabled")
    return engine_local


def get_engine() -> Engine:
    """Return a singleton engine instance, creating it lazily."""
    global _engine
    if _engine is None:
        _engine = _build_engine()
    return _engine


def set_engine(engine: Engine | None) -> None:
    """Replace the engine (tests and scripts that manage their own engine)."""
    global _engine
    _engine = engine


def is_initialized() -> bool:
    """Check if database already initialized"""
    return _engine is not None


def dispose_db() -> None:
    """Dispose of the database engine if it was created."""
    global _engine
    if _engine is not None:
        logger.info("Closing database connections")
        _engine.dispose()
        _engine = None


@retry(
    stop=stop_after_attempt(5),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
    retry=retry_if_exception_type(Exception),
    before_sleep=before_sleep_log(logger, "DEBUG"),
)
def _create_session() -> Session:
    """Create a database session with retry logic.

    A failed connection disposes the engine so the next attempt builds a
    fresh one.

    Raises:
        Exception: If all retry attempts fail
    """
    global _engine
    try:
        session = Session(get_engine())
        session.execute(text("SELECT 1"))
        return session
    except Exception as e:
        if _engine is not None:
            logger.warning("Database connection failed, disposing engine for retry...")
            _engine.dispose()
            _engine = None
        logger.error("Failed to create database session: {}", e)
        raise


@contextmanager
def borrow_db_session() -> Generator[Session]:
    """Context manager for database work outside a request.

    Used by the reminder scanner and the CLI. For FastAPI route handlers, use
    ``get_db_session`` as a dependency instead.
    """
    session = _create_session()
    session_id = id(session)

    try:
        yield session
    except SchedulingError:
        # Domain errors are answered by the exception handlers, not logged here.
        raise
    except Exception as e:  # noqa: BLE001
        logger.error("Error during database session {}: {}", session_id, e)
        raise
    finally:
        session.close()
        logger.trace("Database session {} closed and resources released", session_id)


def get_db_session() -> Generator[Session]:
    """FastAPI dependency yielding a database session.

    Usage in route:
        def endpoint(session: Session = Depends(get_db_session)): ...
    """
    with borrow_db_session() as session:
        yield session
