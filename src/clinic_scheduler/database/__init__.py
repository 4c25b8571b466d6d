"""Database package: engine/session management and Alembic helpers."""

from .alembic_utils import AlembicManager
from .connection import borrow_db_session, dispose_db, get_db_session, get_engine, is_initialized, set_engine

__all__ = [
    "borrow_db_session",
    "get_db_session",
    "get_engine",
    "set_engine",
    "is_initialized",
    "dispose_db",
    "AlembicManager",
]
