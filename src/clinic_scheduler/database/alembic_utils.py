"""Alembic helpers used by the ``db`` CLI commands."""

import os
from pathlib import Path

import alembic.command
import alembic.config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from .connection import get_engine

# src/clinic_scheduler/database -> project root
PROJECT_ROOT = Path(__file__).resolve().parents[3]


class AlembicManager:
    """Reads schema revisions and runs upgrades.

    ``alembic.ini`` is looked up in the working directory first, then in the
    project root. ``script_location`` is made absolute so commands work from any
    directory.
    """

    def __init__(self):
        self.alembic_cfg: alembic.config.Config | None = None
        for root in (Path(os.getcwd()), PROJECT_ROOT):
            ini_path = root / "alembic.ini"
            if ini_path.exists():
                logger.trace("Loading alembic configuration from: {}", ini_path)
                self.alembic_cfg = alembic.config.Config(str(ini_path))
                self.alembic_cfg.set_main_option("script_location", str(root / "migrations"))
                break
        else:
            logger.error("Alembic configuration file not found in cwd or project root")

    def get_current_revision(self) -> str | None:
        """Revision recorded in the database, or None when unversioned or unreachable."""
        try:
            with get_engine().connect() as connection:
                return MigrationContext.configure(connection).get_current_revision()
        except SQLAlchemyError as e:
            logger.error("Failed to get current revision: {}", e)
            return None

    def get_head_revision(self) -> str | None:
        """Head revision of the migration scripts."""
        if not self.alembic_cfg:
            return None
        return ScriptDirectory.from_config(self.alembic_cfg).get_current_head()

    def needs_migration(self) -> bool:
        current_rev = self.get_current_revision()
        head_rev = self.get_head_revision()
        if head_rev is None:
            logger.warning("No head revision found - no alembic scripts available")
            return False
        return current_rev != head_rev

    def perform_migration(self, target: str = "head") -> bool:
        """Upgrade the database to ``target``.

        Returns:
            True if migration successful, False otherwise
        """
        if not self.alembic_cfg:
            logger.error("Alembic configuration not initialized")
            return False
        try:
            logger.info("Starting database migration to '{}'", target)
            alembic.command.upgrade(self.alembic_cfg, target)
        except (OSError, ValueError, RuntimeError, SQLAlchemyError) as e:
            logger.error("Migration failed: {}", e)
            return False
        logger.info("Database migration to '{}' completed successfully", target)
        return True
