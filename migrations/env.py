import logging
from logging.config import fileConfig

from alembic import context
from dotenv import load_dotenv
from loguru import logger
from sqlalchemy import engine_from_config, pool
from sqlmodel import SQLModel

load_dotenv()

from clinic_scheduler.logging import InterceptHandler  # noqa: E402

# Import all models to ensure they're registered with SQLModel metadata
from clinic_scheduler.models import db_model  # noqa: F401, E402
from clinic_scheduler.settings import get_settings  # noqa: E402

settings = get_settings()

# this is the Alembic Config object, which provides
# access to the values within the .ini file in use.
config = context.config

# Override sqlalchemy.url in alembic.ini with the URL from our application
if settings.database_url:
    config.set_main_option("sqlalchemy.url", settings.database_url)

# Interpret the config file for Python logging,
# but redirect everything through loguru
if config.config_file_name is not None:
    fileConfig(config.config_file_name, disable_existing_loggers=False)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in logging.root.manager.loggerDict:
        logging_logger = logging.getLogger(name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False

# Set SQLModel metadata as the target for migrations
target_metadata = SQLModel.metadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode.

    This configures the context with just a URL and emits the SQL to the
    script output instead of executing it.
    """
    url = config.get_main_option("sqlalchemy.url")
    logger.info("Running offline migrations")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        render_as_batch=True,
    )

    with context.begin_transaction():
        context.run_migrations()
        logger.success("Offline migration completed successfully")


def run_migrations_online() -> None:
    """Run migrations in 'online' mode against a live connection."""
    logger.info("Setting up database connection for online migrations")

    engine_config = config.get_section(config.config_ini_section, {})
    engine_config["sqlalchemy.echo"] = str(settings.sql_log).lower()

    connectable = engine_from_config(
        engine_config,
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        logger.info("Database connection established")
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            # SQLite needs batch mode for ALTER TABLE
            render_as_batch=True,
            compare_type=True,
        )

        with context.begin_transaction():
            context.run_migrations()
            logger.success("Online migration completed successfully")


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
