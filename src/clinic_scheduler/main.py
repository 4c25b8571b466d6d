"""Main entry point for the scheduling server using Typer and Pydantic Settings."""

import typer
import uvicorn
from loguru import logger

from clinic_scheduler.logging import setup_logging
from clinic_scheduler.settings import get_settings

app = typer.Typer()


HOST_OPTION = typer.Option(
    None,
    help="Host to bind the server to (overrides CLINIC_SCHEDULER_HOST)",
    metavar="<server>",
)  # fmt: skip
PORT_OPTION = typer.Option(
    None,
    help="Port to bind the server to (overrides CLINIC_SCHEDULER_PORT)",
    metavar="<port>",
)  # fmt: skip
RELOAD_OPTION = typer.Option(
    None,
    help="Enable/disable auto-reload (overrides CLINIC_SCHEDULER_RELOAD)",
)  # fmt: skip
LOG_LEVEL_OPTION = typer.Option(
    None,
    help="Log level (overrides CLINIC_SCHEDULER_LOG_LEVEL)",
    metavar="<level>",
    case_sensitive=False,
)  # fmt: skip
SQL_LOG_OPTION = typer.Option(
    None,
    help="Enable/disable SQL query logging (overrides CLINIC_SCHEDULER_SQL_LOG)",
)  # fmt: skip
DATABASE_URL_OPTION = typer.Option(
    None,
    help="Database URL (overrides CLINIC_SCHEDULER_DATABASE_URL)",
    metavar="<dsn>",
)  # fmt: skip
REDIS_URL_OPTION = typer.Option(
    None,
    help="Redis URL (overrides CLINIC_SCHEDULER_REDIS_URL)",
    metavar="<url>",
)  # fmt: skip
REMINDERS_OPTION = typer.Option(
    None,
    "--reminders/--no-reminders",
    help="Run the reminder scanner in this process (overrides CLINIC_SCHEDULER_REMINDERS_ENABLED)",
)  # fmt: skip


def _update_settings(
    host: str | None,
    port: int | None,
    log_level: str | None,
    reload: bool | None,
    sql_log: bool | None,
    database_url: str | None,
    redis_url: str | None,
    reminders: bool | None,
) -> None:
    """Update the cached settings with CLI overrides."""
    settings = get_settings()

    if host is not None:
        settings.host = host
    if port is not None:
        settings.port = port
    if log_level is not None:
        settings.log_level = log_level.upper()
    if reload is not None:
        settings.reload = reload
    if sql_log is not None:
        settings.sql_log = sql_log
    if database_url is not None:
        settings.database_url = database_url
    if redis_url is not None:
        settings.redis_url = redis_url
    if reminders is not None:
        settings.reminders_enabled = reminders


@app.command()
def run(
    host: str = HOST_OPTION,
    port: int = PORT_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
    reload: bool = RELOAD_OPTION,
    sql_log: bool = SQL_LOG_OPTION,
    database_url: str = DATABASE_URL_OPTION,
    redis_url: str = REDIS_URL_OPTION,
    reminders: bool = REMINDERS_OPTION,
) -> None:
    """Run the scheduling server."""
    _update_settings(host, port, log_level, reload, sql_log, database_url, redis_url, reminders)

    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Starting scheduling server on {}:{}", settings.host, settings.port)
    logger.info("Reload: {}", settings.reload)

    # Reload mode needs an import string
    if settings.reload:
        uvicorn.run(
            "clinic_scheduler.app:app",
            host=settings.host,
            port=settings.port,
            reload=True,
            log_level=settings.log_level.lower(),
        )
    else:
        from clinic_scheduler.app import app as fastapi_app

        uvicorn.run(
            fastapi_app,
            host=settings.host,
            port=settings.port,
            reload=False,
            log_level=settings.log_level.lower(),
        )


if __name__ == "__main__":
    app()
