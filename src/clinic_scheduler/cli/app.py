"""Main CLI application."""

import typer

from clinic_scheduler.cli.commands import db, reminders
from clinic_scheduler.services.di import register_all_services
from clinic_scheduler.services.registry import get_service_registry
from clinic_scheduler.settings import get_settings

app = typer.Typer(
    name="clinic-scheduler-cli",
    help="Clinic scheduler CLI - Administrative tools",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    database_url: str = typer.Option(
        None,
        "--database-url",
        help="Database URL (overrides CLINIC_SCHEDULER_DATABASE_URL)",
        metavar="<dsn>",
    ),
):
    """Global options for all commands."""
    if database_url is not None:
        get_settings().database_url = database_url
    register_all_services(get_service_registry())


# Register command groups
app.add_typer(db.app, name="db")
app.add_typer(reminders.app, name="reminders")
