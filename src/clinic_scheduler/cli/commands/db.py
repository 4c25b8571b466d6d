"""Database management commands."""

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from clinic_scheduler.database import AlembicManager, borrow_db_session
from clinic_scheduler.database.seed import seed_directory
from clinic_scheduler.services.patient_service import PatientService
from clinic_scheduler.services.registry import get_service_registry

app = typer.Typer(help="Database operations")
console = Console()


@app.command()
def status():
    """Show the current and head schema revisions.

    Exits with code 1 when the database is behind the migration scripts.

    Examples:
        clinic-scheduler-cli db status
    """
    alembic_manager = AlembicManager()
    current = alembic_manager.get_current_revision()
    head = alembic_manager.get_head_revision()

    table = Table(title="Database schema")
    table.add_column("Revision")
    table.add_column("Value")
    table.add_row("Current", current or "[dim]none[/dim]")
    table.add_row("Head", head or "[dim]none[/dim]")
    console.print(table)

    if current != head:
        console.print("[yellow]Database upgrade needed, run 'db upgrade'[/yellow]")
        raise typer.Exit(1)
    console.print("[green]Database schema is up to date[/green]")


@app.command()
def upgrade(
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt and proceed with migration automatically",
    ),
):
    """Upgrade database to latest schema version.

    Examples:
        clinic-scheduler-cli db upgrade
        clinic-scheduler-cli db upgrade --yes
    """
    console.print("[bold]Upgrading database to latest version...[/bold]\n")

    alembic_manager = AlembicManager()
    if not alembic_manager.needs_migration():
        console.print("[green]Database is already at latest version[/green]")
        console.print(f"[dim]Current revision: {alembic_manager.get_current_revision() or 'Unknown'}[/dim]")
        return

    console.print("[yellow]Database upgrade needed:[/yellow]")
    console.print(f"[dim]Current: {alembic_manager.get_current_revision() or 'none'}[/dim]")
    console.print(f"[dim]Head: {alembic_manager.get_head_revision()}[/dim]\n")

    if not yes and not typer.confirm("Proceed with database upgrade?"):
        console.print("[yellow]Upgrade cancelled.[/yellow]")
        raise typer.Exit(0)

    if not alembic_manager.perform_migration():
        console.print("[red]Database upgrade failed[/red]")
        raise typer.Exit(1)
    console.print("[bold green]Database upgrade completed successfully![/bold green]")


@app.command()
def seed(
    reset: bool = typer.Option(
        False,
        "--reset",
        help="Delete every event, doctor and patient before seeding",
    ),
):
    """Insert the demo doctors and patients.

    Examples:
        clinic-scheduler-cli db seed
        clinic-scheduler-cli db seed --reset
    """
    if reset and not typer.confirm("This deletes all events, doctors and patients. Continue?"):
        console.print("[yellow]Seed cancelled.[/yellow]")
        raise typer.Exit(0)

    try:
        with borrow_db_session() as session:
            doctors, patients = seed_directory(session, reset=reset)
    except (SQLAlchemyError, ValueError) as e:
        console.print(f"[red]Seed failed: {e}[/red]")
        raise typer.Exit(1) from None

    get_service_registry().get(PatientService).invalidate_directory()
    console.print(f"[green]Inserted {doctors} doctor(s) and {patients} patient(s)[/green]")
