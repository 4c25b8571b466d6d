"""Reminder commands."""

import typer
from rich.console import Console
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from clinic_scheduler.reminders import get_reminder_scanner

app = typer.Typer(help="Appointment reminders")
console = Console()


@app.command()
def due():
    """List the reminders the running server will send on its next tick.

    Read-only: reminders are delivered and stamped by the server's scanner,
    which owns the patients' socket connections.

    Examples:
        clinic-scheduler-cli reminders due
    """
    try:
        reminders = get_reminder_scanner().list_due()
    except (SQLAlchemyError, ValueError) as e:
        console.print(f"[red]Reminder lookup failed: {e}[/red]")
        raise typer.Exit(1) from None

    if not reminders:
        console.print("[green]No reminders due[/green]")
        return

    table = Table(title="Due reminders")
    table.add_column("Event")
    table.add_column("Patient")
    table.add_column("Start (UTC)")
    table.add_column("Title")
    for reminder in reminders:
        table.add_row(
            str(reminder.event_id),
            str(reminder.patient_id),
            reminder.start_instant.isoformat(timespec="seconds"),
            reminder.title or "[dim]none[/dim]",
        )
    console.print(table)
    console.print(f"{len(reminders)} reminder(s) due")
