"""CLI module for the scheduling server.

Provides command-line interface for administrative tasks: schema migrations,
demo data and one-off reminder scans.
"""

from clinic_scheduler.cli.app import app

__all__ = ["app"]
