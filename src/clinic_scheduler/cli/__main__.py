"""CLI entry point.

Usage:
    python -m clinic_scheduler.cli db status
    python -m clinic_scheduler.cli db upgrade
    clinic-scheduler-cli db seed
    clinic-scheduler-cli reminders scan
"""

import sys

from loguru import logger

import clinic_scheduler
from clinic_scheduler.cli.app import app


def _configure_cli_logging() -> None:
    """Configure loguru for CLI (compact format: level + message, no timestamps)."""
    logger.remove()  # Remove default handler
    logger.add(
        sys.stderr,
        format="<level>{level: <8}</level> | <level>{message}</level>",
        level="INFO",
        colorize=True,
    )
    logger.enable(clinic_scheduler.__name__)


def main() -> None:
    """CLI entry point with logging configuration."""
    _configure_cli_logging()
    app()


if __name__ == "__main__":
    main()
