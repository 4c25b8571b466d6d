"""Background reminders."""

from functools import lru_cache

from clinic_scheduler.realtime import get_notification_dispatcher
from clinic_scheduler.reminders.scanner import DueReminder, ReminderScanner
from clinic_scheduler.settings import get_settings

__all__ = ["DueReminder", "ReminderScanner", "get_reminder_scanner"]


@lru_cache
def get_reminder_scanner() -> ReminderScanner:
    """Get the reminder scanner singleton, configured from settings."""
    settings = get_settings()
    return ReminderScanner(
        get_notification_dispatcher(),
        interval_seconds=settings.reminder_interval_seconds,
        lead_minutes=settings.reminder_lead_minutes,
        window_minutes=settings.reminder_window_minutes,
    )
