"""Calendar change messages and their handlers."""

from loguru import logger

from clinic_scheduler.event_bus import EventBus, get_event_bus
from clinic_scheduler.events.notification_handlers import PatientCreatedNotifier, PatientDeletedNotifier, PatientUpdatedNotifier
from clinic_scheduler.events.types import CalendarChange, EventCreated, EventDeleted, EventUpdated

__all__ = [
    "CalendarChange",
    "EventCreated",
    "EventDeleted",
    "EventUpdated",
    "PatientCreatedNotifier",
    "PatientDeletedNotifier",
    "PatientUpdatedNotifier",
    "register_event_handlers",
]


def register_event_handlers(bus: EventBus | None = None) -> None:
    """Register the patient notification handlers on the bus.

    Called once after the ServiceRegistry is populated, since handlers receive
    the NotificationDispatcher from it.
    """
    bus = bus or get_event_bus()
    bus.clear_handlers()
    bus.on(EventCreated, PatientCreatedNotifier)
    bus.on(EventUpdated, PatientUpdatedNotifier)
    bus.on(EventDeleted, PatientDeletedNotifier)
    logger.info("Event handlers registered successfully")
