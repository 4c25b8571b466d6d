"""Handlers forwarding calendar changes to patient channels."""

from loguru import logger

from clinic_scheduler.event_bus.core import EventHandler
from clinic_scheduler.events.types import EventCreated, EventDeleted, EventUpdated
from clinic_scheduler.realtime import NotificationDispatcher


class PatientCreatedNotifier(EventHandler[EventCreated]):
    """Sends ``event:created`` to the patient."""

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    async def handle(self, message: EventCreated) -> int:
        logger.debug("Notifying patient {} of {} new event(s)", message.patient_id, len(message.event_ids))
        return await self.dispatcher.notify_created(str(message.patient_id))


class PatientUpdatedNotifier(EventHandler[EventUpdated]):
    """Sends ``event:updated`` to the patient."""

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    async def handle(self, message: EventUpdated) -> int:
        return await self.dispatcher.notify_updated(str(message.patient_id))


class PatientDeletedNotifier(EventHandler[EventDeleted]):
    """Sends ``event:deleted`` to the patient."""

    def __init__(self, dispatcher: NotificationDispatcher):
        self.dispatcher = dispatcher

    async def handle(self, message: EventDeleted) -> int:
        return await self.dispatcher.notify_deleted(str(message.patient_id))
