"""Notification dispatcher.

Pushes event lifecycle signals and reminders to a patient's channel. Lifecycle
signals carry no data: the client re-fetches its events when it receives one.
Delivery is at-most-once; a signal sent while nobody is joined is lost.
"""

from datetime import datetime
from functools import lru_cache
from typing import Any

from loguru import logger

from clinic_scheduler.constants import (
    SIGNAL_EVENT_CREATED,
    SIGNAL_EVENT_DELETED,
    SIGNAL_EVENT_REMINDER,
    SIGNAL_EVENT_UPDATED,
    patient_channel,
)
from clinic_scheduler.realtime.channels import ChannelRegistry, Connection
from clinic_scheduler.utils.time import as_utc


class NotificationDispatcher:
    """Owns the channel registry and speaks the signal vocabulary."""

    def __init__(self, channels: ChannelRegistry | None = None):
        self.channels = channels or ChannelRegistry()

    async def join_patient(self, patient_id: str, connection: Connection) -> str:
        channel = patient_channel(patient_id)
        await self.channels.join(channel, connection)
        return channel

    async def leave_patient(self, patient_id: str, connection: Connection) -> None:
        await self.channels.leave(patient_channel(patient_id), connection)

    async def send(self, patient_id: str, signal: str, data: dict[str, Any] | None = None) -> int:
        """Broadcast a signal to a patient's channel.

        Returns:
            Number of connections the signal reached
        """
        delivered = await self.channels.broadcast(patient_channel(patient_id), {"type": signal, "data": data})
        logger.debug("Signal {} for patient {} delivered to {} connection(s)", signal, patient_id, delivered)
        return delivered

    async def notify_created(self, patient_id: str) -> int:
        return await self.send(patient_id, SIGNAL_EVENT_CREATED)

    async def notify_updated(self, patient_id: str) -> int:
        return await self.send(patient_id, SIGNAL_EVENT_UPDATED)

    async def notify_deleted(self, patient_id: str) -> int:
        return await self.send(patient_id, SIGNAL_EVENT_DELETED)

    async def notify_reminder(self, patient_id: str, event_id: str, start_instant: datetime, title: str | None = None) -> int:
        payload: dict[str, Any] = {"eventId": event_id, "startInstant": as_utc(start_instant).isoformat().replace("+00:00", "Z")}
        if title:
            payload["title"] = title
        return await self.send(patient_id, SIGNAL_EVENT_REMINDER, payload)


@lru_cache
def get_notification_dispatcher() -> NotificationDispatcher:
    """Get the notification dispatcher singleton."""
    return NotificationDispatcher()
