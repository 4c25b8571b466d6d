"""Message types published on the event bus.

Each message describes one change to a doctor's calendar and names the patient
whose channel must hear about it.
"""

from uuid import UUID

from pydantic import BaseModel


class CalendarChange(BaseModel):
    """Fields common to every calendar change."""

    doctor_id: UUID
    patient_id: UUID
    event_ids: list[UUID]


class EventCreated(CalendarChange):
    """One or more events were booked for the patient."""


class EventUpdated(CalendarChange):
    """An event of the patient changed (or was moved to this patient)."""


class EventDeleted(CalendarChange):
    """An event was removed from the patient's calendar (or moved to another patient)."""
