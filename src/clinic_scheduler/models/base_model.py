from datetime import datetime
from uuid import UUID

from sqlmodel import Field, SQLModel


class DoctorBase(SQLModel):
    """Base model for a doctor."""

    id: UUID | None = None
    name: str
    email: str


class PatientBase(SQLModel):
    """Base model for a patient.

    ``timezone`` is an IANA zone name; an empty string means the zone is unknown
    and the patient's browser decides.
    """

    id: UUID | None = None
    name: str
    email: str
    timezone: str = ""


class EventBase(SQLModel):
    """Base model for a calendar event.

    ``start_instant`` is always a naive UTC timestamp.
    """

    id: UUID | None = None
    doctor_id: UUID | None = None
    patient_id: UUID | None = None
    start_instant: datetime
    duration: int = Field(default=30, gt=0)
    title: str | None = None
    description: str | None = None
    reminder_sent_at: datetime | None = None
