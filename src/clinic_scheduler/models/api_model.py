"""API models for the scheduling server.

Request and response bodies use camelCase keys and expose ids as ``_id`` so
the calendar client can consume them unchanged.
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for every request/response body."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Populated references


class PatientSummary(ApiModel):
    """Patient display fields attached to a doctor's event."""

    id: UUID = Field(alias="_id")
    name: str
    timezone: str = ""


class PatientDetail(PatientSummary):
    """Patient fields attached to a single event lookup."""

    email: str


class DoctorSummary(ApiModel):
    """Doctor display fields attached to a patient's event."""

    id: UUID = Field(alias="_id")
    name: str


class PatientDirectoryEntry(ApiModel):
    """Patient entry of the doctor's patient picker."""

    id: UUID = Field(alias="_id")
    name: str
    email: str
    timezone: str = ""


# Events


class EventResponse(ApiModel):
    """Event as returned to a doctor, with the patient populated."""

    id: UUID = Field(alias="_id")
    doctor: UUID
    patient: PatientSummary
    start_instant: datetime
    duration: int
    title: str | None = None
    description: str | None = None


class EventDetailResponse(EventResponse):
    """Single event, with the patient's email included."""

    patient: PatientDetail


class PatientEventResponse(ApiModel):
    """Event as returned to a patient, with the doctor populated."""

    id: UUID = Field(alias="_id")
    doctor: DoctorSummary
    patient: UUID
    start_instant: datetime
    duration: int
    title: str | None = None
    description: str | None = None


class EventEnvelope(ApiModel):
    event: EventResponse


class EventDetailEnvelope(ApiModel):
    event: EventDetailResponse


class EventListResponse(ApiModel):
    events: list[EventResponse]


class PatientEventListResponse(ApiModel):
    events: list[PatientEventResponse]


class PatientDirectoryResponse(ApiModel):
    patients: list[PatientDirectoryEntry]


class StartDateRange(ApiModel):
    """Inclusive range of days for a batch booking."""

    start: str
    end: str


class EventCreateInput(ApiModel):
    """Body of ``POST /doctors/events``.

    Exactly one of ``start_instant`` (single event) and ``start_date_range``
    (one event per day) must be given. Instants are validated by the service so
    that parse failures report the same message as other validation errors.
    """

    patient: str | None = None
    start_instant: str | None = None
    start_date_range: StartDateRange | None = None
    duration: int | None = None
    title: str | None = None
    description: str | None = None


class EventUpdateInput(ApiModel):
    """Body of ``PUT /doctors/events/{id}``. Only supplied fields change."""

    patient: str | None = None
    start_instant: str | None = None
    duration: int | None = None
    title: str | None = None
    description: str | None = None


class OverlapCheckInput(ApiModel):
    """Proposed slot to compare against the doctor's existing events."""

    start_instant: str
    duration: int | None = None
    exclude_event_id: str | None = None


class OverlapCheckResponse(ApiModel):
    overlaps: bool
    events: list[EventResponse] = []


class SuccessResponse(ApiModel):
    success: bool = True
    message: str | None = None


class SocketTokenResponse(ApiModel):
    token: str
