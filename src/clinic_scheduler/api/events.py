"""
Doctor calendar API - events owned by the calling doctor.

This module provides REST endpoints for a doctor's calendar:
- Listing, optionally restricted to a start window (cached)
- Single and daily batch booking
- Partial update and deletion
- Advisory overlap check for a proposed slot

All endpoints delegate to EventService for business logic.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from clinic_scheduler.api.dependencies import require_doctor, service
from clinic_scheduler.database import get_db_session
from clinic_scheduler.exceptions import ValidationError
from clinic_scheduler.models.api_model import (
    EventCreateInput,
    EventDetailEnvelope,
    EventEnvelope,
    EventListResponse,
    EventUpdateInput,
    OverlapCheckInput,
    OverlapCheckResponse,
    SuccessResponse,
)
from clinic_scheduler.services.event_service import EventService

router = APIRouter()


@router.get("/events", response_model=EventListResponse)
def list_events(
    start: str | None = None,
    end: str | None = None,
    doctor_id: UUID = Depends(require_doctor),
    event_service: EventService = Depends(service(EventService)),
    session: Session = Depends(get_db_session),
) -> EventListResponse:
    """List the doctor's events.

    When both ``start`` and ``end`` are given only events starting in that
    inclusive window are returned, and the result is cached.
    """
    return event_service.list_by_doctor(session, doctor_id, start, end)


@router.post("/events/overlaps", response_model=OverlapCheckResponse)
def check_overlaps(
    proposal: OverlapCheckInput,
    doctor_id: UUID = Depends(require_doctor),
    event_service: EventService = Depends(service(EventService)),
    session: Session = Depends(get_db_session),
) -> OverlapCheckResponse:
    """Report the doctor's events intersecting a proposed slot. Never blocks a booking."""
    return event_service.find_overlaps(session, doctor_id, proposal)


@router.get("/events/{event_id}", response_model=EventDetailEnvelope)
def get_event(
    event_id: str,
    doctor_id: UUID = Depends(require_doctor),
    event_service: EventService = Depends(service(EventService)),
    session: Session = Depends(get_db_session),
) -> EventDetailEnvelope:
    return EventDetailEnvelope(event=event_service.get_by_id(session, doctor_id, event_id))


@router.post("/events", response_model=EventEnvelope | EventListResponse, status_code=status.HTTP_201_CREATED)
def create_events(
    body: EventCreateInput,
    doctor_id: UUID = Depends(require_doctor),
    event_service: EventService = Depends(service(EventService)),
    session: Session = Depends(get_db_session),
) -> EventEnvelope | EventListResponse:
    """Book a single event (``startInstant``) or one event per day (``startDateRange``).

    Exactly one of the two shapes must be given.

    Raises:
        ValidationError: If the body is missing the patient, gives neither or both shapes
    """
    if not body.patient:
        raise ValidationError("Patient is required")

    date_range = body.start_date_range
    has_range = date_range is not None and bool(date_range.start) and bool(date_range.end)
    has_single = bool(body.start_instant)
    if not has_range and not has_single:
        raise ValidationError("Either startInstant or startDateRange (start and end) is required")
    if has_range and has_single:
        raise ValidationError("Provide either startInstant or startDateRange, not both")

    if has_range:
        events = event_service.create_batch(
            session,
            doctor_id,
            body.patient,
            date_range.start,
            date_range.end,
            duration=body.duration,
            title=body.title,
            description=body.description,
        )
        return EventListResponse(events=events)

    event = event_service.create_single(
        session,
        doctor_id,
        body.patient,
        body.start_instant,
        duration=body.duration,
        title=body.title,
        description=body.description,
    )
    return EventEnvelope(event=event)


@router.put("/events/{event_id}", response_model=EventEnvelope)
def update_event(
    event_id: str,
    patch: EventUpdateInput,
    doctor_id: UUID = Depends(require_doctor),
    event_service: EventService = Depends(service(EventService)),
    session: Session = Depends(get_db_session),
) -> EventEnvelope:
    """Change the supplied fields of an event; omitted fields keep their value."""
    result = event_service.update(session, doctor_id, event_id, patch)
    return EventEnvelope(event=result.event)


@router.delete("/events/{event_id}", response_model=SuccessResponse)
def delete_event(
    event_id: str,
    doctor_id: UUID = Depends(require_doctor),
    event_service: EventService = Depends(service(EventService)),
    session: Session = Depends(get_db_session),
) -> SuccessResponse:
    event_service.delete(session, doctor_id, event_id)
    return SuccessResponse(message="Event deleted")
