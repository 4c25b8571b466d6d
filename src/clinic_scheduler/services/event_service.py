"""Service for calendar event operations.

Every doctor-side operation is scoped to the calling doctor: an event owned by
someone else behaves exactly like a missing one. Successful mutations commit,
drop the doctor's cached windows, then publish a calendar change on the event
bus so the affected patients are notified.
"""

from datetime import timedelta
from functools import lru_cache
from uuid import UUID

from loguru import logger
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from clinic_scheduler.cache import TimeRangeCache, get_events_cache
from clinic_scheduler.event_bus import EventBus, get_event_bus
from clinic_scheduler.events.types import EventCreated, EventDeleted, EventUpdated
from clinic_scheduler.exceptions import NotFoundError, PersistenceError, ValidationError
from clinic_scheduler.models.api_model import (
    DoctorSummary,
    EventDetailResponse,
    EventListResponse,
    EventResponse,
    EventUpdateInput,
    OverlapCheckInput,
    OverlapCheckResponse,
    PatientEventListResponse,
    PatientDetail,
    PatientEventResponse,
    PatientSummary,
)
from clinic_scheduler.models.db_model import Event as EventModel
from clinic_scheduler.scheduling import daily_starts, find_overlapping, interval_end
from clinic_scheduler.services.patient_service import PatientService, get_patient_service
from clinic_scheduler.settings import Settings, get_settings
from clinic_scheduler.utils.ids import parse_id
from clinic_scheduler.utils.time import as_utc, parse_instant, to_storage, utc_now


class EventUpdateResult(BaseModel):
    """Outcome of an update, with both patient ids so both channels can be told."""

    event: EventResponse
    previous_patient_id: UUID
    patient_id: UUID

    @property
    def patient_changed(self) -> bool:
        return self.previous_patient_id != self.patient_id


def _clean_title(title: str | None) -> str | None:
    if title is None:
        return None
    title = title.strip()
    return title or None


def to_event_response(event: EventModel) -> EventResponse:
    """Convert an event with its patient loaded into the doctor-facing response."""
    patient = event.patient
    return EventResponse(
        id=event.id,
        doctor=event.doctor_id,
        patient=PatientSummary(id=patient.id, name=patient.name, timezone=patient.timezone or ""),
        start_instant=as_utc(event.start_instant),
        duration=event.duration,
        title=event.title,
        description=event.description,
    )


def to_event_detail(event: EventModel) -> EventDetailResponse:
    patient = event.patient
    response = to_event_response(event)
    return EventDetailResponse(
        **response.model_dump(exclude={"patient"}),
        patient=PatientDetail(id=patient.id, name=patient.name, email=patient.email, timezone=patient.timezone or ""),
    )


class EventService:
    """Owns Event entities on behalf of doctors."""

    def __init__(
        self,
        events_cache: TimeRangeCache | None = None,
        bus: EventBus | None = None,
        patient_service: PatientService | None = None,
        settings: Settings | None = None,
    ):
        self.events_cache = events_cache or get_events_cache()
        self.bus = bus or get_event_bus()
        self.patient_service = patient_service or get_patient_service()
        self.settings = settings or get_settings()

    # Validation helpers

    def _duration(self, duration: int | None) -> int:
        if duration is None:
            return self.settings.default_event_duration
        if isinstance(duration, bool) or not isinstance(duration, int) or duration <= 0:
            raise ValidationError("Duration must be a positive number of minutes")
        return duration

    def _require_patient(self, session: Session, patient_id: str | None) -> UUID:
        if not patient_id:
            raise ValidationError("Patient is required")
        patient_uuid = parse_id(patient_id, "Patient")
        if not self.patient_service.patient_exists(session, patient_uuid):
            raise ValidationError("Patient not found")
        return patient_uuid

    @staticmethod
    def _parse_start(value: str | None, message: str = "Invalid start"):
        try:
            return parse_instant(value)
        except ValueError:
            raise ValidationError(message) from None

    def _owned_query(self, doctor_id: UUID, event_id: UUID):
        return (
            select(EventModel)
            .where(EventModel.id == event_id, EventModel.doctor_id == doctor_id)
            .options(selectinload(EventModel.patient))
        )

    def _get_owned(self, session: Session, doctor_id: UUID, event_id: str) -> EventModel:
        event_uuid = parse_id(event_id, "Event")
        event = session.exec(self._owned_query(doctor_id, event_uuid)).first()
        if event is None:
            raise NotFoundError("Event", event_uuid)
        return event

    def _commit(self, session: Session, operation: str) -> None:
        try:
            session.commit()
        except SQLAlchemyError as e:
            logger.error("Service: {} failed to commit: {}", operation, e)
            session.rollback()
            raise PersistenceError() from e

    def _after_mutation(self, doctor_id: UUID, *messages: BaseModel) -> None:
        self.events_cache.invalidate(str(doctor_id))
        for message in messages:
            self.bus.emit(message)

    # Reads

    def list_by_doctor(
        self, session: Session, doctor_id: UUID, window_start: str | None = None, window_end: str | None = None
    ) -> EventListResponse:
        """List a doctor's events, optionally restricted to ``start in [window_start, window_end]``.

        Only windowed listings are cached; the cache key is the raw window strings.
        """
        windowed = bool(window_start and window_end)
        if windowed:
            cached = self.events_cache.get_window(str(doctor_id), window_start, window_end)
            if cached is not None:
                try:
                    return EventListResponse.model_validate_json(cached)
                except PydanticValidationError as e:
                    logger.warning("Discarding unreadable cached window for {}: {}", doctor_id, e)

        stmt = select(EventModel).where(EventModel.doctor_id == doctor_id).options(selectinload(EventModel.patient))
        if windowed:
            lower = to_storage(self._parse_start(window_start, "Invalid window start"))
            upper = to_storage(self._parse_start(window_end, "Invalid window end"))
            stmt = stmt.where(EventModel.start_instant >= lower, EventModel.start_instant <= upper)
        stmt = stmt.order_by(EventModel.start_instant)

        events = session.exec(stmt).all()
        logger.debug("Service: list_by_doctor {} found {} events", doctor_id, len(events))
        response = EventListResponse(events=[to_event_response(e) for e in events])

        if windowed:
            self.events_cache.put_window(str(doctor_id), window_start, window_end, response.model_dump_json(by_alias=True))
        return response

    def list_by_patient(self, session: Session, patient_id: UUID) -> PatientEventListResponse:
        """List a patient's events in ascending start order, with the doctor's name."""
        stmt = (
            select(EventModel)
            .where(EventModel.patient_id == patient_id)
            .options(selectinload(EventModel.doctor))
            .order_by(EventModel.start_instant)
        )
        events = session.exec(stmt).all()
        return PatientEventListResponse(
            events=[
                PatientEventResponse(
                    id=e.id,
                    doctor=DoctorSummary(id=e.doctor.id, name=e.doctor.name),
                    patient=e.patient_id,
                    start_instant=as_utc(e.start_instant),
                    duration=e.duration,
                    title=e.title,
                    description=e.description,
                )
                for e in events
            ]
        )

    def get_by_id(self, session: Session, doctor_id: UUID, event_id: str) -> EventDetailResponse:
        """Get one of the doctor's events.

        Raises:
            InvalidIdError: if ``event_id`` is malformed
            NotFoundError: if no such event is owned by the doctor
        """
        return to_event_detail(self._get_owned(session, doctor_id, event_id))

    # Writes

    def create_single(
        self,
        session: Session,
        doctor_id: UUID,
        patient_id: str | None,
        start_instant: str | None,
        duration: int | None = None,
        title: str | None = None,
        description: str | None = None,
    ) -> EventResponse:
        """Book one event."""
        patient_uuid = self._require_patient(session, patient_id)
        start = self._parse_start(start_instant)
        minutes = self._duration(duration)

        event = EventModel(
            doctor_id=doctor_id,
            patient_id=patient_uuid,
            start_instant=to_storage(start),
            duration=minutes,
            title=_clean_title(title),
            description=description,
        )
        session.add(event)
        self._commit(session, "create_single")
        session.refresh(event)
        logger.debug("Service: create_single created event {} for doctor {}", event.id, doctor_id)

        self._after_mutation(doctor_id, EventCreated(doctor_id=doctor_id, patient_id=patient_uuid, event_ids=[event.id]))
        return to_event_response(event)

    def create_batch(
        self,
        session: Session,
        doctor_id: UUID,
        patient_id: str | None,
        range_start: str | None,
        range_end: str | None,
        duration: int | None = None,
        title: str | None = None,
        description: str | None = None,
    ) -> list[EventResponse]:
        """Book the same UTC time of day on every day of an inclusive range.

        All rows are written in one transaction: either every day is booked or
        none is.
        """
        patient_uuid = self._require_patient(session, patient_id)
        start = self._parse_start(range_start, "Invalid startDateRange start or end")
        end = self._parse_start(range_end, "Invalid startDateRange start or end")
        if start > end:
            raise ValidationError("Range start must be before or equal to end")
        minutes = self._duration(duration)
        clean_title = _clean_title(title)

        events = [
            EventModel(
                doctor_id=doctor_id,
                patient_id=patient_uuid,
                start_instant=to_storage(day_start),
                duration=minutes,
                title=clean_title,
                description=description,
            )
            for day_start in daily_starts(start, end)
        ]
        session.add_all(events)
        self._commit(session, "create_batch")
        for event in events:
            session.refresh(event)
        events.sort(key=lambda e: e.start_instant)
        logger.debug("Service: create_batch created {} events for doctor {}", len(events), doctor_id)

        self._after_mutation(doctor_id, EventCreated(doctor_id=doctor_id, patient_id=patient_uuid, event_ids=[e.id for e in events]))
        return [to_event_response(e) for e in events]

    def update(self, session: Session, doctor_id: UUID, event_id: str, patch: EventUpdateInput) -> EventUpdateResult:
        """Apply the supplied fields of ``patch`` to one of the doctor's events.

        ``patient``, ``startInstant`` and ``duration`` sent as null are ignored;
        ``title`` and ``description`` sent as null are cleared.
        """
        event = self._get_owned(session, doctor_id, event_id)
        previous_patient_id = event.patient_id
        supplied = patch.model_fields_set

        changes: dict = {}
        if "patient" in supplied and patch.patient is not None:
            changes["patient_id"] = self._require_patient(session, patch.patient)
        if "start_instant" in supplied and patch.start_instant is not None:
            changes["start_instant"] = to_storage(self._parse_start(patch.start_instant))
        if "duration" in supplied and patch.duration is not None:
            changes["duration"] = self._duration(patch.duration)
        if "title" in supplied:
            changes["title"] = _clean_title(patch.title)
        if "description" in supplied:
            changes["description"] = patch.description

        for field, value in changes.items():
            setattr(event, field, value)
        event.updated_at = utc_now()
        session.add(event)
        self._commit(session, "update")
        session.refresh(event)
        logger.debug("Service: update changed {} on event {}", sorted(changes) or "nothing", event.id)

        messages: list[BaseModel] = [EventUpdated(doctor_id=doctor_id, patient_id=event.patient_id, event_ids=[event.id])]
        if event.patient_id != previous_patient_id:
            messages.append(EventDeleted(doctor_id=doctor_id, patient_id=previous_patient_id, event_ids=[event.id]))
        self._after_mutation(doctor_id, *messages)

        return EventUpdateResult(event=to_event_response(event), previous_patient_id=previous_patient_id, patient_id=event.patient_id)

    def delete(self, session: Session, doctor_id: UUID, event_id: str) -> EventResponse:
        """Delete one of the doctor's events and return it as it was."""
        event = self._get_owned(session, doctor_id, event_id)
        removed = to_event_response(event)
        session.delete(event)
        self._commit(session, "delete")
        logger.debug("Service: delete removed event {} for doctor {}", removed.id, doctor_id)

        self._after_mutation(doctor_id, EventDeleted(doctor_id=doctor_id, patient_id=removed.patient.id, event_ids=[removed.id]))
        return removed

    # Advisory checks

    def find_overlaps(self, session: Session, doctor_id: UUID, proposal: OverlapCheckInput) -> OverlapCheckResponse:
        """Report the doctor's events that intersect a proposed slot. Nothing is blocked."""
        start = to_storage(self._parse_start(proposal.start_instant))
        minutes = self._duration(proposal.duration)
        exclude_id = parse_id(proposal.exclude_event_id, "Event") if proposal.exclude_event_id else None

        longest = session.exec(select(func.max(EventModel.duration)).where(EventModel.doctor_id == doctor_id)).one()
        if not longest:
            return OverlapCheckResponse(overlaps=False)

        # Only events starting in this range can reach into the proposed slot
        stmt = (
            select(EventModel)
            .where(
                EventModel.doctor_id == doctor_id,
                EventModel.start_instant > start - timedelta(minutes=longest),
                EventModel.start_instant < interval_end(start, minutes),
            )
            .options(selectinload(EventModel.patient))
            .order_by(EventModel.start_instant)
        )
        conflicts = find_overlapping(start, minutes, session.exec(stmt).all(), exclude_id=exclude_id)
        return OverlapCheckResponse(overlaps=bool(conflicts), events=[to_event_response(e) for e in conflicts])


@lru_cache
def get_event_service() -> EventService:
    """Get the event service singleton."""
    return EventService()
