"""Tests for EventService against an in-memory SQLite database."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest
from sqlmodel import select

from clinic_scheduler.events.types import EventCreated, EventDeleted, EventUpdated
from clinic_scheduler.exceptions import InvalidIdError, NotFoundError, ValidationError
from clinic_scheduler.models.api_model import EventUpdateInput, OverlapCheckInput
from clinic_scheduler.models.db_model import Event as EventModel

JAN_10_9AM = "2024-01-10T09:00:00Z"


def book(event_service, session, doctor, patient, start=JAN_10_9AM, **kwargs):
    return event_service.create_single(session, doctor.id, str(patient.id), start, **kwargs)


class TestCreateSingle:
    def test_creates_event_with_patient_fields(self, event_service, session, doctor, patient, bus):
        event = book(event_service, session, doctor, patient, duration=30)

        assert event.doctor == doctor.id
        assert event.patient.id == patient.id
        assert event.patient.name == "Emma Johnson"
        assert event.patient.timezone == "Europe/Paris"
        assert event.start_instant == datetime(2024, 1, 10, 9, 0, tzinfo=UTC)
        assert event.duration == 30

        created = bus.of_type(EventCreated)
        assert len(created) == 1
        assert created[0].patient_id == patient.id
        assert created[0].event_ids == [event.id]

    def test_get_by_id_populates_patient_email(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient)

        fetched = event_service.get_by_id(session, doctor.id, str(event.id))

        assert fetched.id == event.id
        assert fetched.patient.email == "emma.johnson@email.com"
        assert fetched.patient.timezone == "Europe/Paris"

    def test_defaults_duration(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient)
        assert event.duration == 30

    def test_start_with_offset_is_stored_as_utc(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient, start="2024-01-10T10:00:00+01:00")

        assert event.start_instant == datetime(2024, 1, 10, 9, 0, tzinfo=UTC)
        stored = session.get(EventModel, event.id)
        assert stored.start_instant == datetime(2024, 1, 10, 9, 0)

    def test_title_is_trimmed_and_blank_becomes_none(self, event_service, session, doctor, patient):
        titled = book(event_service, session, doctor, patient, title="  Checkup  ")
        blank = book(event_service, session, doctor, patient, start="2024-01-11T09:00:00Z", title="   ")

        assert titled.title == "Checkup"
        assert blank.title is None

    def test_unknown_patient(self, event_service, session, doctor, bus):
        with pytest.raises(ValidationError, match="Patient not found"):
            event_service.create_single(session, doctor.id, str(uuid4()), JAN_10_9AM)
        assert bus.messages == []

    def test_malformed_patient_id(self, event_service, session, doctor):
        with pytest.raises(InvalidIdError):
            event_service.create_single(session, doctor.id, "not-an-id", JAN_10_9AM)

    def test_missing_patient(self, event_service, session, doctor):
        with pytest.raises(ValidationError, match="Patient is required"):
            event_service.create_single(session, doctor.id, None, JAN_10_9AM)

    def test_invalid_start(self, event_service, session, doctor, patient):
        with pytest.raises(ValidationError, match="Invalid start"):
            book(event_service, session, doctor, patient, start="next tuesday")

    @pytest.mark.parametrize("duration", [0, -15])
    def test_non_positive_duration(self, event_service, session, doctor, patient, duration):
        with pytest.raises(ValidationError, match="positive"):
            book(event_service, session, doctor, patient, duration=duration)


class TestCreateBatch:
    def test_one_event_per_day_at_same_time(self, event_service, session, doctor, patient, bus):
        events = event_service.create_batch(
            session, doctor.id, str(patient.id), "2024-01-01T09:00:00Z", "2024-01-03T09:00:00Z"
        )

        assert [e.start_instant for e in events] == [
            datetime(2024, 1, 1, 9, 0, tzinfo=UTC),
            datetime(2024, 1, 2, 9, 0, tzinfo=UTC),
            datetime(2024, 1, 3, 9, 0, tzinfo=UTC),
        ]
        assert all(e.duration == 30 for e in events)

        created = bus.of_type(EventCreated)
        assert len(created) == 1
        assert created[0].event_ids == [e.id for e in events]

    def test_last_day_included_when_end_time_is_earlier(self, event_service, session, doctor, patient):
        events = event_service.create_batch(
            session, doctor.id, str(patient.id), "2024-01-01T09:00:00Z", "2024-01-03T08:00:00Z"
        )

        assert len(events) == 3
        assert events[-1].start_instant == datetime(2024, 1, 3, 9, 0, tzinfo=UTC)

    def test_single_day_range(self, event_service, session, doctor, patient):
        events = event_service.create_batch(
            session, doctor.id, str(patient.id), "2024-01-01T09:00:00Z", "2024-01-01T09:00:00Z"
        )
        assert len(events) == 1

    def test_start_after_end(self, event_service, session, doctor, patient, bus):
        with pytest.raises(ValidationError, match="before or equal"):
            event_service.create_batch(session, doctor.id, str(patient.id), "2024-01-03T09:00:00Z", "2024-01-01T09:00:00Z")

        assert session.exec(select(EventModel)).all() == []
        assert bus.messages == []

    def test_unparseable_bound(self, event_service, session, doctor, patient):
        with pytest.raises(ValidationError, match="Invalid startDateRange"):
            event_service.create_batch(session, doctor.id, str(patient.id), "2024-01-01T09:00:00Z", "soon")


class TestListByDoctor:
    def test_window_bounds_are_inclusive(self, event_service, session, doctor, patient):
        book(event_service, session, doctor, patient, start="2024-01-09T09:00:00Z")
        inside_low = book(event_service, session, doctor, patient, start="2024-01-10T00:00:00Z")
        inside_high = book(event_service, session, doctor, patient, start="2024-01-10T23:59:00Z")
        book(event_service, session, doctor, patient, start="2024-01-11T09:00:00Z")

        listing = event_service.list_by_doctor(session, doctor.id, "2024-01-10T00:00:00Z", "2024-01-10T23:59:00Z")

        assert [e.id for e in listing.events] == [inside_low.id, inside_high.id]

    def test_unwindowed_lists_everything_in_order(self, event_service, session, doctor, patient):
        later = book(event_service, session, doctor, patient, start="2024-02-01T09:00:00Z")
        earlier = book(event_service, session, doctor, patient, start="2024-01-01T09:00:00Z")

        listing = event_service.list_by_doctor(session, doctor.id)

        assert [e.id for e in listing.events] == [earlier.id, later.id]

    def test_other_doctors_events_are_hidden(self, event_service, session, doctor, other_doctor, patient):
        book(event_service, session, other_doctor, patient)

        assert event_service.list_by_doctor(session, doctor.id).events == []

    def test_invalid_window(self, event_service, session, doctor):
        with pytest.raises(ValidationError, match="Invalid window start"):
            event_service.list_by_doctor(session, doctor.id, "garbage", "2024-01-10T00:00:00Z")

    def test_windowed_listing_is_served_from_cache(self, event_service, session, doctor, patient, events_cache):
        book(event_service, session, doctor, patient)
        window = ("2024-01-10T00:00:00Z", "2024-01-11T00:00:00Z")

        first = event_service.list_by_doctor(session, doctor.id, *window)
        assert events_cache.get_window(str(doctor.id), *window) is not None

        # A row written behind the service's back is not seen until invalidation
        session.add(EventModel(doctor_id=doctor.id, patient_id=patient.id, start_instant=datetime(2024, 1, 10, 15, 0), duration=30))
        session.commit()

        assert event_service.list_by_doctor(session, doctor.id, *window) == first

    def test_mutation_invalidates_only_that_doctor(self, event_service, session, doctor, other_doctor, patient, events_cache):
        window = ("2024-01-10T00:00:00Z", "2024-01-11T00:00:00Z")
        assert event_service.list_by_doctor(session, doctor.id, *window).events == []
        event_service.list_by_doctor(session, other_doctor.id, *window)

        created = book(event_service, session, doctor, patient)

        assert events_cache.get_window(str(doctor.id), *window) is None
        assert events_cache.get_window(str(other_doctor.id), *window) is not None
        assert [e.id for e in event_service.list_by_doctor(session, doctor.id, *window).events] == [created.id]


class TestListByPatient:
    def test_ascending_with_doctor_name(self, event_service, session, doctor, other_doctor, patient, other_patient):
        second = book(event_service, session, doctor, patient, start="2024-03-01T09:00:00Z")
        first = book(event_service, session, other_doctor, patient, start="2024-02-01T09:00:00Z")
        book(event_service, session, doctor, other_patient)

        listing = event_service.list_by_patient(session, patient.id)

        assert [e.id for e in listing.events] == [first.id, second.id]
        assert listing.events[0].doctor.name == "Dr. Marcus Webb"
        assert listing.events[1].doctor.name == "Dr. Sarah Chen"


class TestUpdate:
    def test_empty_patch_changes_nothing(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient, title="Checkup", description="Annual", duration=45)

        result = event_service.update(session, doctor.id, str(event.id), EventUpdateInput())

        assert result.event == event
        assert not result.patient_changed

    def test_only_supplied_fields_change(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient, title="Checkup", duration=45)

        result = event_service.update(
            session, doctor.id, str(event.id), EventUpdateInput(start_instant="2024-01-12T14:30:00Z")
        )

        assert result.event.start_instant == datetime(2024, 1, 12, 14, 30, tzinfo=UTC)
        assert result.event.title == "Checkup"
        assert result.event.duration == 45

    def test_updated_at_is_refreshed(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient)
        before = session.get(EventModel, event.id).updated_at

        event_service.update(session, doctor.id, str(event.id), EventUpdateInput())

        assert session.get(EventModel, event.id).updated_at >= before

    def test_null_title_clears_but_null_duration_is_ignored(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient, title="Checkup", duration=45)

        patch = EventUpdateInput.model_validate({"title": None, "duration": None})
        result = event_service.update(session, doctor.id, str(event.id), patch)

        assert result.event.title is None
        assert result.event.duration == 45

    def test_same_patient_emits_updated_only(self, event_service, session, doctor, patient, bus):
        event = book(event_service, session, doctor, patient)
        bus.messages.clear()

        event_service.update(session, doctor.id, str(event.id), EventUpdateInput(title="Follow-up"))

        assert [type(m) for m in bus.messages] == [EventUpdated]
        assert bus.messages[0].patient_id == patient.id

    def test_reassignment_notifies_both_patients(self, event_service, session, doctor, patient, other_patient, bus):
        event = book(event_service, session, doctor, patient)
        bus.messages.clear()

        result = event_service.update(session, doctor.id, str(event.id), EventUpdateInput(patient=str(other_patient.id)))

        assert result.patient_changed
        assert result.previous_patient_id == patient.id
        assert result.event.patient.id == other_patient.id
        assert [m.patient_id for m in bus.of_type(EventUpdated)] == [other_patient.id]
        assert [m.patient_id for m in bus.of_type(EventDeleted)] == [patient.id]

    def test_reassignment_to_unknown_patient(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient)

        with pytest.raises(ValidationError, match="Patient not found"):
            event_service.update(session, doctor.id, str(event.id), EventUpdateInput(patient=str(uuid4())))

    def test_other_doctors_event_is_not_found(self, event_service, session, doctor, other_doctor, patient):
        event = book(event_service, session, doctor, patient)

        with pytest.raises(NotFoundError):
            event_service.update(session, other_doctor.id, str(event.id), EventUpdateInput(title="Mine now"))


class TestDelete:
    def test_delete_returns_removed_event(self, event_service, session, doctor, patient, bus):
        event = book(event_service, session, doctor, patient)
        bus.messages.clear()

        removed = event_service.delete(session, doctor.id, str(event.id))

        assert removed.id == event.id
        assert session.get(EventModel, event.id) is None
        deleted = bus.of_type(EventDeleted)
        assert len(deleted) == 1
        assert deleted[0].patient_id == patient.id

        with pytest.raises(NotFoundError):
            event_service.get_by_id(session, doctor.id, str(event.id))

    def test_other_doctor_cannot_delete(self, event_service, session, doctor, other_doctor, patient):
        event = book(event_service, session, doctor, patient)

        with pytest.raises(NotFoundError):
            event_service.delete(session, other_doctor.id, str(event.id))
        assert session.get(EventModel, event.id) is not None

    def test_malformed_id(self, event_service, session, doctor):
        with pytest.raises(InvalidIdError):
            event_service.delete(session, doctor.id, "123")


class TestFindOverlaps:
    def test_intersecting_slot(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient, duration=30)

        result = event_service.find_overlaps(
            session, doctor.id, OverlapCheckInput(start_instant="2024-01-10T09:15:00Z", duration=30)
        )

        assert result.overlaps
        assert [e.id for e in result.events] == [event.id]

    def test_touching_slot_does_not_overlap(self, event_service, session, doctor, patient):
        book(event_service, session, doctor, patient, duration=30)

        result = event_service.find_overlaps(
            session, doctor.id, OverlapCheckInput(start_instant="2024-01-10T09:30:00Z", duration=30)
        )

        assert not result.overlaps
        assert result.events == []

    def test_long_event_starting_earlier_is_found(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient, start="2024-01-10T07:00:00Z", duration=180)

        result = event_service.find_overlaps(session, doctor.id, OverlapCheckInput(start_instant=JAN_10_9AM))

        assert [e.id for e in result.events] == [event.id]

    def test_excluded_event_is_ignored(self, event_service, session, doctor, patient):
        event = book(event_service, session, doctor, patient)

        result = event_service.find_overlaps(
            session, doctor.id, OverlapCheckInput(start_instant=JAN_10_9AM, exclude_event_id=str(event.id))
        )

        assert not result.overlaps

    def test_no_events(self, event_service, session, doctor):
        result = event_service.find_overlaps(session, doctor.id, OverlapCheckInput(start_instant=JAN_10_9AM))
        assert not result.overlaps
