"""Tests for the reminder scanner."""

import asyncio
from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from clinic_scheduler.models.db_model import Event
from clinic_scheduler.realtime import NotificationDispatcher
from clinic_scheduler.reminders.scanner import ReminderScanner
from conftest import FakeConnection

NOW = datetime(2024, 1, 10, 8, 54, 30)


class BrokenDispatcher(NotificationDispatcher):
    async def notify_reminder(self, patient_id, event_id, start_instant, title=None):
        raise ConnectionError("transport down")


class FlakyDispatcher(NotificationDispatcher):
    """Fails only for the given patient."""

    def __init__(self, failing_patient_id: str):
        super().__init__()
        self.failing_patient_id = failing_patient_id

    async def notify_reminder(self, patient_id, event_id, start_instant, title=None):
        if patient_id == self.failing_patient_id:
            raise ConnectionError("transport down")
        return await super().notify_reminder(patient_id, event_id, start_instant, title)


class LockedRowScanner(ReminderScanner):
    """Cannot stamp one event."""

    def __init__(self, *args, locked_event_id=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.locked_event_id = locked_event_id

    def _mark_sent(self, event_id, now):
        if event_id == self.locked_event_id:
            raise SQLAlchemyError("row is locked")
        return super()._mark_sent(event_id, now)


def add_event(session, doctor, patient, start, title=None, reminder_sent_at=None) -> Event:
    event = Event(
        doctor_id=doctor.id,
        patient_id=patient.id,
        start_instant=start,
        duration=30,
        title=title,
        reminder_sent_at=reminder_sent_at,
    )
    session.add(event)
    session.commit()
    session.refresh(event)
    return event


@pytest.fixture
def scanner(engine, dispatcher):
    return ReminderScanner(dispatcher, session_factory=lambda: Session(engine))


def test_due_window():
    scanner = ReminderScanner(NotificationDispatcher())
    assert scanner.due_window(NOW) == (NOW + timedelta(minutes=5), NOW + timedelta(minutes=6))


@pytest.mark.asyncio
async def test_reminds_once(scanner, dispatcher, session, doctor, patient):
    event = add_event(session, doctor, patient, NOW + timedelta(minutes=5, seconds=30), title="Checkup")
    event_id = event.id
    connection = FakeConnection()
    await dispatcher.join_patient(str(patient.id), connection)

    assert await scanner.run_once(NOW) == 1
    assert connection.sent == [
        {
            "type": "event:reminder",
            "data": {"eventId": str(event_id), "startInstant": "2024-01-10T09:00:00Z", "title": "Checkup"},
        }
    ]

    session.expire_all()
    assert session.get(Event, event_id).reminder_sent_at == NOW

    assert await scanner.run_once(NOW + timedelta(minutes=1)) == 0
    assert await scanner.run_once(NOW) == 0
    assert len(connection.sent) == 1


@pytest.mark.asyncio
async def test_events_outside_window_are_skipped(scanner, session, doctor, patient):
    add_event(session, doctor, patient, NOW + timedelta(minutes=4, seconds=59))
    add_event(session, doctor, patient, NOW + timedelta(minutes=6))
    add_event(session, doctor, patient, NOW + timedelta(minutes=5, seconds=10), reminder_sent_at=NOW - timedelta(minutes=1))

    assert await scanner.run_once(NOW) == 0


@pytest.mark.asyncio
async def test_nobody_connected_still_marks_sent(scanner, session, doctor, patient):
    event = add_event(session, doctor, patient, NOW + timedelta(minutes=5))
    event_id = event.id

    assert await scanner.run_once(NOW) == 1

    session.expire_all()
    assert session.get(Event, event_id).reminder_sent_at is not None


@pytest.mark.asyncio
async def test_delivery_failure_still_marks_sent(engine, session, doctor, patient):
    scanner = ReminderScanner(BrokenDispatcher(), session_factory=lambda: Session(engine))
    event = add_event(session, doctor, patient, NOW + timedelta(minutes=5, seconds=30))
    event_id = event.id

    assert await scanner.run_once(NOW) == 1

    session.expire_all()
    assert session.get(Event, event_id).reminder_sent_at == NOW


@pytest.mark.asyncio
async def test_start_and_stop(engine):
    scanner = ReminderScanner(NotificationDispatcher(), session_factory=lambda: Session(engine), interval_seconds=3600)

    scanner.start()
    await asyncio.sleep(0)
    assert scanner.is_running

    await scanner.stop()
    assert not scanner.is_running


@pytest.mark.asyncio
async def test_one_failed_push_does_not_block_others(engine, session, doctor, patient, other_patient):
    dispatcher = FlakyDispatcher(str(patient.id))
    scanner = ReminderScanner(dispatcher, session_factory=lambda: Session(engine))
    first = add_event(session, doctor, patient, NOW + timedelta(minutes=5, seconds=10))
    second = add_event(session, doctor, other_patient, NOW + timedelta(minutes=5, seconds=20))
    first_id, second_id = first.id, second.id
    connection = FakeConnection()
    await dispatcher.join_patient(str(other_patient.id), connection)

    assert await scanner.run_once(NOW) == 2

    assert [message["data"]["eventId"] for message in connection.sent] == [str(second_id)]
    session.expire_all()
    assert session.get(Event, first_id).reminder_sent_at == NOW
    assert session.get(Event, second_id).reminder_sent_at == NOW


@pytest.mark.asyncio
async def test_one_failed_stamp_does_not_block_others(engine, dispatcher, session, doctor, patient, other_patient):
    first = add_event(session, doctor, patient, NOW + timedelta(minutes=5, seconds=10))
    second = add_event(session, doctor, other_patient, NOW + timedelta(minutes=5, seconds=20))
    first_id, second_id = first.id, second.id
    scanner = LockedRowScanner(dispatcher, session_factory=lambda: Session(engine), locked_event_id=first_id)
    connection = FakeConnection()
    await dispatcher.join_patient(str(other_patient.id), connection)

    assert await scanner.run_once(NOW) == 1

    assert len(connection.sent) == 1
    session.expire_all()
    assert session.get(Event, first_id).reminder_sent_at is None
    assert session.get(Event, second_id).reminder_sent_at == NOW


@pytest.mark.asyncio
async def test_late_tick_covers_the_gap(scanner, session, doctor, patient):
    # The second tick comes 50 ms late; its own window would start after 09:00:30.
    event = add_event(session, doctor, patient, NOW + timedelta(minutes=6))
    event_id = event.id

    assert await scanner.run_once(NOW) == 0
    assert await scanner.run_once(NOW + timedelta(seconds=60, milliseconds=50)) == 1

    session.expire_all()
    assert session.get(Event, event_id).reminder_sent_at is not None


def test_scan_window_does_not_reach_into_the_past(scanner):
    scanner._last_upper = NOW - timedelta(hours=1)
    assert scanner.scan_window(NOW) == (NOW, NOW + timedelta(minutes=6))


@pytest.mark.asyncio
async def test_list_due_does_not_stamp(scanner, session, doctor, patient):
    event = add_event(session, doctor, patient, NOW + timedelta(minutes=5, seconds=30), title="Checkup")
    event_id = event.id

    due = await asyncio.to_thread(scanner.list_due, NOW)

    assert [(reminder.event_id, reminder.title) for reminder in due] == [(event_id, "Checkup")]
    session.expire_all()
    assert session.get(Event, event_id).reminder_sent_at is None
    assert await scanner.run_once(NOW) == 1
