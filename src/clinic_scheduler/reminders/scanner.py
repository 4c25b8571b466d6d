"""Reminder scanner.

Every tick looks for events starting in ``[now + lead, now + lead + window)``
that have not been reminded yet, pushes ``event:reminder`` to each patient's
channel and stamps ``reminder_sent_at``. Ticks run at a fixed rate, and a tick
that comes late starts its window where the previous one ended, so no start
instant falls between two windows.

A reminder is attempted at most once: the event is stamped whether or not a
connection received it.
"""

import asyncio
import contextlib
from collections.abc import Callable
from contextlib import AbstractContextManager
from datetime import datetime, timedelta
from uuid import UUID

from loguru import logger
from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlmodel import Session, select

from clinic_scheduler.database import borrow_db_session
from clinic_scheduler.models.db_model import Event as EventModel
from clinic_scheduler.realtime import NotificationDispatcher
from clinic_scheduler.scheduling import format_time_in_timezone
from clinic_scheduler.utils.time import parse_instant, utc_now

SessionFactory = Callable[[], AbstractContextManager[Session]]


class DueReminder(BaseModel):
    """An event whose reminder is due in the current tick."""

    event_id: UUID
    patient_id: UUID
    start_instant: datetime
    title: str | None = None
    timezone: str = ""


class ReminderScanner:
    """Periodic background sweep sending reminders shortly before events start."""

    def __init__(
        self,
        dispatcher: NotificationDispatcher,
        session_factory: SessionFactory = borrow_db_session,
        interval_seconds: float = 60,
        lead_minutes: int = 5,
        window_minutes: int = 1,
    ):
        self.dispatcher = dispatcher
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds
        self.lead = timedelta(minutes=lead_minutes)
        self.window = timedelta(minutes=window_minutes)
        self._task: asyncio.Task | None = None
        self._last_upper: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def due_window(self, now: datetime) -> tuple[datetime, datetime]:
        """Half-open window of start instants that are due at ``now``."""
        lower = now + self.lead
        return lower, lower + self.window

    def scan_window(self, now: datetime) -> tuple[datetime, datetime]:
        """Window scanned by the tick at ``now``.

        Same as ``due_window`` unless the previous tick's window ended before it
        starts, in which case the gap is scanned too. Start instants already in
        the past are not reminded.
        """
        lower, upper = self.due_window(now)
        if self._last_upper is not None and self._last_upper < lower:
            lower = max(self._last_upper, now)
        return lower, upper

    def list_due(self, now: datetime | None = None) -> list[DueReminder]:
        """Reminders due at ``now`` without sending or stamping them."""
        return self._find_due(*self.due_window(now or utc_now()))

    def _find_due(self, lower: datetime, upper: datetime) -> list[DueReminder]:
        with self.session_factory() as session:
            stmt = (
                select(EventModel)
                .where(
                    EventModel.start_instant >= lower,
                    EventModel.start_instant < upper,
                    EventModel.reminder_sent_at.is_(None),
                )
                .options(selectinload(EventModel.patient))
                .order_by(EventModel.start_instant)
            )
            return [
                DueReminder(
                    event_id=e.id,
                    patient_id=e.patient_id,
                    start_instant=e.start_instant,
                    title=e.title,
                    timezone=e.patient.timezone or "",
                )
                for e in session.exec(stmt).all()
            ]

    def _mark_sent(self, event_id: UUID, now: datetime) -> bool:
        """Stamp the event unless another scanner already did. Returns True when stamped."""
        with self.session_factory() as session:
            stmt = (
                update(EventModel)
                .where(EventModel.id == event_id, EventModel.reminder_sent_at.is_(None))
                .values(reminder_sent_at=now)
            )
            result = session.exec(stmt)
            session.commit()
            return result.rowcount > 0

    async def run_once(self, now: datetime | None = None) -> int:
        """Run a single tick.

        Args:
            now: Naive UTC instant of the tick, defaults to the current time

        Returns:
            Number of events stamped as reminded
        """
        now = now or utc_now()
        lower, upper = self.scan_window(now)
        due = await asyncio.to_thread(self._find_due, lower, upper)
        self._last_upper = upper if self._last_upper is None else max(self._last_upper, upper)
        if not due:
            logger.trace("Reminder scan at {}: nothing due", now)
            return 0

        sent = 0
        for reminder in due:
            try:
                delivered = await self.dispatcher.notify_reminder(
                    str(reminder.patient_id), str(reminder.event_id), reminder.start_instant, reminder.title
                )
                local_time = format_time_in_timezone(parse_instant(reminder.start_instant), reminder.timezone)
                logger.debug(
                    "Reminder for event {} ({} local) reached {} connection(s)", reminder.event_id, local_time or "unknown zone", delivered
                )
            except Exception as e:  # noqa: BLE001
                logger.opt(exception=e).error("Failed to push reminder for event {}", reminder.event_id)

            try:
                if await asyncio.to_thread(self._mark_sent, reminder.event_id, now):
                    sent += 1
            except SQLAlchemyError as e:
                logger.error("Failed to mark reminder sent for event {}: {}", reminder.event_id, e)

        logger.info("Reminder scan at {}: {} of {} due reminder(s) sent", now, sent, len(due))
        return sent

    async def run_forever(self) -> None:
        """Tick at a fixed rate until cancelled. Ticks never overlap."""
        logger.info("Reminder scanner started (every {}s)", self.interval_seconds)
        loop = asyncio.get_running_loop()
        next_at = loop.time()
        while True:
            try:
                await self.run_once()
            except Exception as e:  # noqa: BLE001
                logger.opt(exception=e).error("Reminder scan failed")
            next_at += self.interval_seconds
            delay = next_at - loop.time()
            if delay < 0:
                logger.warning("Reminder scan overran its period by {:.1f}s", -delay)
                next_at = loop.time()
                delay = 0
            await asyncio.sleep(delay)

    def start(self) -> asyncio.Task:
        """Start the scanner on the running loop."""
        if self.is_running:
            logger.warning("Reminder scanner already running")
            return self._task
        self._task = asyncio.get_running_loop().create_task(self.run_forever(), name="reminder-scanner")
        return self._task

    async def stop(self) -> None:
        """Cancel the scanner and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("Reminder scanner stopped")
