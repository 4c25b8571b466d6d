"""Double-booking detection.

Intervals are half-open, ``[start, start + duration)``: an event ending at
09:30 and one starting at 09:30 do not overlap. The check is advisory only;
the repository never rejects an overlapping booking.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Protocol
from uuid import UUID


class Scheduled(Protocol):
    """Anything with an id, a start instant and a duration in minutes."""

    id: UUID
    start_instant: datetime
    duration: int


def interval_end(start: datetime, duration_minutes: int) -> datetime:
    return start + timedelta(minutes=duration_minutes)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    """Return True when ``[start_a, end_a)`` and ``[start_b, end_b)`` intersect."""
    return start_a < end_b and end_a > start_b


def find_overlapping[T: Scheduled](
    start: datetime,
    duration_minutes: int,
    events: Iterable[T],
    exclude_id: UUID | None = None,
) -> list[T]:
    """Return the events that intersect the proposed slot.

    Args:
        start: Proposed start instant
        duration_minutes: Proposed duration
        events: Existing events to compare with
        exclude_id: Id of the event being edited, never reported against itself

    Returns:
        Overlapping events, in the order they were given
    """
    end = interval_end(start, duration_minutes)
    return [
        event
        for event in events
        if event.id != exclude_id and overlaps(start, end, event.start_instant, interval_end(event.start_instant, event.duration))
    ]
