"""Calendar arithmetic at the edges of the system.

Storage only ever sees UTC instants. These helpers expand a daily booking range
and render instants in a patient's own zone.
"""

import arrow
from arrow.parser import ParserError
from loguru import logger


def daily_starts(range_start: arrow.Arrow, range_end: arrow.Arrow) -> list[arrow.Arrow]:
    """Expand a range into one start per UTC calendar day.

    Every start falls on a day from the day of ``range_start`` through the day
    of ``range_end`` inclusive, at the UTC wall-clock time of ``range_start``.

    Raises:
        ValueError: if ``range_start`` is after ``range_end``
    """
    range_start = range_start.to("UTC")
    range_end = range_end.to("UTC")
    if range_start > range_end:
        raise ValueError("Range start must be before or equal to end")

    first_day = range_start.floor("day")
    last_day = range_end.floor("day")
    offset = range_start - first_day
    return [day + offset for day in arrow.Arrow.range("day", first_day, last_day)]


def format_time_in_timezone(instant: arrow.Arrow, timezone: str) -> str:
    """Render the time of day (``HH:mm``) of an instant in the given zone.

    Returns an empty string when the zone is empty or unknown.
    """
    if not timezone:
        return ""
    try:
        return instant.to(timezone).format("HH:mm")
    except (ParserError, ValueError) as e:
        logger.debug("Cannot render time in zone {!r}: {}", timezone, e)
        return ""
