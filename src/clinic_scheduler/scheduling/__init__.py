"""Scheduling algorithms: daily range expansion, overlap detection, zone rendering."""

from clinic_scheduler.scheduling.calendar import daily_starts, format_time_in_timezone
from clinic_scheduler.scheduling.overlap import find_overlapping, interval_end, overlaps

__all__ = [
    "daily_starts",
    "find_overlapping",
    "format_time_in_timezone",
    "interval_end",
    "overlaps",
]
