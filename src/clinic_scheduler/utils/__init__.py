"""Utility functions for the scheduling server."""

from clinic_scheduler.utils.ids import parse_id
from clinic_scheduler.utils.time import as_utc, parse_instant, to_storage, utc_now

__all__ = [
    "as_utc",
    "parse_id",
    "parse_instant",
    "to_storage",
    "utc_now",
]
