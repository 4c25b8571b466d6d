"""Instant handling helpers.

Instants are stored as naive UTC datetimes and exposed as timezone-aware UTC
datetimes. All parsing and arithmetic goes through ``arrow``.
"""

from datetime import datetime

import arrow
from arrow.parser import ParserError


def utc_now() -> datetime:
    """Current instant as a naive UTC datetime (storage form)."""
    return arrow.utcnow().naive


def parse_instant(value: str | datetime) -> arrow.Arrow:
    """Parse an ISO 8601 string or datetime into a UTC ``Arrow``.

    Strings without an offset are read as UTC. Naive datetimes are read as UTC.

    Raises:
        ValueError: if the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return arrow.get(value).to("UTC")
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Not an instant: {value!r}")
    try:
        return arrow.get(value.strip()).to("UTC")
    except (ParserError, TypeError) as e:
        raise ValueError(f"Not an instant: {value!r}") from e


def to_storage(instant: arrow.Arrow) -> datetime:
    """Convert an ``Arrow`` to the naive UTC datetime kept in the database."""
    return instant.to("UTC").naive


def as_utc(value: datetime | None) -> datetime | None:
    """Attach the UTC zone to a stored naive datetime."""
    if value is None:
        return None
    return arrow.get(value).to("UTC").datetime
