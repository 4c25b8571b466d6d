"""Tests for daily range expansion and timezone helpers."""

import arrow
import pytest

from clinic_scheduler.scheduling import daily_starts, format_time_in_timezone


def test_three_day_range_at_start_time():
    starts = daily_starts(arrow.get("2024-01-01T09:00:00Z"), arrow.get("2024-01-03T09:00:00Z"))
    assert [s.isoformat() for s in starts] == [
        "2024-01-01T09:00:00+00:00",
        "2024-01-02T09:00:00+00:00",
        "2024-01-03T09:00:00+00:00",
    ]


def test_end_day_is_included_even_before_start_time():
    # 2024-01-03T08:00 is earlier in the day than 09:00 but the day still counts
    starts = daily_starts(arrow.get("2024-01-01T09:00:00Z"), arrow.get("2024-01-03T08:00:00Z"))
    assert len(starts) == 3
    assert starts[-1] == arrow.get("2024-01-03T09:00:00Z")


def test_sub_second_precision_is_kept():
    starts = daily_starts(arrow.get("2024-01-01T09:15:30.250000Z"), arrow.get("2024-01-02T00:00:00Z"))
    assert [s.isoformat() for s in starts] == ["2024-01-01T09:15:30.250000+00:00", "2024-01-02T09:15:30.250000+00:00"]


def test_days_are_utc_days():
    # 23:30 in New York on Jan 1st is already Jan 2nd in UTC
    start = arrow.get("2024-01-01T23:30:00-05:00")
    starts = daily_starts(start, arrow.get("2024-01-03T04:30:00Z"))
    assert [s.format("YYYY-MM-DD HH:mm") for s in starts] == ["2024-01-02 04:30", "2024-01-03 04:30"]


def test_single_day_range():
    start = arrow.get("2024-01-01T09:00:00Z")
    assert daily_starts(start, start) == [start]


def test_start_after_end_is_rejected():
    with pytest.raises(ValueError):
        daily_starts(arrow.get("2024-01-02T09:00:00Z"), arrow.get("2024-01-01T09:00:00Z"))


def test_month_boundary():
    starts = daily_starts(arrow.get("2024-02-28T10:00:00Z"), arrow.get("2024-03-01T10:00:00Z"))
    assert [s.format("MM-DD") for s in starts] == ["02-28", "02-29", "03-01"]


def test_format_time_in_timezone():
    instant = arrow.get("2024-07-01T09:00:00Z")
    assert format_time_in_timezone(instant, "Europe/Paris") == "11:00"
    assert format_time_in_timezone(instant, "America/New_York") == "05:00"


@pytest.mark.parametrize("zone", ["", "Not/AZone"])
def test_format_time_in_unknown_zone(zone: str):
    assert format_time_in_timezone(arrow.get("2024-07-01T09:00:00Z"), zone) == ""
