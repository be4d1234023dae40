from datetime import date

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from backend.app.timegrid import (
    day_of_week,
    format_boundary,
    format_time,
    parse_date,
    parse_time,
    snap_down,
)


@pytest.mark.parametrize(
    "raw,expected",
    [("00:00", 0), ("09:30", 570), ("23:59", 1439), (" 18:45 ", 1125)],
)
def test_parse_time_accepts_strict_clock(raw, expected):
    assert parse_time(raw) == expected


@pytest.mark.parametrize("raw", ["9:30", "24:00", "12:60", "1230", "", "ab:cd", None, 930])
def test_parse_time_rejects_malformed(raw):
    assert parse_time(raw) is None


def test_format_time_clamps_to_day():
    assert format_time(0) == "00:00"
    assert format_time(1125) == "18:45"
    assert format_time(-5) == "00:00"
    assert format_time(1440) == "23:59"


def test_format_boundary_reads_midnight_as_24():
    assert format_boundary(1440) == "24:00"
    assert format_boundary(1320) == "22:00"


def test_snap_down_floors_to_grid():
    assert snap_down(1127, 15) == 1125
    assert snap_down(1125, 15) == 1125
    assert snap_down(29, 30) == 0
    with pytest.raises(ValueError):
        snap_down(100, 0)


def test_parse_date():
    assert parse_date("2026-10-18") == date(2026, 10, 18)
    assert parse_date(date(2026, 1, 2)) == date(2026, 1, 2)
    assert parse_date("2026-02-30") is None
    assert parse_date("18.10.2026") is None
    assert parse_date("2026-1-2") is None
    assert parse_date(None) is None


def test_day_of_week_counts_from_sunday():
    assert day_of_week(date(2026, 10, 18)) == 0  # Sunday
    assert day_of_week(date(2026, 10, 19)) == 1
    assert day_of_week(date(2026, 10, 24)) == 6  # Saturday


@settings(max_examples=50, deadline=None)
@given(minute=st.integers(min_value=0, max_value=1439))
def test_format_then_parse_is_identity(minute):
    assert parse_time(format_time(minute)) == minute


@settings(max_examples=50, deadline=None)
@given(minute=st.integers(min_value=0, max_value=1439), step=st.sampled_from([5, 10, 15, 20, 30, 60]))
def test_snapped_minute_is_on_grid_and_not_later(minute, step):
    snapped = snap_down(minute, step)
    assert snapped % step == 0
    assert 0 <= minute - snapped < step
