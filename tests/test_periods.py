"""Tests for relative date-range and semester resolution."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from daycare_agent.periods import (
    current_semester,
    is_week_period,
    parse_date,
    previous_semester,
    resolve_period,
)
from tests.helpers import JAKARTA, local


class TestResolvePeriod:
    @pytest.mark.parametrize(
        "moment",
        [
            local(2025, 11, 19, 10, 0),
            local(2024, 2, 29, 23, 59),
            local(2025, 1, 1, 0, 0),
            datetime(2025, 6, 30, 13, 45, 12, 345000),
        ],
    )
    def test_today_is_midnight_to_now(self, moment):
        result = resolve_period("today", moment)
        assert result.start == moment.replace(hour=0, minute=0, second=0, microsecond=0)
        assert result.end == moment
        # Deterministic for the same input
        assert resolve_period("today", moment) == result

    def test_indonesian_alias(self, now):
        assert resolve_period("hari ini", now) == resolve_period("today", now)
        assert resolve_period("  Bulan Lalu ", now) == resolve_period("last month", now)

    def test_last_month(self):
        result = resolve_period("last month", local(2025, 11, 19))
        assert result.start == local(2025, 10, 1)
        assert result.end == datetime(2025, 10, 31, 23, 59, 59, 999000, tzinfo=JAKARTA)

    def test_last_month_across_year(self):
        result = resolve_period("bulan lalu", local(2025, 1, 15))
        assert result.start == local(2024, 12, 1)
        assert result.end.date() == date(2024, 12, 31)

    def test_yesterday(self, now):
        result = resolve_period("kemarin", now)
        assert result.start == local(2025, 11, 18)
        assert result.end == datetime(2025, 11, 18, 23, 59, 59, 999000, tzinfo=JAKARTA)

    def test_this_week_starts_on_sunday(self, now):
        result = resolve_period("this week", now)
        assert result.start == local(2025, 11, 16)
        assert result.start.weekday() == 6
        assert result.end == now

    def test_this_week_on_a_sunday_starts_that_day(self):
        sunday = local(2025, 11, 16, 8, 0)
        assert resolve_period("minggu ini", sunday).start == local(2025, 11, 16)

    def test_last_week_ends_on_saturday(self, now):
        result = resolve_period("last week", now)
        assert result.start == local(2025, 11, 9)
        assert result.end == datetime(2025, 11, 15, 23, 59, 59, 999000, tzinfo=JAKARTA)
        assert result.end - result.start < timedelta(days=7)

    def test_this_month(self, now):
        result = resolve_period("this month", now)
        assert result.start == local(2025, 11, 1)
        assert result.end == now

    def test_specific_date(self, now):
        result = resolve_period("2025-11-03", now)
        assert result.start == local(2025, 11, 3)
        assert result.end == datetime(2025, 11, 3, 23, 59, 59, 999000, tzinfo=JAKARTA)

    @pytest.mark.parametrize("name", ["someday", "", None, "2025-13-01", "next week"])
    def test_unknown_returns_none(self, now, name):
        assert resolve_period(name, now) is None

    def test_as_dict_is_iso(self, now):
        data = resolve_period("today", now).as_dict()
        assert data == {"start": "2025-11-19T00:00:00+07:00", "end": "2025-11-19T10:00:00+07:00"}


def test_is_week_period():
    assert is_week_period("this week")
    assert is_week_period("Minggu Lalu")
    assert not is_week_period("this month")
    assert not is_week_period(None)


def test_parse_date():
    assert parse_date("2025-11-24") == date(2025, 11, 24)
    assert parse_date(" 2025-11-24 ") == date(2025, 11, 24)
    assert parse_date("24/11/2025") is None
    assert parse_date(None) is None


@pytest.mark.parametrize(
    "moment, current, previous",
    [
        (local(2025, 3, 1), "2025-1", "2024-2"),
        (local(2025, 6, 30), "2025-1", "2024-2"),
        (local(2025, 7, 1), "2025-2", "2025-1"),
        (local(2025, 11, 19), "2025-2", "2025-1"),
    ],
)
def test_semesters(moment, current, previous):
    assert current_semester(moment) == current
    assert previous_semester(moment) == previous
