"""Relative date-range and semester resolution.

Everything here is pure: callers pass ``now`` explicitly, so results are
deterministic and keep whatever timezone ``now`` carries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

END_OF_DAY = time(23, 59, 59, 999000)

PERIOD_ALIASES = {
    "today": "today",
    "hari ini": "today",
    "yesterday": "yesterday",
    "kemarin": "yesterday",
    "this week": "this_week",
    "minggu ini": "this_week",
    "last week": "last_week",
    "minggu lalu": "last_week",
    "this month": "this_month",
    "bulan ini": "this_month",
    "last month": "last_month",
    "bulan lalu": "last_month",
}


@dataclass(frozen=True, slots=True)
class DateRange:
    start: datetime
    end: datetime

    def as_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def local_now(tz_name: str) -> datetime:
    return datetime.now(ZoneInfo(tz_name))


def start_of_day(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def end_of_day(moment: datetime) -> datetime:
    return moment.replace(
        hour=END_OF_DAY.hour,
        minute=END_OF_DAY.minute,
        second=END_OF_DAY.second,
        microsecond=END_OF_DAY.microsecond,
    )


def _days_since_week_start(moment: datetime) -> int:
    # Weeks start on Sunday (weekday() is Monday=0 ... Sunday=6)
    return (moment.weekday() + 1) % 7


def canonical_period(name: str | None) -> str | None:
    if not name:
        return None
    return PERIOD_ALIASES.get(name.strip().lower())


def is_week_period(name: str | None) -> bool:
    return canonical_period(name) in ("this_week", "last_week")


def resolve_period(name: str | None, now: datetime) -> DateRange | None:
    """Resolve a symbolic period (EN or ID) or a ``YYYY-MM-DD`` date into ``[start, end]``.

    Returns None for anything it does not recognise.
    """
    period = canonical_period(name)
    if period == "today":
        return DateRange(start_of_day(now), now)
    if period == "yesterday":
        day = now - timedelta(days=1)
        return DateRange(start_of_day(day), end_of_day(day))
    if period == "this_week":
        start = start_of_day(now - timedelta(days=_days_since_week_start(now)))
        return DateRange(start, now)
    if period == "last_week":
        start = start_of_day(now - timedelta(days=_days_since_week_start(now) + 7))
        return DateRange(start, end_of_day(start + timedelta(days=6)))
    if period == "this_month":
        return DateRange(start_of_day(now.replace(day=1)), now)
    if period == "last_month":
        last_day_prev = now.replace(day=1) - timedelta(days=1)
        return DateRange(start_of_day(last_day_prev.replace(day=1)), end_of_day(last_day_prev))

    specific = parse_date(name)
    if specific is None:
        return None
    moment = datetime.combine(specific, time(), tzinfo=now.tzinfo)
    return DateRange(moment, end_of_day(moment))


def parse_date(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD``; None when the value is not a plain ISO date."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        return None


def current_semester(now: datetime) -> str:
    return f"{now.year}-1" if now.month <= 6 else f"{now.year}-2"


def previous_semester(now: datetime) -> str:
    return f"{now.year - 1}-2" if now.month <= 6 else f"{now.year}-1"
