from __future__ import annotations

from ..gateway import SCHEDULES
from ..models import ROLE_ADMIN, ROLE_PARENT
from ..periods import resolve_period
from ..vocabulary import normalize_day
from .base import ToolContext, ToolDescriptor, ToolField, require_caller, tool_results


def schedules_lookup(args, context: ToolContext) -> dict:
    """Class schedules ordered by weekday (Monday first) then start time."""

    denied = require_caller(context)
    if denied:
        return denied

    day = normalize_day(args.day)
    period = args.time_period or args.date
    date_range = resolve_period(period, context.now) if period else None

    results = context.gateway.schedules(day=day, text=args.query, date_range=date_range, limit=args.n)
    return tool_results(SCHEDULES, results, day=day, search_period=period or "all")


schedules_lookup_tool = ToolDescriptor(
    name="schedules_lookup",
    description=(
        "Search class schedules by day, title, date or time period. Day names may be Indonesian or English "
        "('Senin'/'Monday' ... 'Minggu'/'Sunday'). Results are sorted by day then start time."
    ),
    fields=(
        ToolField("day", str, "Day of week, e.g. 'Senin' or 'Monday'"),
        ToolField("query", str, "Search in schedule titles"),
        ToolField("date", str, "Specific date (YYYY-MM-DD) or 'today'/'hari ini', 'yesterday'/'kemarin'"),
        ToolField("time_period", str, "Time period: 'this week'/'minggu ini', 'this month'/'bulan ini', ..."),
        ToolField("n", int, "Maximum number of results", default=20),
    ),
    allowed_roles=frozenset({ROLE_PARENT, ROLE_ADMIN}),
    handler=schedules_lookup,
)
