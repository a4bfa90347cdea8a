from __future__ import annotations

import logging

from ..gateway import DAILY_REPORTS
from ..models import ROLE_PARENT
from ..periods import is_week_period, resolve_period
from ..summaries import weekly_summary
from .base import ToolContext, ToolDescriptor, ToolField, no_related_records, require_caller, tool_results

logger = logging.getLogger(__name__)


def daily_reports_lookup(args, context: ToolContext) -> dict:
    denied = require_caller(context)
    if denied:
        return denied

    gateway = context.gateway
    children = gateway.children_of(context.caller.id)
    if not children:
        return no_related_records(DAILY_REPORTS)
    child_ids = [child["id"] for child in children]

    if args.child_name and args.child_name.strip():
        specific = gateway.find_child_by_name(context.caller.id, args.child_name)
        if specific:
            child_ids = [specific["id"]]

    # A time period takes precedence over a single date
    period = args.time_period or args.date
    date_range = resolve_period(period, context.now) if period else None
    if period and date_range is None:
        logger.info("[TOOLS] Unrecognised period %r, returning all reports", period)

    results = gateway.daily_reports(child_ids, date_range=date_range, text=args.query, limit=args.n)
    gateway.attach_child_names(results, children)

    extra: dict = {"search_period": period or "all"}
    if date_range is not None:
        extra["date_range"] = date_range.as_dict()
    if args.time_period and is_week_period(args.time_period):
        extra["weekly_summary"] = weekly_summary(results)
    return tool_results(DAILY_REPORTS, results, **extra)


daily_reports_lookup_tool = ToolDescriptor(
    name="daily_reports_lookup",
    description=(
        "Search for daily reports by theme, activities, date, time period, or child name - PARENT ONLY. "
        "If no date specified, returns ALL available reports sorted by newest first. "
        "Time periods: 'today'/'hari ini', 'yesterday'/'kemarin', 'this week'/'minggu ini', "
        "'last week'/'minggu lalu', 'this month'/'bulan ini', 'last month'/'bulan lalu'"
    ),
    fields=(
        ToolField("query", str, "Search in themes, activities, or notes"),
        ToolField("date", str, "Specific date (YYYY-MM-DD) or 'today'/'hari ini', 'yesterday'/'kemarin'"),
        ToolField(
            "time_period",
            str,
            "Time period: 'this week'/'minggu ini', 'last week'/'minggu lalu', 'this month'/'bulan ini', 'last month'/'bulan lalu'",
        ),
        ToolField("child_name", str, "Filter by specific child name"),
        ToolField("n", int, "Maximum number of results", default=20),
    ),
    allowed_roles=frozenset({ROLE_PARENT}),
    handler=daily_reports_lookup,
)
