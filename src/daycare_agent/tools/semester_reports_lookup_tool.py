from __future__ import annotations

from ..gateway import SEMESTER_REPORTS
from ..models import ROLE_PARENT
from ..periods import current_semester, previous_semester
from ..summaries import progress_summary
from ..vocabulary import normalize_assessment
from .base import ToolContext, ToolDescriptor, ToolField, no_related_records, require_caller, tool_results

CURRENT_WORDS = {"current", "sekarang", "ini"}
PREVIOUS_WORDS = {"previous", "lalu", "kemarin"}
LATEST_WORDS = {"latest", "terbaru", "terakhir"}


def resolve_semester(value: str | None, context: ToolContext, child_ids: list[str]) -> str | None:
    """Turn words like "current" or "terbaru" into a stored semester code such as ``2025-1``."""
    if not value or not value.strip():
        return None
    word = value.strip().lower()
    if word in CURRENT_WORDS:
        return current_semester(context.now)
    if word in PREVIOUS_WORDS:
        return previous_semester(context.now)
    if word in LATEST_WORDS:
        return context.gateway.latest_semester(child_ids)
    return value.strip()


def semester_reports_lookup(args, context: ToolContext) -> dict:
    denied = require_caller(context)
    if denied:
        return denied

    gateway = context.gateway
    children = gateway.children_of(context.caller.id)
    if not children:
        return no_related_records(SEMESTER_REPORTS)
    child_ids = [child["id"] for child in children]

    semester = resolve_semester(args.semester, context, child_ids)

    if args.child_name and args.child_name.strip():
        specific = gateway.find_child_by_name(context.caller.id, args.child_name)
        if specific:
            child_ids = [specific["id"]]

    results = gateway.semester_reports(
        child_ids,
        semester=semester,
        text=normalize_assessment(args.query),
        limit=args.n,
    )
    gateway.attach_child_names(results, children)
    for report in results:
        report["progress_summary"] = progress_summary(report)

    return tool_results(SEMESTER_REPORTS, results, search_semester=semester or "all")


semester_reports_lookup_tool = ToolDescriptor(
    name="semester_reports_lookup",
    description=(
        "Search for semester reports by developmental progress, semester, or child name - PARENT ONLY. "
        "Development values: 'Belum Konsisten' (inconsistent), 'Konsisten' (consistent), 'Tidak Teramati' (not observed). "
        "Motor skills: 'Bantuan Fisik' (physical assistance), 'Bantuan Verbal' (verbal assistance), "
        "'Mandiri' (independent), 'Tidak Teramati' (not observed)"
    ),
    fields=(
        ToolField(
            "query",
            str,
            "Search in developmental progress notes. Use Indonesian terms: 'Belum Konsisten', 'Konsisten', "
            "'Tidak Teramati', 'Mandiri', 'Bantuan'",
        ),
        ToolField("semester", str, "Filter by semester: 'current', 'previous', 'latest', or specific like '2025-1'"),
        ToolField("child_name", str, "Filter by specific child name"),
        ToolField("n", int, "Maximum number of results", default=10),
    ),
    allowed_roles=frozenset({ROLE_PARENT}),
    handler=semester_reports_lookup,
)
