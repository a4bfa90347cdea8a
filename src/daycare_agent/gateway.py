"""Per-tool query layer over the daycare document store.

Every method that reads child-dependent collections takes the already-resolved
set of child ids; resolving "children of this caller" is the first thing each
parent-facing tool does, from the authenticated context only.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from .periods import DateRange
from .store import DocumentStore, Query, contains_text, get_path
from .summaries import assessment_texts
from .vocabulary import DAYS, STATUS_OVERDUE, STATUS_PENDING, day_index

logger = logging.getLogger(__name__)

CHILDREN = "children"
DAILY_REPORTS = "dailyReports"
SEMESTER_REPORTS = "semesterReports"
PAYMENTS = "payments"
USERS = "users"
SCHEDULES = "schedules"
CURRICULUMS = "curriculums"

TEACHER_ROLE = "Teacher"
UNKNOWN_CHILD = "Unknown"

CHILD_SEARCH_FIELDS = ("name", "medical_notes", "gender")
DAILY_REPORT_SEARCH_FIELDS = (
    "theme",
    "sub_theme",
    "physical_motor",
    "cognitive",
    "social_emotional",
    "special_notes",
)


def _matches_label(value: Any, wanted: str, canonical: Sequence[str]) -> bool:
    """Exact match for canonical labels, substring match for anything else."""
    if wanted in canonical:
        return value == wanted
    return contains_text(value, wanted)


def effective_payment_status(payment: Mapping[str, Any], now: datetime) -> str | None:
    """Pending payments whose due date has passed are reported as overdue."""
    status = payment.get("status")
    due = payment.get("due_date")
    if status == STATUS_PENDING and isinstance(due, datetime):
        if due.tzinfo is None and now.tzinfo is not None:
            due = due.replace(tzinfo=now.tzinfo)
        if due < now:
            return STATUS_OVERDUE
    return status


def schedule_day(schedule: Mapping[str, Any]) -> str | None:
    day = schedule.get("day")
    if day:
        return day
    when = schedule.get("date")
    if isinstance(when, datetime):
        return DAYS[when.weekday()]
    return None


def start_time_key(value: Any) -> tuple[int, int]:
    """Sort key for an "H:MM" start time; missing or malformed times sort last."""
    hour, _, minute = str(value or "").strip().partition(":")
    try:
        return int(hour), int(minute or 0)
    except ValueError:
        return 24, 0


def _best_name_match(candidates: list[dict[str, Any]], field: str, wanted: str) -> dict[str, Any] | None:
    lowered = wanted.strip().lower()
    for candidate in candidates:
        if str(candidate.get(field, "")).lower() == lowered:
            return candidate
    return candidates[0] if candidates else None


class DataGateway:
    """Thin query helpers for the tool handlers."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    # -- children -----------------------------------------------------------

    def children_of(self, parent_id: str) -> list[dict[str, Any]]:
        return self.store.find(CHILDREN, Query(equals={"parent_id": parent_id}))

    def search_children(self, parent_id: str, text: str | None, limit: int) -> list[dict[str, Any]]:
        query = Query(
            equals={"parent_id": parent_id},
            text=text,
            text_fields=CHILD_SEARCH_FIELDS,
            order_by=[("name", False)],
            limit=limit,
        )
        return self.store.find(CHILDREN, query)

    def find_child_by_name(self, parent_id: str, name: str) -> dict[str, Any] | None:
        candidates = self.store.find(
            CHILDREN,
            Query(equals={"parent_id": parent_id}, text=name, text_fields=("name",)),
        )
        return _best_name_match(candidates, "name", name)

    @staticmethod
    def attach_child_names(records: Iterable[dict[str, Any]], children: Iterable[Mapping[str, Any]]) -> None:
        names = {child["id"]: child.get("name", UNKNOWN_CHILD) for child in children}
        for record in records:
            record["child_name"] = names.get(record.get("child_id"), UNKNOWN_CHILD)

    # -- reports ------------------------------------------------------------

    def daily_reports(
        self,
        child_ids: Sequence[str],
        *,
        date_range: DateRange | None = None,
        text: str | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        query = Query(
            any_of={"child_id": list(child_ids)},
            text=text,
            text_fields=DAILY_REPORT_SEARCH_FIELDS,
            order_by=[("date", True)],
            limit=limit,
        )
        if date_range is not None:
            query.ranges["date"] = (date_range.start, date_range.end)
        return self.store.find(DAILY_REPORTS, query)

    def latest_semester(self, child_ids: Sequence[str]) -> str | None:
        latest = self.store.find(
            SEMESTER_REPORTS,
            Query(any_of={"child_id": list(child_ids)}, order_by=[("semester", True)], limit=1),
        )
        return latest[0].get("semester") if latest else None

    def semester_reports(
        self,
        child_ids: Sequence[str],
        *,
        semester: str | None = None,
        text: str | None = None,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        query = Query(
            any_of={"child_id": list(child_ids)},
            order_by=[("semester", True)],
            limit=limit,
        )
        if semester:
            query.equals["semester"] = semester
        if text and text.strip():
            needle = text.strip()
            query.predicate = lambda report: any(contains_text(value, needle) for value in assessment_texts(report))
        return self.store.find(SEMESTER_REPORTS, query)

    # -- payments -----------------------------------------------------------

    def payments(
        self,
        child_ids: Sequence[str],
        *,
        now: datetime,
        status: str | None = None,
        category: str | None = None,
        period_text: str | None = None,
        limit: int = 10,
        statuses: Sequence[str] = (),
        categories: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        def wanted(payment: Mapping[str, Any]) -> bool:
            if status and not _matches_label(effective_payment_status(payment, now), status, statuses):
                return False
            if category and not _matches_label(payment.get("category"), category, categories):
                return False
            return True

        query = Query(
            any_of={"child_id": list(child_ids)},
            text=period_text,
            text_fields=("period",),
            predicate=wanted,
            order_by=[("due_date", False)],
            limit=limit,
        )
        results = self.store.find(PAYMENTS, query)
        for payment in results:
            derived = effective_payment_status(payment, now)
            if derived != payment.get("status"):
                payment["stored_status"] = payment.get("status")
                payment["status"] = derived
        return results

    # -- users --------------------------------------------------------------

    def teachers(self, text: str | None, limit: int) -> list[dict[str, Any]]:
        results = self.store.find(
            USERS,
            Query(equals={"role": TEACHER_ROLE}, text=text, text_fields=("name",), order_by=[("name", False)], limit=limit),
        )
        return [{"id": user["id"], "name": user.get("name"), "role": user.get("role")} for user in results]

    def find_teacher(self, name: str) -> dict[str, Any] | None:
        candidates = self.store.find(
            USERS, Query(equals={"role": TEACHER_ROLE}, text=name, text_fields=("name",))
        )
        return _best_name_match(candidates, "name", name)

    def find_curriculum(self, title: str) -> dict[str, Any] | None:
        candidates = self.store.find(CURRICULUMS, Query(text=title, text_fields=("title",)))
        return _best_name_match(candidates, "title", title)

    # -- schedules ----------------------------------------------------------

    def schedules(
        self,
        *,
        day: str | None = None,
        text: str | None = None,
        date_range: DateRange | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        query = Query(text=text, text_fields=("title",))
        if date_range is not None:
            query.ranges["date"] = (date_range.start, date_range.end)
        if day:
            query.predicate = lambda schedule: _matches_label(schedule_day(schedule), day, DAYS)

        results = self.store.find(SCHEDULES, query)
        for schedule in results:
            schedule["day"] = schedule_day(schedule)
        results.sort(key=lambda s: (day_index(s.get("day")), start_time_key(s.get("startTime"))))
        results = results[:limit]
        self._attach_schedule_references(results)
        return results

    def _attach_schedule_references(self, schedules: list[dict[str, Any]]) -> None:
        teachers = self.store.get_many(USERS, (s.get("teacher") for s in schedules))
        curriculums = self.store.get_many(CURRICULUMS, (s.get("curriculum") for s in schedules))
        for schedule in schedules:
            teacher = teachers.get(schedule.get("teacher") or "")
            curriculum = curriculums.get(schedule.get("curriculum") or "")
            schedule["teacher_name"] = teacher.get("name") if teacher else None
            schedule["curriculum_title"] = curriculum.get("title") if curriculum else None

    def create_schedule(self, data: Mapping[str, Any]) -> dict[str, Any]:
        created = self.store.insert(SCHEDULES, data)
        logger.info("[GATEWAY] Created schedule %s (%s)", created["id"], get_path(created, "title"))
        return created
