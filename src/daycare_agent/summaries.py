"""Aggregations over already-fetched report lists."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

DEVELOPMENT_DOMAINS = ("religious_moral", "social_emotional", "cognitive", "language")
MOTOR_DOMAINS = ("gross_motor", "fine_motor", "independence", "art")
ACTIVITY_AREAS = ("physical_motor", "cognitive", "social_emotional")

NOTE_MARKER = "keterangan"


def _unique(values: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(values))


def weekly_summary(reports: list[Mapping[str, Any]]) -> dict[str, Any] | None:
    """Summarise a week of daily reports; None when there is nothing to summarise."""
    if not reports:
        return None

    themes: list[str] = []
    activities: dict[str, list[str]] = {area: [] for area in ACTIVITY_AREAS}
    snacks: list[str] = []
    lunches: list[str] = []
    special_notes_count = 0

    for report in reports:
        for key in ("theme", "sub_theme"):
            if report.get(key):
                themes.append(report[key])
        for area in ACTIVITY_AREAS:
            if report.get(area):
                activities[area].append(report[area])
        meals = report.get("meals") or {}
        if meals.get("snack"):
            snacks.append(meals["snack"])
        if meals.get("lunch"):
            lunches.append(meals["lunch"])
        if report.get("special_notes"):
            special_notes_count += 1

    return {
        "total_reports": len(reports),
        "themes": _unique(themes),
        "activities": activities,
        "meals_summary": {
            "snack_variety": _unique(snacks),
            "lunch_variety": _unique(lunches),
        },
        "special_notes_count": special_notes_count,
    }


def _assessments(report: Mapping[str, Any], domains: Iterable[str]) -> Iterable[str]:
    for domain in domains:
        fields = report.get(domain)
        if not isinstance(fields, Mapping):
            continue
        for key, value in fields.items():
            if NOTE_MARKER in key or not isinstance(value, str):
                continue
            yield value


def progress_summary(report: Mapping[str, Any]) -> dict[str, int]:
    """Tally assessment outcomes of a single semester report."""
    summary = {
        "total_assessments": 0,
        "consistent_count": 0,
        "inconsistent_count": 0,
        "not_observed_count": 0,
        "independent_count": 0,
        "needs_assistance_count": 0,
    }

    for value in _assessments(report, DEVELOPMENT_DOMAINS):
        summary["total_assessments"] += 1
        if value == "Konsisten":
            summary["consistent_count"] += 1
        elif value == "Belum Konsisten":
            summary["inconsistent_count"] += 1
        elif value == "Tidak Teramati":
            summary["not_observed_count"] += 1

    for value in _assessments(report, MOTOR_DOMAINS):
        summary["total_assessments"] += 1
        if value == "Mandiri":
            summary["independent_count"] += 1
        elif value in ("Bantuan Fisik", "Bantuan Verbal"):
            summary["needs_assistance_count"] += 1
        elif value == "Tidak Teramati":
            summary["not_observed_count"] += 1

    return summary


def assessment_texts(report: Mapping[str, Any]) -> Iterable[str]:
    """Every assessment value and note of a semester report, for free-text search."""
    for domain in DEVELOPMENT_DOMAINS + MOTOR_DOMAINS:
        fields = report.get(domain)
        if not isinstance(fields, Mapping):
            continue
        for value in fields.values():
            if isinstance(value, str) and value:
                yield value
