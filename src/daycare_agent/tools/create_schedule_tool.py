from __future__ import annotations

import logging
from datetime import datetime, time

from ..errors import TOOL_VALIDATION_ERROR
from ..gateway import SCHEDULES
from ..models import ROLE_ADMIN
from ..periods import parse_date
from ..vocabulary import DAYS
from .base import ToolContext, ToolDescriptor, ToolField, require_caller, tool_error

logger = logging.getLogger(__name__)

UNASSIGNED_LABEL = "Belum ditentukan"


def create_schedule(args, context: ToolContext) -> dict:
    """Create a schedule, resolving teacher and curriculum names loosely.

    A name that matches nothing leaves the reference empty instead of failing
    the whole operation.
    """

    denied = require_caller(context)
    if denied:
        return denied

    day = parse_date(args.date)
    if day is None:
        return tool_error(TOOL_VALIDATION_ERROR, f"Invalid date '{args.date}', expected YYYY-MM-DD")

    gateway = context.gateway
    teacher = gateway.find_teacher(args.teacher_name) if args.teacher_name else None
    curriculum = gateway.find_curriculum(args.curriculum_title) if args.curriculum_title else None
    if args.teacher_name and teacher is None:
        logger.info("[TOOLS] No teacher matches %r, creating schedule without teacher", args.teacher_name)
    if args.curriculum_title and curriculum is None:
        logger.info("[TOOLS] No curriculum matches %r, creating schedule without curriculum", args.curriculum_title)

    record = {
        "title": args.title.strip(),
        "date": datetime.combine(day, time(), tzinfo=context.now.tzinfo),
        "day": DAYS[day.weekday()],
        "startTime": args.start_time,
        "endTime": args.end_time,
        "teacher": teacher["id"] if teacher else None,
        "curriculum": curriculum["id"] if curriculum else None,
        "createdBy": context.caller.id,
        "createdAt": context.now,
    }
    created = gateway.create_schedule(record)

    return {
        "status": "success",
        "collection": SCHEDULES,
        "schedule": created,
        "teacher_label": teacher.get("name") if teacher else UNASSIGNED_LABEL,
        "curriculum_label": curriculum.get("title") if curriculum else UNASSIGNED_LABEL,
        "message": f"Schedule '{created['title']}' created for {created['day']} {day.isoformat()}",
    }


create_schedule_tool = ToolDescriptor(
    name="create_schedule",
    description=(
        "Create a class schedule - ADMIN ONLY. Teacher and curriculum may be given by (partial) name; "
        "unknown names are left unassigned."
    ),
    fields=(
        ToolField("title", str, "Schedule title", required=True),
        ToolField("date", str, "Date of the session (YYYY-MM-DD)", required=True),
        ToolField("start_time", str, "Start time, HH:MM"),
        ToolField("end_time", str, "End time, HH:MM"),
        ToolField("teacher_name", str, "Teacher name (partial match)"),
        ToolField("curriculum_title", str, "Curriculum title (partial match)"),
    ),
    allowed_roles=frozenset({ROLE_ADMIN}),
    handler=create_schedule,
)
