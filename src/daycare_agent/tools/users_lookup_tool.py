from __future__ import annotations

from ..gateway import USERS
from ..models import ROLE_PARENT
from .base import ToolContext, ToolDescriptor, ToolField, require_caller, tool_results


def users_lookup(args, context: ToolContext) -> dict:
    denied = require_caller(context)
    if denied:
        return denied

    results = context.gateway.teachers(args.query, args.n)
    return tool_results(USERS, results, note="Teacher contact information available")


users_lookup_tool = ToolDescriptor(
    name="users_lookup",
    description="Search for teacher contacts - PARENT ONLY (limited information)",
    fields=(
        ToolField("query", str, "Search teacher by name"),
        ToolField("n", int, "Maximum number of results", default=5),
    ),
    allowed_roles=frozenset({ROLE_PARENT}),
    handler=users_lookup,
)
