from __future__ import annotations

from ..gateway import CHILDREN
from ..models import ROLE_PARENT
from ..vocabulary import normalize_gender
from .base import ToolContext, ToolDescriptor, ToolField, require_caller, tool_results


def children_lookup(args, context: ToolContext) -> dict:
    """Children registered to the calling parent, optionally filtered by free text."""

    denied = require_caller(context)
    if denied:
        return denied

    # Gender words are stored as the Indonesian labels
    text = normalize_gender(args.query)
    results = context.gateway.search_children(context.caller.id, text, args.n)
    return tool_results(CHILDREN, results)


children_lookup_tool = ToolDescriptor(
    name="children_lookup",
    description="Search for children information - PARENT ONLY. Gender values: 'Laki-laki', 'Perempuan'",
    fields=(
        ToolField(
            "query",
            str,
            "Search query for children data (optional). For gender search use: 'Laki-laki', 'Perempuan'",
        ),
        ToolField("n", int, "Maximum number of results", default=10),
    ),
    allowed_roles=frozenset({ROLE_PARENT}),
    handler=children_lookup,
)
