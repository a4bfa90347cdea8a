"""Tool registry for the daycare agent."""

from __future__ import annotations

from collections.abc import Sequence

from .base import ToolContext, ToolDescriptor, ToolField, ToolRegistry
from .children_lookup_tool import children_lookup_tool
from .create_schedule_tool import create_schedule_tool
from .daily_reports_lookup_tool import daily_reports_lookup_tool
from .payments_lookup_tool import payments_lookup_tool
from .schedules_lookup_tool import schedules_lookup_tool
from .semester_reports_lookup_tool import semester_reports_lookup_tool
from .users_lookup_tool import users_lookup_tool


def get_registered_tools() -> Sequence[ToolDescriptor]:
    """Return all tools available to the agent."""

    return (
        children_lookup_tool,
        daily_reports_lookup_tool,
        semester_reports_lookup_tool,
        payments_lookup_tool,
        users_lookup_tool,
        schedules_lookup_tool,
        create_schedule_tool,
    )


def build_registry() -> ToolRegistry:
    return ToolRegistry.of(get_registered_tools())


__all__ = [
    "ToolContext",
    "ToolDescriptor",
    "ToolField",
    "ToolRegistry",
    "build_registry",
    "get_registered_tools",
]
