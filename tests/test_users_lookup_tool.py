"""Tests for the teacher lookup tool."""

from __future__ import annotations

from daycare_agent.tools.users_lookup_tool import users_lookup_tool
from tests.helpers import run_tool


def test_returns_teachers_only(parent_context):
    result = run_tool(users_lookup_tool, parent_context)

    assert result["collection"] == "users"
    assert result["results"] == [
        {"id": "teacher-1", "name": "Bu Rina", "role": "Teacher"},
        {"id": "teacher-2", "name": "Pak Joko", "role": "Teacher"},
    ]


def test_name_query_and_default_limit(parent_context):
    result = run_tool(users_lookup_tool, parent_context, query="joko")
    assert [u["name"] for u in result["results"]] == ["Pak Joko"]
    assert users_lookup_tool.validate({}).n == 5
