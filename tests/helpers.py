"""Shared test helpers (scripted model, tool invocation)."""

from __future__ import annotations

import asyncio
import itertools
import json
from datetime import datetime
from typing import Any, Callable, Sequence
from zoneinfo import ZoneInfo

from langchain_core.messages import AIMessage, BaseMessage, ToolMessage

JAKARTA = ZoneInfo("Asia/Jakarta")

_call_ids = itertools.count(1)


def local(year, month, day, hour=0, minute=0):
    return datetime(year, month, day, hour, minute, tzinfo=JAKARTA)


def tool_call(name: str, args: dict | None = None, call_id: str | None = None) -> dict:
    return {"name": name, "args": args or {}, "id": call_id or f"call_{next(_call_ids)}", "type": "tool_call"}


def ai_tool_calls(*calls: dict) -> AIMessage:
    return AIMessage(content="", tool_calls=list(calls))


def run_tool(descriptor, context, **kwargs):
    """Validate ``kwargs`` against the descriptor and run its handler."""
    return descriptor.handler(descriptor.validate(kwargs), context)


def tool_payloads(messages: Sequence[BaseMessage]) -> list[dict]:
    return [json.loads(m.content) for m in messages if isinstance(m, ToolMessage)]


class ScriptedModel:
    """Stands in for Gemini: replays queued responses and records every call.

    Queued items may be AIMessages, exceptions to raise, or callables taking the
    prompt messages. Once the queue is empty ``default`` is used.
    """

    def __init__(
        self,
        responses: Sequence[Any] = (),
        *,
        default: Callable[[list[BaseMessage]], AIMessage] | None = None,
        title: str | Exception = '{"accepted": true, "title": "Jadwal Kelas"}',
        delay: float = 0.0,
    ) -> None:
        self.responses = list(responses)
        self.default = default
        self.title = title
        self.delay = delay
        self.calls: list[dict[str, Any]] = []
        self.prompts: list[str] = []

    async def invoke(self, messages, tools=()):
        self.calls.append({"messages": list(messages), "tools": [t["function"]["name"] for t in tools]})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.responses:
            response = self.responses.pop(0)
        elif self.default is not None:
            response = self.default
        else:
            response = AIMessage(content="Baik.")
        if callable(response):
            response = response(list(messages))
        if isinstance(response, BaseException):
            raise response
        # A fresh message each time, the graph assigns ids in place
        return AIMessage(content=response.content, tool_calls=list(response.tool_calls))

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if isinstance(self.title, Exception):
            raise self.title
        return self.title


def always_calls(name: str, args: dict | None = None) -> Callable[[list[BaseMessage]], AIMessage]:
    """A model step that requests the same tool forever."""
    return lambda messages: ai_tool_calls(tool_call(name, args))
