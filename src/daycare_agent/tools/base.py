"""Tool descriptors and the registry the agent dispatches through.

A tool is declared with an explicit field table. The table drives both the
function declaration sent to the model and the pydantic model that validates
the model's arguments before the handler runs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Any, Callable, Iterable, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, create_model

from ..errors import TOOL_AUTH_REQUIRED
from ..gateway import DataGateway
from ..models import Caller

_JSON_TYPES = {str: "string", int: "integer", float: "number", bool: "boolean"}


@dataclass(frozen=True, slots=True)
class ToolField:
    name: str
    type: type = str
    description: str = ""
    required: bool = False
    default: Any = None


@dataclass(frozen=True, slots=True)
class ToolContext:
    """Per-call context. Identity comes from here, never from tool arguments."""

    caller: Caller | None
    gateway: DataGateway
    now: datetime
    thread_id: str | None = None


ToolHandler = Callable[[BaseModel, ToolContext], Union[dict, str]]


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    fields: tuple[ToolField, ...]
    allowed_roles: frozenset[str]
    handler: ToolHandler

    @cached_property
    def args_model(self) -> type[BaseModel]:
        definitions: dict[str, Any] = {}
        for item in self.fields:
            if item.required:
                definitions[item.name] = (item.type, Field(..., description=item.description))
            elif item.default is None:
                definitions[item.name] = (item.type | None, Field(None, description=item.description))
            else:
                definitions[item.name] = (item.type, Field(item.default, description=item.description))
        model_name = "".join(part.title() for part in self.name.split("_")) + "Args"
        return create_model(model_name, __config__=ConfigDict(extra="ignore"), **definitions)

    def validate(self, raw: Mapping[str, Any] | None) -> BaseModel:
        """Raise ``pydantic.ValidationError`` when required fields are missing or mistyped."""
        return self.args_model.model_validate(dict(raw or {}))

    def allows(self, role: str | None) -> bool:
        return role is not None and role in self.allowed_roles

    def declaration(self) -> dict[str, Any]:
        """Function declaration in the OpenAI tool format accepted by ``bind_tools``."""
        properties: dict[str, Any] = {}
        for item in self.fields:
            prop: dict[str, Any] = {"type": _JSON_TYPES.get(item.type, "string")}
            description = item.description
            if not item.required and item.default is not None:
                description = f"{description} (default {item.default})".strip()
            if description:
                prop["description"] = description
            properties[item.name] = prop
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": properties,
                    "required": [item.name for item in self.fields if item.required],
                },
            },
        }


@dataclass
class ToolRegistry:
    _tools: dict[str, ToolDescriptor] = field(default_factory=dict)

    def register(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            raise ValueError(f"Tool '{descriptor.name}' is already registered")
        self._tools[descriptor.name] = descriptor

    def get(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def visible_to(self, role: str | None) -> list[ToolDescriptor]:
        return [tool for tool in self._tools.values() if tool.allows(role)]

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    @classmethod
    def of(cls, descriptors: Iterable[ToolDescriptor]) -> "ToolRegistry":
        registry = cls()
        for descriptor in descriptors:
            registry.register(descriptor)
        return registry


def tool_error(kind: str, message: str, **extra: Any) -> dict[str, Any]:
    return {"status": "error", "error": kind, "message": message, **extra}


def tool_results(collection: str, results: list[dict[str, Any]], **extra: Any) -> dict[str, Any]:
    return {
        "status": "success",
        "collection": collection,
        "count": len(results),
        "results": results,
        **extra,
    }


def no_related_records(collection: str, message: str = "No registered children") -> dict[str, Any]:
    return tool_results(collection, [], message=message)


def require_caller(context: ToolContext) -> dict[str, Any] | None:
    """Return an error payload when the call carries no authenticated caller."""
    if context.caller is None or not context.caller.id:
        return tool_error(TOOL_AUTH_REQUIRED, "System error: User authentication required")
    return None
