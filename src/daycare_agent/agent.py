from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Literal, Sequence

from langchain_core.messages import AIMessage, BaseMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import END, START, MessagesState, StateGraph
from pydantic import ValidationError

from .config import Settings
from .errors import TOOL_EXECUTION_ERROR, TOOL_ROLE_FORBIDDEN, TOOL_UNKNOWN, TOOL_VALIDATION_ERROR
from .gateway import DataGateway
from .model import ModelAdapter
from .models import Caller
from .periods import local_now
from .prompts import get_system_prompt
from .tools import ToolContext, ToolRegistry
from .tools.base import tool_error

logger = logging.getLogger(__name__)

AGENT_NODE = "agent"
TOOLS_NODE = "tools"


def caller_from_config(config: RunnableConfig | None) -> Caller | None:
    """Read the authenticated caller the service put into ``configurable``."""
    configurable = (config or {}).get("configurable") or {}
    user_id = configurable.get("user_id")
    if not user_id:
        return None
    return Caller(id=str(user_id), role=str(configurable.get("user_role") or ""), name=configurable.get("user_name"))


def drop_dangling_tool_calls(messages: Sequence[BaseMessage]) -> list[BaseMessage]:
    """Remove tool-call messages left unanswered by an interrupted turn.

    Gemini rejects a function call that is not followed by its response, so an
    AI message is kept only when every one of its calls has a ToolMessage.
    """
    answered = {m.tool_call_id for m in messages if isinstance(m, ToolMessage)}
    kept: list[BaseMessage] = []
    kept_call_ids: set[str] = set()
    for message in messages:
        if isinstance(message, AIMessage) and message.tool_calls:
            call_ids = {call["id"] for call in message.tool_calls}
            if not call_ids <= answered:
                logger.info("[AGENT] Dropping %d unanswered tool call(s) from history", len(call_ids - answered))
                continue
            kept_call_ids |= call_ids
        elif isinstance(message, ToolMessage) and message.tool_call_id not in kept_call_ids:
            continue
        kept.append(message)
    return kept


def execute_tool_call(registry: ToolRegistry, tool_call: dict[str, Any], context: ToolContext) -> dict | str:
    """Run one requested tool call. Failures come back as error payloads, never exceptions."""
    tool_name = tool_call["name"]
    descriptor = registry.get(tool_name)
    if descriptor is None:
        logger.warning("[AGENT] Tool not found: %s", tool_name)
        return tool_error(TOOL_UNKNOWN, f"Requested tool '{tool_name}' is not available.")

    role = context.caller.role if context.caller else None
    if not descriptor.allows(role):
        logger.warning("[AGENT] Tool %s refused for role %s", tool_name, role)
        return tool_error(TOOL_ROLE_FORBIDDEN, f"Tool '{tool_name}' is not available for role {role}.")

    try:
        args = descriptor.validate(tool_call.get("args"))
    except ValidationError as exc:
        return tool_error(
            TOOL_VALIDATION_ERROR,
            f"Invalid arguments for '{tool_name}'",
            details=[f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()],
        )

    logger.info("[AGENT] Executing tool: %s %s", tool_name, str(args.model_dump(exclude_none=True))[:500])
    try:
        return descriptor.handler(args, context)
    except Exception as exc:
        logger.exception("[AGENT] Tool execution failed: %s", tool_name)
        return tool_error(TOOL_EXECUTION_ERROR, f"Tool '{tool_name}' failed: {exc}")


def _observation(result: dict | str) -> str:
    return result if isinstance(result, str) else json.dumps(result, ensure_ascii=False, default=str)


def create_graph(
    *,
    registry: ToolRegistry,
    gateway: DataGateway,
    model: ModelAdapter,
    settings: Settings,
    checkpointer: BaseCheckpointSaver | None = None,
):
    """Compile the two-node agent: the model proposes tool calls, the tools node answers them."""

    async def call_model(state: MessagesState, config: RunnableConfig):
        caller = caller_from_config(config)
        role = caller.role if caller else None
        system_message = SystemMessage(
            content=get_system_prompt(role, local_now(settings.timezone), override=settings.system_prompt)
        )
        declarations = [descriptor.declaration() for descriptor in registry.visible_to(role)]
        messages = [system_message] + drop_dangling_tool_calls(state["messages"])
        response = await model.invoke(messages, tools=declarations)
        if response.tool_calls:
            logger.info("[AGENT] Model requested tools: %s", [call["name"] for call in response.tool_calls])
        return {"messages": [response]}

    async def call_tools(state: MessagesState, config: RunnableConfig):
        last_message = state["messages"][-1]
        tool_calls = list(getattr(last_message, "tool_calls", None) or [])
        context = ToolContext(
            caller=caller_from_config(config),
            gateway=gateway,
            now=local_now(settings.timezone),
            thread_id=(config.get("configurable") or {}).get("thread_id"),
        )
        # All calls of one step run concurrently; the step ends when every call has answered
        results = await asyncio.gather(
            *(asyncio.to_thread(execute_tool_call, registry, tool_call, context) for tool_call in tool_calls)
        )
        outputs = []
        for tool_call, result in zip(tool_calls, results):
            observation = _observation(result)
            logger.info("[AGENT] Tool result (%s): %s", tool_call["name"], observation[:500])
            outputs.append(ToolMessage(content=observation, tool_call_id=tool_call["id"], name=tool_call["name"]))
        return {"messages": outputs}

    def should_continue(state: MessagesState) -> Literal["tools", "__end__"]:
        last_message = state["messages"][-1]
        if getattr(last_message, "tool_calls", None):
            return TOOLS_NODE
        return END

    workflow = StateGraph(MessagesState)
    workflow.add_node(AGENT_NODE, call_model)
    workflow.add_node(TOOLS_NODE, call_tools)
    workflow.add_edge(START, AGENT_NODE)
    workflow.add_conditional_edges(AGENT_NODE, should_continue, [TOOLS_NODE, END])
    workflow.add_edge(TOOLS_NODE, AGENT_NODE)

    return workflow.compile(checkpointer=checkpointer)
