"""Conversation service: the only entry point callers use to talk to the agent.

A turn runs the compiled graph against the thread's checkpoint, raced against a
wall-clock timeout. Cancellation of the losing graph task is cooperative: tool
work already committed (e.g. a created schedule) is not rolled back.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, TypedDict

from langchain_core.messages import HumanMessage
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.errors import GraphRecursionError

from .agent import create_graph
from .checkpoint import create_checkpointer
from .config import Settings
from .errors import (
    AuthRequired,
    ChatbotError,
    ChatbotUnavailable,
    InvalidMessage,
    RecursionExceeded,
    ThreadNotFound,
    TurnTimeout,
    classify_model_error,
)
from .gateway import DataGateway
from .model import GeminiModelAdapter, ModelAdapter, message_text
from .models import Caller, ChatMessage, ConversationThread, SessionSummary
from .sessions import SessionStore, create_session_store
from .store import create_document_store
from .title_generator import generate_thread_title
from .tools import ToolRegistry, build_registry

logger = logging.getLogger(__name__)


class TurnResult(TypedDict):
    thread_id: str
    response: str


def new_thread_id(owner_id: str) -> str:
    return f"thread_{int(time.time() * 1000)}_{owner_id}"


def checkpoint_thread_id(thread_id: str, owner_id: str) -> str:
    """Checkpoint key for a thread; graph state is never shared across owners."""
    return f"{owner_id}:{thread_id}"


class ConversationService:
    def __init__(
        self,
        *,
        registry: ToolRegistry,
        gateway: DataGateway,
        model: ModelAdapter,
        checkpointer: BaseCheckpointSaver | None,
        sessions: SessionStore,
        settings: Settings,
        title_model: ModelAdapter | None = None,
    ) -> None:
        self.registry = registry
        self.gateway = gateway
        self.model = model
        self.checkpointer = checkpointer
        self.sessions = sessions
        self.settings = settings
        self.title_model = title_model or model
        self.graph = create_graph(
            registry=registry,
            gateway=gateway,
            model=model,
            settings=settings,
            checkpointer=checkpointer,
        )

    # -- guards -------------------------------------------------------------

    def _require_caller(self, caller: Caller | None) -> Caller:
        if caller is None or not caller.id:
            raise AuthRequired()
        return caller

    def _require_chatbot_role(self, caller: Caller | None) -> Caller:
        caller = self._require_caller(caller)
        if caller.role not in self.settings.allowed_chatbot_roles:
            logger.warning("[SERVICE] Chatbot refused for role %s (user %s)", caller.role, caller.id)
            raise ChatbotUnavailable()
        return caller

    async def _owned_thread(self, thread_id: str, caller: Caller) -> ConversationThread:
        thread = await asyncio.to_thread(self.sessions.get, thread_id)
        # Someone else's thread looks exactly like a missing one
        if thread is None or thread.owner_id != caller.id:
            raise ThreadNotFound()
        return thread

    # -- turns --------------------------------------------------------------

    def _run_config(self, thread_id: str, caller: Caller) -> RunnableConfig:
        return {
            "configurable": {
                "thread_id": checkpoint_thread_id(thread_id, caller.id),
                "user_id": caller.id,
                "user_role": caller.role,
                "user_name": caller.name,
            },
            "recursion_limit": self.settings.recursion_limit,
        }

    async def _run_graph(self, text: str, config: RunnableConfig) -> dict[str, Any]:
        run = asyncio.ensure_future(self.graph.ainvoke({"messages": [HumanMessage(content=text)]}, config=config))
        done, _ = await asyncio.wait({run}, timeout=self.settings.turn_timeout_seconds)
        if run not in done:
            run.cancel()
            logger.warning(
                "[SERVICE] Turn on %s exceeded %.1fs, cancelled",
                config["configurable"]["thread_id"],
                self.settings.turn_timeout_seconds,
            )
            raise TurnTimeout()
        try:
            return run.result()
        except GraphRecursionError as exc:
            logger.warning("[SERVICE] Recursion limit %d reached: %s", self.settings.recursion_limit, exc)
            raise RecursionExceeded() from exc
        except ChatbotError:
            raise
        except Exception as exc:
            logger.exception("[SERVICE] Agent run failed")
            raise classify_model_error(exc) from exc

    async def handle_turn(self, message: str | None, thread_id: str, caller: Caller | None) -> str:
        """Run one turn on ``thread_id`` and return the assistant text.

        The thread is created on its first successful turn. Nothing is
        persisted when the turn fails.
        """
        caller = self._require_chatbot_role(caller)
        text = (message or "").strip()
        if not text:
            raise InvalidMessage()

        existing = await asyncio.to_thread(self.sessions.get, thread_id)
        if existing is not None and existing.owner_id != caller.id:
            raise ThreadNotFound()

        logger.info("[SERVICE] Turn on %s for %s (%s)", thread_id, caller.id, caller.role)
        result = await self._run_graph(text, self._run_config(thread_id, caller))
        response = message_text(result["messages"][-1]).strip()

        pair = [ChatMessage(role="user", content=text), ChatMessage(role="assistant", content=response)]
        if existing is None:
            title = await generate_thread_title(self.title_model, text, response)
            thread = ConversationThread(thread_id=thread_id, owner_id=caller.id, title=title, messages=pair)
            await asyncio.to_thread(self.sessions.create, thread)
        else:
            await asyncio.to_thread(self.sessions.append, thread_id, pair)
        return response

    async def start_conversation(self, message: str | None, caller: Caller | None) -> TurnResult:
        caller = self._require_caller(caller)
        thread_id = new_thread_id(caller.id)
        response = await self.handle_turn(message, thread_id, caller)
        return TurnResult(thread_id=thread_id, response=response)

    async def continue_conversation(self, thread_id: str, message: str | None, caller: Caller | None) -> TurnResult:
        response = await self.handle_turn(message, thread_id, caller)
        return TurnResult(thread_id=thread_id, response=response)

    # -- history ------------------------------------------------------------

    async def get_history(self, thread_id: str, caller: Caller | None) -> ConversationThread:
        caller = self._require_caller(caller)
        return await self._owned_thread(thread_id, caller)

    async def list_sessions(self, caller: Caller | None) -> list[SessionSummary]:
        caller = self._require_caller(caller)
        return await asyncio.to_thread(self.sessions.list_for_owner, caller.id)

    async def delete_session(self, thread_id: str, caller: Caller | None) -> None:
        caller = self._require_caller(caller)
        await self._owned_thread(thread_id, caller)
        await asyncio.to_thread(self.sessions.delete, thread_id)
        if self.checkpointer is not None:
            try:
                await self.checkpointer.adelete_thread(checkpoint_thread_id(thread_id, caller.id))
            except NotImplementedError:
                logger.warning("[SERVICE] Checkpointer cannot delete thread %s", thread_id)
        logger.info("[SERVICE] Deleted thread %s for %s", thread_id, caller.id)


def build_service(settings: Settings) -> ConversationService:
    """Wire the service from configuration; called once at process start."""
    return ConversationService(
        registry=build_registry(),
        gateway=DataGateway(create_document_store(settings)),
        model=GeminiModelAdapter(settings),
        checkpointer=create_checkpointer(settings),
        sessions=create_session_store(settings),
        settings=settings,
    )
