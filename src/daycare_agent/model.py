"""Model adapter: prompt messages in, one AI message (maybe with tool calls) out."""

from __future__ import annotations

import logging
from typing import Any, Protocol, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from .config import Settings
from .errors import UpstreamAuthFailure, is_quota_exhausted, is_upstream_auth_failure

logger = logging.getLogger(__name__)


class ModelAdapter(Protocol):
    async def invoke(self, messages: Sequence[BaseMessage], tools: Sequence[dict[str, Any]] = ()) -> AIMessage:
        """Run one model call with the given tool declarations bound."""

    async def complete(self, prompt: str) -> str:
        """Single-shot text completion, used for thread titles."""


def message_text(message: BaseMessage) -> str:
    """Flatten string or multi-part message content into plain text."""
    content = message.content
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(str(part.get("text", "")))
    return "".join(parts)


def build_model(settings: Settings, model_id: str | None = None, *, max_retries: int = 0) -> ChatGoogleGenerativeAI:
    """Instantiate the Gemini chat model for the given model_id."""
    if not settings.google_api_key:
        raise UpstreamAuthFailure("No Gemini API key configured (GOOGLE_API_KEY)")
    return ChatGoogleGenerativeAI(
        model=model_id or settings.gemini_model,
        api_key=settings.google_api_key,
        temperature=0,
        timeout=settings.model_timeout_seconds,
        # No client retries, the turn timeout bounds the call
        max_retries=max_retries,
    )


class GeminiModelAdapter:
    """Calls Gemini through LangChain, falling back through the configured model list."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._models: dict[str, ChatGoogleGenerativeAI] = {}

    def _model(self, model_id: str) -> ChatGoogleGenerativeAI:
        if model_id not in self._models:
            self._models[model_id] = build_model(self.settings, model_id)
        return self._models[model_id]

    async def invoke(self, messages: Sequence[BaseMessage], tools: Sequence[dict[str, Any]] = ()) -> AIMessage:
        model_ids = self.settings.chat_model_ids
        for model_idx, model_id in enumerate(model_ids):
            if model_idx > 0:
                logger.info("[MODEL] Trying model %s (fallback %d)", model_id, model_idx + 1)
            model = self._model(model_id)
            runnable = model.bind_tools(list(tools)) if tools else model
            try:
                return await runnable.ainvoke(list(messages))
            except Exception as exc:
                # Bad credentials fail the same way on every model
                if is_upstream_auth_failure(exc):
                    raise
                if model_idx < len(model_ids) - 1:
                    logger.warning("[MODEL] Model %s failed (quota=%s): %s", model_id, is_quota_exhausted(exc), exc)
                    continue
                raise
        raise RuntimeError("No chat models configured")

    async def complete(self, prompt: str) -> str:
        model = self._model(self.settings.gemini_title_model or self.settings.gemini_model)
        response = await model.ainvoke([HumanMessage(content=prompt)])
        return message_text(response)
