"""Generate a short chat title from the first exchange of a thread.

The model may reject (accepted=False) when there is not enough context
(e.g. the user only said "halo"); the caller then falls back to a truncated copy
of the user message.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TypedDict

from .model import ModelAdapter

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 40
FALLBACK_TITLE_LENGTH = 30

SYSTEM_PROMPT = """You suggest a short title (max 5 words) for a daycare assistant conversation, in the language of the conversation.

Rules:
- If the exchange has enough substance to derive a topic, respond with JSON only: {"accepted": true, "title": "Short Title Here"}. No quotes inside the title.
- If it is too vague (e.g. "hi", "halo", "terima kasih"), respond with JSON only: {"accepted": false, "reason": "Not enough context"}.
- Output only valid JSON, no markdown or extra text."""


class TitleResult(TypedDict, total=False):
    accepted: bool
    title: str
    reason: str


def fallback_title(user_message: str) -> str:
    return user_message.strip()[:FALLBACK_TITLE_LENGTH]


async def generate_title(model: ModelAdapter, user_message: str, assistant_response: str) -> TitleResult:
    """Ask the model for a title. Returns accepted + title or a reason."""
    text = (user_message or "").strip()
    if not text:
        return TitleResult(accepted=False, reason="Empty context")
    prompt = (
        f"{SYSTEM_PROMPT}\n\nConversation:\n\n"
        f'User: "{text}"\nAssistant: "{(assistant_response or "")[:100]}..."'
    )
    try:
        raw = await model.complete(prompt)
    except Exception as e:
        logger.debug("Title model call failed: %s", e)
        return TitleResult(accepted=False, reason="Title generation failed")

    raw = re.sub(r"^```(?:json)?\s*|\s*```$", "", raw or "").strip()
    if not raw:
        return TitleResult(accepted=False, reason="No response from model")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.debug("Title model returned invalid JSON: %s", e)
        return TitleResult(accepted=False, reason="Invalid model response")
    if not isinstance(parsed, dict):
        return TitleResult(accepted=False, reason="Invalid model response")

    title = str(parsed.get("title") or "").strip()[:MAX_TITLE_LENGTH]
    if parsed.get("accepted") is True and title:
        return TitleResult(accepted=True, title=title)
    return TitleResult(accepted=False, reason=str(parsed.get("reason") or "Not enough context"))


async def generate_thread_title(model: ModelAdapter, user_message: str, assistant_response: str) -> str:
    """Best-effort title; never raises."""
    result = await generate_title(model, user_message, assistant_response)
    if result.get("accepted"):
        return result["title"]
    logger.info("[TITLE] Falling back to message prefix (%s)", result.get("reason"))
    return fallback_title(user_message)
