from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field


ROLE_PARENT = "Parent"
ROLE_ADMIN = "Admin"
ROLE_TEACHER = "Teacher"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Caller:
    """Authenticated identity handed over by the authentication layer."""

    id: str
    role: str
    name: str | None = None


class ChatMessage(BaseModel):
    role: Literal["user", "assistant", "system", "tool"]
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class ConversationThread(BaseModel):
    thread_id: str
    owner_id: str
    title: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class SessionSummary(BaseModel):
    thread_id: str
    title: str | None = None
    created_at: datetime
    updated_at: datetime
