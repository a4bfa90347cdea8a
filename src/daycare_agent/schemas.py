from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from .models import ChatMessage, SessionSummary


class ChatRequest(BaseModel):
    message: str = Field(default="", description="User message for this turn")


class ChatResponse(BaseModel):
    success: bool = True
    thread_id: str
    response: str


class HistoryResponse(BaseModel):
    success: bool = True
    thread_id: str
    title: str | None = None
    messages: list[ChatMessage]
    created_at: datetime
    updated_at: datetime


class SessionsResponse(BaseModel):
    success: bool = True
    sessions: list[SessionSummary]


class DeleteResponse(BaseModel):
    success: bool = True
    message: str = "Chat session deleted"


class HealthResponse(BaseModel):
    status: str = "ok"
