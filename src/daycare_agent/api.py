from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from .errors import ChatbotError
from .models import Caller
from .schemas import (
    ChatRequest,
    ChatResponse,
    DeleteResponse,
    HealthResponse,
    HistoryResponse,
    SessionsResponse,
)
from .service import ConversationService

router = APIRouter()

logger = logging.getLogger(__name__)


def get_service(request: Request) -> ConversationService:
    return request.app.state.service


def get_caller(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
    x_user_name: str | None = Header(default=None, alias="X-User-Name"),
) -> Caller | None:
    """Identity set by the upstream authentication layer; None when it is missing."""
    if not x_user_id or not x_user_role:
        return None
    return Caller(id=x_user_id, role=x_user_role, name=x_user_name)


def _http_error(exc: ChatbotError) -> HTTPException:
    if exc.status_code >= 500:
        logger.error("[API] %s: %s", exc.kind, exc.detail)
    return HTTPException(status_code=exc.status_code, detail=exc.user_message)


@router.get("/healthz", response_model=HealthResponse)
def healthcheck() -> HealthResponse:
    return HealthResponse()


@router.post("/chatbot/new", response_model=ChatResponse)
async def start_conversation(
    payload: ChatRequest,
    caller: Caller | None = Depends(get_caller),
    service: ConversationService = Depends(get_service),
):
    try:
        result = await service.start_conversation(payload.message, caller)
    except ChatbotError as exc:
        raise _http_error(exc) from exc
    return ChatResponse(thread_id=result["thread_id"], response=result["response"])


@router.post("/chatbot/{thread_id}/message", response_model=ChatResponse)
async def continue_conversation(
    thread_id: str,
    payload: ChatRequest,
    caller: Caller | None = Depends(get_caller),
    service: ConversationService = Depends(get_service),
):
    try:
        result = await service.continue_conversation(thread_id, payload.message, caller)
    except ChatbotError as exc:
        raise _http_error(exc) from exc
    return ChatResponse(thread_id=result["thread_id"], response=result["response"])


@router.get("/chatbot/history/{thread_id}", response_model=HistoryResponse)
async def get_history(
    thread_id: str,
    caller: Caller | None = Depends(get_caller),
    service: ConversationService = Depends(get_service),
):
    try:
        thread = await service.get_history(thread_id, caller)
    except ChatbotError as exc:
        raise _http_error(exc) from exc
    return HistoryResponse(
        thread_id=thread.thread_id,
        title=thread.title,
        messages=thread.messages,
        created_at=thread.created_at,
        updated_at=thread.updated_at,
    )


@router.get("/chatbot/sessions", response_model=SessionsResponse)
async def list_sessions(
    caller: Caller | None = Depends(get_caller),
    service: ConversationService = Depends(get_service),
):
    try:
        sessions = await service.list_sessions(caller)
    except ChatbotError as exc:
        raise _http_error(exc) from exc
    return SessionsResponse(sessions=sessions)


@router.delete("/chatbot/{thread_id}", response_model=DeleteResponse)
async def delete_session(
    thread_id: str,
    caller: Caller | None = Depends(get_caller),
    service: ConversationService = Depends(get_service),
):
    try:
        await service.delete_session(thread_id, caller)
    except ChatbotError as exc:
        raise _http_error(exc) from exc
    return DeleteResponse()
