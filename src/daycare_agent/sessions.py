"""Durable chat history: one document per thread holding the persisted user/assistant pairs.

Ownership checks live in the conversation service; stores look threads up by id only.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Sequence

from firebase_admin import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .config import Settings
from .models import ChatMessage, ConversationThread, SessionSummary, utcnow
from .store import get_firestore_client

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = ["thread_id", "owner_id", "title", "created_at", "updated_at"]


class SessionStore(ABC):
    @abstractmethod
    def get(self, thread_id: str) -> ConversationThread | None:
        """Return the thread regardless of owner, or None."""

    @abstractmethod
    def create(self, thread: ConversationThread) -> ConversationThread:
        """Persist a brand new thread."""

    @abstractmethod
    def append(self, thread_id: str, messages: Sequence[ChatMessage]) -> None:
        """Append messages to an existing thread and bump ``updated_at``."""

    @abstractmethod
    def list_for_owner(self, owner_id: str) -> list[SessionSummary]:
        """Threads of one owner, most recently updated first."""

    @abstractmethod
    def delete(self, thread_id: str) -> bool:
        """Delete a thread; False when it did not exist."""


def _sorted_summaries(summaries: list[SessionSummary]) -> list[SessionSummary]:
    return sorted(summaries, key=lambda s: s.updated_at, reverse=True)


class InMemorySessionStore(SessionStore):
    def __init__(self) -> None:
        self._threads: dict[str, ConversationThread] = {}
        self._lock = threading.Lock()

    def get(self, thread_id: str) -> ConversationThread | None:
        with self._lock:
            thread = self._threads.get(thread_id)
            return thread.model_copy(deep=True) if thread else None

    def create(self, thread: ConversationThread) -> ConversationThread:
        with self._lock:
            if thread.thread_id in self._threads:
                raise ValueError(f"Thread {thread.thread_id} already exists")
            self._threads[thread.thread_id] = thread.model_copy(deep=True)
        return thread

    def append(self, thread_id: str, messages: Sequence[ChatMessage]) -> None:
        with self._lock:
            thread = self._threads.get(thread_id)
            if thread is None:
                raise KeyError(thread_id)
            thread.messages.extend(copy.deepcopy(list(messages)))
            thread.updated_at = utcnow()

    def list_for_owner(self, owner_id: str) -> list[SessionSummary]:
        with self._lock:
            summaries = [
                SessionSummary(
                    thread_id=t.thread_id,
                    title=t.title,
                    created_at=t.created_at,
                    updated_at=t.updated_at,
                )
                for t in self._threads.values()
                if t.owner_id == owner_id
            ]
        return _sorted_summaries(summaries)

    def delete(self, thread_id: str) -> bool:
        with self._lock:
            return self._threads.pop(thread_id, None) is not None


def _message_to_dict(message: ChatMessage) -> dict[str, Any]:
    return {"role": message.role, "content": message.content, "timestamp": message.timestamp}


class FirestoreSessionStore(SessionStore):
    """Sessions stored at ``{collection}/{thread_id}``."""

    def __init__(self, client, *, collection: str = "chatSessions") -> None:
        self.client = client
        self.collection = collection

    def _ref(self, thread_id: str):
        return self.client.collection(self.collection).document(thread_id)

    def get(self, thread_id: str) -> ConversationThread | None:
        snapshot = self._ref(thread_id).get()
        if not snapshot.exists:
            return None
        data = snapshot.to_dict() or {}
        return ConversationThread(
            thread_id=data.get("thread_id") or thread_id,
            owner_id=data["owner_id"],
            title=data.get("title"),
            messages=[ChatMessage(**m) for m in data.get("messages", [])],
            created_at=data.get("created_at") or utcnow(),
            updated_at=data.get("updated_at") or utcnow(),
        )

    def create(self, thread: ConversationThread) -> ConversationThread:
        self._ref(thread.thread_id).create(
            {
                "thread_id": thread.thread_id,
                "owner_id": thread.owner_id,
                "title": thread.title,
                "messages": [_message_to_dict(m) for m in thread.messages],
                "created_at": thread.created_at,
                "updated_at": thread.updated_at,
            }
        )
        logger.info("[SESSIONS] Created thread %s for owner %s", thread.thread_id, thread.owner_id)
        return thread

    def append(self, thread_id: str, messages: Sequence[ChatMessage]) -> None:
        self._ref(thread_id).update(
            {
                "messages": firestore.ArrayUnion([_message_to_dict(m) for m in messages]),
                "updated_at": utcnow(),
            }
        )

    def list_for_owner(self, owner_id: str) -> list[SessionSummary]:
        query = (
            self.client.collection(self.collection)
            .where(filter=FieldFilter("owner_id", "==", owner_id))
            .select(SUMMARY_FIELDS)
        )
        summaries = []
        for snapshot in query.stream():
            data = snapshot.to_dict() or {}
            created: datetime = data.get("created_at") or utcnow()
            summaries.append(
                SessionSummary(
                    thread_id=data.get("thread_id") or snapshot.id,
                    title=data.get("title"),
                    created_at=created,
                    updated_at=data.get("updated_at") or created,
                )
            )
        return _sorted_summaries(summaries)

    def delete(self, thread_id: str) -> bool:
        ref = self._ref(thread_id)
        if not ref.get().exists:
            return False
        ref.delete()
        return True


def create_session_store(settings: Settings) -> SessionStore:
    if settings.store_backend == "memory":
        return InMemorySessionStore()
    return FirestoreSessionStore(get_firestore_client(settings), collection=settings.session_collection)
