"""Document store used by the data gateway.

Two backends share one query model: Firestore for deployments and an in-memory
store for local development and tests. Firestore only receives the equality and
membership filters it can index; text search, date ranges, ordering and limits
are applied in Python on the streamed documents so both backends behave the
same way (case-insensitive partial matching is not something Firestore offers).
"""

from __future__ import annotations

import copy
import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Sequence

import firebase_admin
from firebase_admin import credentials, firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from .config import Settings

logger = logging.getLogger(__name__)

# Firestore rejects "in" filters with more than 30 values
FIRESTORE_IN_LIMIT = 30


@dataclass
class Query:
    """Filter/sort/limit description understood by every store backend."""

    equals: dict[str, Any] = field(default_factory=dict)
    any_of: dict[str, Sequence[Any]] = field(default_factory=dict)
    ranges: dict[str, tuple[datetime | None, datetime | None]] = field(default_factory=dict)
    text: str | None = None
    text_fields: tuple[str, ...] = ()
    predicate: Callable[[Mapping[str, Any]], bool] | None = None
    order_by: list[tuple[str, bool]] = field(default_factory=list)  # (field, descending)
    limit: int | None = None


def get_path(doc: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path such as ``meals.snack``."""
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return None
        value = value.get(part)
    return value


def contains_text(value: Any, text: str) -> bool:
    return isinstance(value, str) and text.lower() in value.lower()


def _align_tz(value: datetime, bound: datetime) -> datetime:
    if value.tzinfo is None and bound.tzinfo is not None:
        return value.replace(tzinfo=bound.tzinfo)
    if value.tzinfo is not None and bound.tzinfo is None:
        return value.replace(tzinfo=None)
    return value


def _in_range(value: Any, bounds: tuple[datetime | None, datetime | None]) -> bool:
    if not isinstance(value, datetime):
        return False
    start, end = bounds
    if start is not None and _align_tz(value, start) < start:
        return False
    if end is not None and _align_tz(value, end) > end:
        return False
    return True


def matches(doc: Mapping[str, Any], query: Query) -> bool:
    for path, expected in query.equals.items():
        if get_path(doc, path) != expected:
            return False
    for path, allowed in query.any_of.items():
        if get_path(doc, path) not in allowed:
            return False
    for path, bounds in query.ranges.items():
        if not _in_range(get_path(doc, path), bounds):
            return False
    if query.text and query.text.strip():
        needle = query.text.strip()
        if not any(contains_text(get_path(doc, path), needle) for path in query.text_fields):
            return False
    if query.predicate is not None and not query.predicate(doc):
        return False
    return True


def sort_documents(docs: list[dict[str, Any]], order_by: Sequence[tuple[str, bool]]) -> list[dict[str, Any]]:
    """Stable multi-key sort; documents missing a key go last for that key."""
    ordered = list(docs)
    for path, descending in reversed(order_by):
        present = [d for d in ordered if get_path(d, path) is not None]
        missing = [d for d in ordered if get_path(d, path) is None]
        present.sort(key=lambda d: get_path(d, path), reverse=descending)
        ordered = present + missing
    return ordered


def apply_query(docs: Iterable[dict[str, Any]], query: Query) -> list[dict[str, Any]]:
    selected = [doc for doc in docs if matches(doc, query)]
    selected = sort_documents(selected, query.order_by)
    if query.limit is not None:
        selected = selected[: max(query.limit, 0)]
    return selected


class DocumentStore(ABC):
    """Minimal collection API the gateway is written against."""

    @abstractmethod
    def find(self, collection: str, query: Query | None = None) -> list[dict[str, Any]]:
        """Return matching documents; each carries its document id under ``id``."""

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document by id."""

    @abstractmethod
    def insert(self, collection: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Create a document with a generated id and return it."""

    def get_many(self, collection: str, doc_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        found: dict[str, dict[str, Any]] = {}
        for doc_id in dict.fromkeys(doc_ids):
            if not doc_id:
                continue
            doc = self.get(collection, doc_id)
            if doc is not None:
                found[doc_id] = doc
        return found


class InMemoryDocumentStore(DocumentStore):
    """Thread-safe dict-backed store; tool calls run on worker threads."""

    def __init__(self, seed: Mapping[str, Iterable[Mapping[str, Any]]] | None = None) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()
        for collection, docs in (seed or {}).items():
            for doc in docs:
                self.put(collection, doc)

    def put(self, collection: str, data: Mapping[str, Any]) -> dict[str, Any]:
        """Insert or replace a document, keeping its ``id`` when present."""
        doc = copy.deepcopy(dict(data))
        doc.setdefault("id", uuid.uuid4().hex)
        with self._lock:
            self._collections.setdefault(collection, {})[doc["id"]] = doc
        return copy.deepcopy(doc)

    def find(self, collection: str, query: Query | None = None) -> list[dict[str, Any]]:
        with self._lock:
            docs = [copy.deepcopy(doc) for doc in self._collections.get(collection, {}).values()]
        return apply_query(docs, query or Query())

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def insert(self, collection: str, data: Mapping[str, Any]) -> dict[str, Any]:
        doc = dict(data)
        doc["id"] = uuid.uuid4().hex
        return self.put(collection, doc)


def _load_credentials(settings: Settings):
    key = settings.firebase_service_account_key
    if not key:
        return None
    path = Path(key).expanduser()
    if path.exists():
        return credentials.Certificate(str(path))
    try:
        return credentials.Certificate(json.loads(key))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid service account key: {key}") from exc


def initialize_firebase(settings: Settings) -> firebase_admin.App:
    if firebase_admin._apps:
        return firebase_admin.get_app()

    cred = _load_credentials(settings)
    if cred:
        return firebase_admin.initialize_app(cred)
    # Fallback to application default credentials
    return firebase_admin.initialize_app()


def get_firestore_client(settings: Settings):
    """Get Firestore client, initializing Firebase if needed."""
    initialize_firebase(settings)
    return firestore.client()


def _chunks(values: Sequence[Any], size: int) -> Iterable[list[Any]]:
    for start in range(0, len(values), size):
        yield list(values[start : start + size])


class FirestoreDocumentStore(DocumentStore):
    """Top-level Firestore collections named after the logical collections."""

    def __init__(self, client) -> None:
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "FirestoreDocumentStore":
        return cls(get_firestore_client(settings))

    @staticmethod
    def _to_dict(snapshot) -> dict[str, Any]:
        data = snapshot.to_dict() or {}
        data["id"] = snapshot.id
        return data

    def _stream(self, collection: str, query: Query) -> list[dict[str, Any]]:
        base = self.client.collection(collection)
        for path, expected in query.equals.items():
            base = base.where(filter=FieldFilter(path, "==", expected))

        if not query.any_of:
            return [self._to_dict(snap) for snap in base.stream()]

        # Firestore allows a single "in" clause; the rest is re-checked in Python.
        path, allowed = next(iter(query.any_of.items()))
        values = list(dict.fromkeys(allowed))
        if not values:
            return []
        docs: dict[str, dict[str, Any]] = {}
        for chunk in _chunks(values, FIRESTORE_IN_LIMIT):
            for snap in base.where(filter=FieldFilter(path, "in", chunk)).stream():
                docs[snap.id] = self._to_dict(snap)
        return list(docs.values())

    def find(self, collection: str, query: Query | None = None) -> list[dict[str, Any]]:
        query = query or Query()
        docs = self._stream(collection, query)
        logger.debug("[STORE] %s streamed %d document(s)", collection, len(docs))
        return apply_query(docs, query)

    def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        snapshot = self.client.collection(collection).document(doc_id).get()
        if not snapshot.exists:
            return None
        return self._to_dict(snapshot)

    def insert(self, collection: str, data: Mapping[str, Any]) -> dict[str, Any]:
        ref = self.client.collection(collection).document()
        payload = {k: v for k, v in data.items() if k != "id"}
        ref.set(payload)
        return {**payload, "id": ref.id}


def create_document_store(settings: Settings) -> DocumentStore:
    """Build the document store for the configured backend."""
    if settings.store_backend == "memory":
        return InMemoryDocumentStore()
    return FirestoreDocumentStore.from_settings(settings)
