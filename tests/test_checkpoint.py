"""Tests for the Firestore checkpoint saver."""

from __future__ import annotations

from unittest.mock import ANY, MagicMock

import pytest
from langgraph.checkpoint.base import empty_checkpoint
from langgraph.checkpoint.memory import InMemorySaver

from daycare_agent.checkpoint import MAX_BLOB_BYTES, FirestoreCheckpointSaver, create_checkpointer


def _config(checkpoint_id=None):
    configurable = {"thread_id": "thread-1", "checkpoint_ns": ""}
    if checkpoint_id:
        configurable["checkpoint_id"] = checkpoint_id
    return {"configurable": configurable}

class _FakeSnapshot:
    def __init__(self, reference, data):
        self.reference = reference
        self.exists = data is not None
        self._data = data

    def to_dict(self):
        return dict(self._data) if self._data is not None else None


class _FakeDocument:
    def __init__(self, docs, path):
        self._docs = docs
        self.path = path

    def set(self, data, merge=False):
        current = self._docs.get(self.path, {}) if merge else {}
        self._docs[self.path] = {**current, **data}

    def get(self):
        return _FakeSnapshot(self, self._docs.get(self.path))

    def delete(self):
        self._docs.pop(self.path, None)

    def collection(self, name):
        return _FakeCollection(self._docs, f"{self.path}/{name}")


class _FakeCollection:
    def __init__(self, docs, path, filters=()):
        self._docs = docs
        self.path = path
        self._filters = filters

    def document(self, doc_id):
        return _FakeDocument(self._docs, f"{self.path}/{doc_id}")

    def where(self, *, filter):
        return _FakeCollection(self._docs, self.path, self._filters + ((filter.field_path, filter.value),))

    def stream(self):
        prefix = f"{self.path}/"
        for path, data in list(self._docs.items()):
            if path.startswith(prefix) and "/" not in path[len(prefix):]:
                if all(data.get(field) == value for field, value in self._filters):
                    yield _FakeSnapshot(_FakeDocument(self._docs, path), data)


class FakeFirestore:
    """Dict-backed stand-in for the handful of Firestore calls the saver makes."""

    def __init__(self):
        self.docs = {}

    def collection(self, name):
        return _FakeCollection(self.docs, name)


class TestFirestoreCheckpointSaver:
    def test_put_writes_checkpoint_and_latest_pointer(self, mock_firestore_client):
        saver = FirestoreCheckpointSaver(mock_firestore_client, collection="checkpoints-test")
        thread_ref = mock_firestore_client.collection.return_value.document.return_value
        checkpoint = empty_checkpoint()

        result = saver.put(_config(), checkpoint, {"step": 0}, {})

        mock_firestore_client.collection.assert_called_with("checkpoints-test")
        thread_ref.collection.assert_any_call("checkpoints")
        thread_ref.collection.return_value.document.assert_called_with(f"__root__:{checkpoint['id']}")
        stored = thread_ref.collection.return_value.document.return_value.set.call_args.args[0]
        assert stored["checkpoint_id"] == checkpoint["id"]
        assert stored["parent_checkpoint_id"] is None
        thread_ref.set.assert_called_once_with(
            {"latest": {"__root__": checkpoint["id"]}, "updated_at": ANY}, merge=True
        )
        assert result["configurable"]["checkpoint_id"] == checkpoint["id"]

    def test_serialized_checkpoint_loads_back(self, mock_firestore_client):
        saver = FirestoreCheckpointSaver(mock_firestore_client)
        checkpoint = empty_checkpoint()

        record = saver._dump(checkpoint)

        assert saver._load(record)["id"] == checkpoint["id"]

    def test_get_tuple_without_thread(self, mock_firestore_client):
        mock_firestore_client.collection.return_value.document.return_value.get.return_value.exists = False
        saver = FirestoreCheckpointSaver(mock_firestore_client)
        assert saver.get_tuple(_config()) is None

    def test_put_writes_requires_checkpoint_id(self, mock_firestore_client):
        saver = FirestoreCheckpointSaver(mock_firestore_client)
        with pytest.raises(ValueError):
            saver.put_writes(_config(), [("messages", [])], task_id="task-1")

    def test_put_writes_one_document_per_write(self, mock_firestore_client):
        saver = FirestoreCheckpointSaver(mock_firestore_client)
        writes_ref = mock_firestore_client.collection.return_value.document.return_value.collection.return_value

        saver.put_writes(_config("cp-1"), [("messages", ["a"]), ("branch:agent", None)], task_id="task-1")

        assert writes_ref.document.call_count == 2
        writes_ref.document.assert_any_call("__root__:cp-1:task-1:0")
        writes_ref.document.assert_any_call("__root__:cp-1:task-1:1")

    def test_delete_thread_removes_subcollections(self, mock_firestore_client):
        thread_ref = mock_firestore_client.collection.return_value.document.return_value
        snapshot = MagicMock()
        thread_ref.collection.return_value.stream.return_value = [snapshot]
        saver = FirestoreCheckpointSaver(mock_firestore_client)

        saver.delete_thread("thread-1")

        assert snapshot.reference.delete.call_count == 3
        thread_ref.delete.assert_called_once()

    def test_requires_thread_id(self, mock_firestore_client):
        saver = FirestoreCheckpointSaver(mock_firestore_client)
        with pytest.raises(ValueError):
            saver.get_tuple({"configurable": {}})


def test_memory_backend(settings):
    assert isinstance(create_checkpointer(settings), InMemorySaver)


class TestChannelBlobs:
    def _large_checkpoint(self, size=2_000_000):
        checkpoint = empty_checkpoint()
        checkpoint["channel_values"] = {"messages": ["x" * size], "branch:to:agent": None}
        checkpoint["channel_versions"] = {"messages": 1, "branch:to:agent": 1}
        return checkpoint

    def test_large_state_is_split_across_documents(self):
        client = FakeFirestore()
        saver = FirestoreCheckpointSaver(client, collection="cp")
        checkpoint = self._large_checkpoint()

        saver.put(_config(), checkpoint, {"step": 1}, dict(checkpoint["channel_versions"]))

        for path, data in client.docs.items():
            sizes = [len(v) for v in data.values() if isinstance(v, (bytes, str))]
            assert max(sizes, default=0) <= MAX_BLOB_BYTES, path
        stored = client.docs[f"cp/thread-1/checkpoints/__root__:{checkpoint['id']}"]
        assert len(stored["checkpoint"]["payload"]) < 10_000
        head = client.docs["cp/thread-1/blobs/__root__:messages:1:0"]
        assert head["parts"] >= 3

    def test_large_state_reads_back(self):
        client = FakeFirestore()
        saver = FirestoreCheckpointSaver(client, collection="cp")
        checkpoint = self._large_checkpoint()
        saver.put(_config(), checkpoint, {"step": 1}, dict(checkpoint["channel_versions"]))

        loaded = saver.get_tuple(_config())

        assert loaded.checkpoint["channel_values"]["messages"] == ["x" * 2_000_000]
        assert loaded.metadata == {"step": 1}

    def test_unchanged_channels_are_not_rewritten(self):
        client = FakeFirestore()
        saver = FirestoreCheckpointSaver(client, collection="cp")
        first = self._large_checkpoint(size=10)
        saver.put(_config(), first, {"step": 1}, dict(first["channel_versions"]))
        blobs_before = {p for p in client.docs if "/blobs/" in p}

        second = empty_checkpoint()
        second["channel_values"] = {"messages": ["x" * 10], "branch:to:tools": None}
        second["channel_versions"] = {"messages": 1, "branch:to:tools": 2}
        saver.put(_config(first["id"]), second, {"step": 2}, {"branch:to:tools": 2})

        added = {p for p in client.docs if "/blobs/" in p} - blobs_before
        assert added == {"cp/thread-1/blobs/__root__:branch:to:tools:2:0"}
        assert saver.get_tuple(_config()).checkpoint["channel_values"]["messages"] == ["x" * 10]

    def test_delete_thread_removes_blobs(self):
        client = FakeFirestore()
        saver = FirestoreCheckpointSaver(client, collection="cp")
        checkpoint = self._large_checkpoint(size=10)
        saver.put(_config(), checkpoint, {"step": 1}, dict(checkpoint["channel_versions"]))

        saver.delete_thread("thread-1")

        assert client.docs == {}
