from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterator, Mapping, Sequence

from google.cloud.firestore_v1.base_query import FieldFilter
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.base import (
    WRITES_IDX_MAP,
    BaseCheckpointSaver,
    ChannelVersions,
    Checkpoint,
    CheckpointMetadata,
    CheckpointTuple,
    get_checkpoint_id,
)
from langgraph.checkpoint.memory import InMemorySaver

from .config import Settings
from .store import get_firestore_client

logger = logging.getLogger(__name__)

# Firestore map keys cannot be empty; the root graph namespace is ""
ROOT_NAMESPACE_KEY = "__root__"

# Firestore documents are capped at 1 MiB; blob payloads are split below that
MAX_BLOB_BYTES = 900_000


def _ns_key(checkpoint_ns: str) -> str:
    return checkpoint_ns or ROOT_NAMESPACE_KEY


class FirestoreCheckpointSaver(BaseCheckpointSaver):
    """Store checkpoints in Firestore.

    Channel values live apart from the checkpoint, one blob per channel
    version, so a step only writes the channels it changed. A blob larger
    than ``MAX_BLOB_BYTES`` is split over numbered part documents.

    Layout::

        {collection}/{thread_id}                        latest checkpoint id per namespace
        {collection}/{thread_id}/checkpoints/{ns}:{id}  checkpoint without channel values + metadata
        {collection}/{thread_id}/blobs/{ns}:{channel}:{version}:{part}
        {collection}/{thread_id}/writes/{ns}:{id}:{task}:{idx}
    """

    def __init__(self, client, *, collection: str = "langgraphCheckpoints") -> None:
        super().__init__()
        self.client = client
        self.collection = collection

    # -- paths --------------------------------------------------------------

    @staticmethod
    def _ids(config: RunnableConfig) -> tuple[str, str]:
        configurable = config.get("configurable") or {}
        thread_id = configurable.get("thread_id")
        if not thread_id:
            raise ValueError("thread_id missing from RunnableConfig.configurable")
        return str(thread_id), configurable.get("checkpoint_ns", "")

    def _thread_ref(self, thread_id: str):
        return self.client.collection(self.collection).document(thread_id)

    def _checkpoint_ref(self, thread_id: str, checkpoint_ns: str, checkpoint_id: str):
        return self._thread_ref(thread_id).collection("checkpoints").document(f"{_ns_key(checkpoint_ns)}:{checkpoint_id}")

    def _blob_ref(self, thread_id: str, checkpoint_ns: str, channel: str, version: Any, part: int):
        return (
            self._thread_ref(thread_id)
            .collection("blobs")
            .document(f"{_ns_key(checkpoint_ns)}:{channel}:{version}:{part}")
        )

    # -- serde --------------------------------------------------------------

    def _dump(self, value: Any) -> dict[str, Any]:
        type_str, payload = self.serde.dumps_typed(value)
        return {"type": type_str, "payload": payload}

    def _load(self, record: Mapping[str, Any]) -> Any:
        return self.serde.loads_typed((record["type"], record["payload"]))

    def _put_blobs(
        self,
        thread_id: str,
        checkpoint_ns: str,
        values: Mapping[str, Any],
        versions: ChannelVersions,
    ) -> None:
        for channel, version in versions.items():
            if channel in values:
                type_str, payload = self.serde.dumps_typed(values[channel])
            else:
                type_str, payload = "empty", b""
            parts = [payload[i : i + MAX_BLOB_BYTES] for i in range(0, len(payload), MAX_BLOB_BYTES)] or [b""]
            for part, chunk in enumerate(parts):
                record = {"payload": chunk}
                if part == 0:
                    record.update(
                        {
                            "channel": channel,
                            "version": str(version),
                            "checkpoint_ns": checkpoint_ns,
                            "type": type_str,
                            "parts": len(parts),
                        }
                    )
                self._blob_ref(thread_id, checkpoint_ns, channel, version, part).set(record)
            if len(parts) > 1:
                logger.info("[CHECKPOINT] Channel %s v%s split into %d parts", channel, version, len(parts))

    def _load_blobs(self, thread_id: str, checkpoint_ns: str, versions: Mapping[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for channel, version in versions.items():
            head = self._blob_ref(thread_id, checkpoint_ns, channel, version, 0).get()
            if not head.exists:
                continue
            record = head.to_dict() or {}
            if record.get("type") == "empty":
                continue
            chunks = [record.get("payload") or b""]
            for part in range(1, record.get("parts", 1)):
                snap = self._blob_ref(thread_id, checkpoint_ns, channel, version, part).get()
                chunks.append((snap.to_dict() or {}).get("payload") or b"")
            values[channel] = self.serde.loads_typed((record["type"], b"".join(chunks)))
        return values

    # -- reads --------------------------------------------------------------

    def _latest_checkpoint_id(self, thread_id: str, checkpoint_ns: str) -> str | None:
        snapshot = self._thread_ref(thread_id).get()
        if not snapshot.exists:
            return None
        latest = (snapshot.to_dict() or {}).get("latest") or {}
        return latest.get(_ns_key(checkpoint_ns))

    def _pending_writes(self, thread_id: str, checkpoint_ns: str, checkpoint_id: str) -> list[tuple[str, str, Any]]:
        query = self._thread_ref(thread_id).collection("writes").where(
            filter=FieldFilter("checkpoint_id", "==", checkpoint_id)
        )
        rows = [snap.to_dict() or {} for snap in query.stream()]
        rows = [row for row in rows if row.get("checkpoint_ns", "") == checkpoint_ns]
        rows.sort(key=lambda row: (row.get("task_id", ""), row.get("idx", 0)))
        return [(row["task_id"], row["channel"], self._load(row["value"])) for row in rows]

    def _to_tuple(self, thread_id: str, checkpoint_ns: str, record: Mapping[str, Any]) -> CheckpointTuple:
        checkpoint_id = record["checkpoint_id"]
        parent_id = record.get("parent_checkpoint_id")
        checkpoint = self._load(record["checkpoint"])
        checkpoint["channel_values"] = self._load_blobs(thread_id, checkpoint_ns, checkpoint.get("channel_versions", {}))
        return CheckpointTuple(
            config={
                "configurable": {
                    "thread_id": thread_id,
                    "checkpoint_ns": checkpoint_ns,
                    "checkpoint_id": checkpoint_id,
                }
            },
            checkpoint=checkpoint,
            metadata=self._load(record["metadata"]),
            parent_config=(
                {
                    "configurable": {
                        "thread_id": thread_id,
                        "checkpoint_ns": checkpoint_ns,
                        "checkpoint_id": parent_id,
                    }
                }
                if parent_id
                else None
            ),
            pending_writes=self._pending_writes(thread_id, checkpoint_ns, checkpoint_id),
        )

    def get_tuple(self, config: RunnableConfig) -> CheckpointTuple | None:
        thread_id, checkpoint_ns = self._ids(config)
        checkpoint_id = get_checkpoint_id(config) or self._latest_checkpoint_id(thread_id, checkpoint_ns)
        if not checkpoint_id:
            return None
        snapshot = self._checkpoint_ref(thread_id, checkpoint_ns, checkpoint_id).get()
        if not snapshot.exists:
            return None
        return self._to_tuple(thread_id, checkpoint_ns, snapshot.to_dict() or {})

    def list(
        self,
        config: RunnableConfig | None,
        *,
        filter: dict[str, Any] | None = None,
        before: RunnableConfig | None = None,
        limit: int | None = None,
    ) -> Iterator[CheckpointTuple]:
        if config is None:
            raise ValueError("Listing checkpoints requires a thread_id")
        thread_id, checkpoint_ns = self._ids(config)
        before_id = get_checkpoint_id(before) if before else None

        records = [snap.to_dict() or {} for snap in self._thread_ref(thread_id).collection("checkpoints").stream()]
        records = [r for r in records if r.get("checkpoint_ns", "") == checkpoint_ns]
        # Checkpoint ids are monotonic, newest first
        records.sort(key=lambda r: r["checkpoint_id"], reverse=True)

        yielded = 0
        for record in records:
            if before_id and record["checkpoint_id"] >= before_id:
                continue
            item = self._to_tuple(thread_id, checkpoint_ns, record)
            if filter and not all(item.metadata.get(k) == v for k, v in filter.items()):
                continue
            yield item
            yielded += 1
            if limit and yielded >= limit:
                break

    # -- writes -------------------------------------------------------------

    def put(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        thread_id, checkpoint_ns = self._ids(config)
        parent_id = (config.get("configurable") or {}).get("checkpoint_id")
        written_at = datetime.now(timezone.utc)
        values = checkpoint.get("channel_values", {})
        self._put_blobs(thread_id, checkpoint_ns, values, new_versions)

        self._checkpoint_ref(thread_id, checkpoint_ns, checkpoint["id"]).set(
            {
                "checkpoint_id": checkpoint["id"],
                "checkpoint_ns": checkpoint_ns,
                "parent_checkpoint_id": parent_id,
                "checkpoint": self._dump({**checkpoint, "channel_values": {}}),
                "metadata": self._dump(metadata or {}),
                "written_at": written_at,
            }
        )
        self._thread_ref(thread_id).set(
            {"latest": {_ns_key(checkpoint_ns): checkpoint["id"]}, "updated_at": written_at},
            merge=True,
        )
        return {
            "configurable": {
                "thread_id": thread_id,
                "checkpoint_ns": checkpoint_ns,
                "checkpoint_id": checkpoint["id"],
            }
        }

    def put_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        thread_id, checkpoint_ns = self._ids(config)
        checkpoint_id = get_checkpoint_id(config)
        if not checkpoint_id:
            raise ValueError("checkpoint_id missing from RunnableConfig.configurable")
        writes_ref = self._thread_ref(thread_id).collection("writes")
        for idx, (channel, value) in enumerate(writes):
            write_idx = WRITES_IDX_MAP.get(channel, idx)
            writes_ref.document(f"{_ns_key(checkpoint_ns)}:{checkpoint_id}:{task_id}:{write_idx}").set(
                {
                    "checkpoint_id": checkpoint_id,
                    "checkpoint_ns": checkpoint_ns,
                    "task_id": task_id,
                    "task_path": task_path,
                    "idx": write_idx,
                    "channel": channel,
                    "value": self._dump(value),
                }
            )

    def delete_thread(self, thread_id: str) -> None:
        thread_ref = self._thread_ref(thread_id)
        for name in ("checkpoints", "blobs", "writes"):
            for snap in thread_ref.collection(name).stream():
                snap.reference.delete()
        thread_ref.delete()
        logger.info("[CHECKPOINT] Deleted checkpoints for thread %s", thread_id)

    # -- async --------------------------------------------------------------

    async def aget_tuple(self, config: RunnableConfig) -> CheckpointTuple | None:
        return await asyncio.to_thread(self.get_tuple, config)

    async def alist(
        self,
        config: RunnableConfig | None,
        *,
        filter: dict[str, Any] | None = None,
        before: RunnableConfig | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[CheckpointTuple]:
        items = await asyncio.to_thread(lambda: list(self.list(config, filter=filter, before=before, limit=limit)))
        for item in items:
            yield item

    async def aput(
        self,
        config: RunnableConfig,
        checkpoint: Checkpoint,
        metadata: CheckpointMetadata,
        new_versions: ChannelVersions,
    ) -> RunnableConfig:
        return await asyncio.to_thread(self.put, config, checkpoint, metadata, new_versions)

    async def aput_writes(
        self,
        config: RunnableConfig,
        writes: Sequence[tuple[str, Any]],
        task_id: str,
        task_path: str = "",
    ) -> None:
        await asyncio.to_thread(self.put_writes, config, writes, task_id, task_path)

    async def adelete_thread(self, thread_id: str) -> None:
        await asyncio.to_thread(self.delete_thread, thread_id)


def create_checkpointer(settings: Settings) -> BaseCheckpointSaver:
    """Build a checkpointer based on configuration."""

    if settings.checkpointer_backend == "memory":
        return InMemorySaver()
    return FirestoreCheckpointSaver(
        get_firestore_client(settings),
        collection=settings.checkpoint_collection,
    )
