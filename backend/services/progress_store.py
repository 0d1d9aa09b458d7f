"""Persistence of progress records keyed by (user_scope, media_id)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol
from urllib.parse import quote

from models import ProgressRecord
from services import gcs
from services.config import get_bucket_name, get_store_backend
from services.progress_hub import ProgressHub

logger = logging.getLogger(__name__)


def progress_key(user_scope: str, media_id: str) -> str:
    # Parts are percent-encoded so a "/" inside one cannot alias another pair.
    return f"{quote(user_scope, safe='')}/{quote(media_id, safe='')}"


class ProgressStore(Protocol):
    # Stores that can notify about writes expose a hub; others set None.
    changes: ProgressHub | None

    async def load(self, user_scope: str, media_id: str) -> ProgressRecord | None: ...

    async def save(self, user_scope: str, media_id: str, record: ProgressRecord) -> None: ...


class InMemoryProgressStore:
    """
    Process-local document store.

    save() upserts: fields of the stored document that the record does not
    carry are preserved. Every write is published on `changes` under
    progress_key(user_scope, media_id), so open sessions for the same
    document can rehydrate.
    """

    def __init__(self) -> None:
        self.documents: dict[str, dict[str, Any]] = {}
        self.changes: ProgressHub | None = ProgressHub()

    async def load(self, user_scope: str, media_id: str) -> ProgressRecord | None:
        doc = self.documents.get(progress_key(user_scope, media_id))
        if doc is None:
            return None
        return ProgressRecord.from_dict(doc)

    async def save(self, user_scope: str, media_id: str, record: ProgressRecord) -> None:
        key = progress_key(user_scope, media_id)
        doc = self.documents.setdefault(key, {})
        doc.update(record.to_dict())
        logger.debug("[progress_store] memory upsert %s intervals=%d", key, len(record.intervals))
        if self.changes is not None:
            await self.changes.publish(key, dict(doc))

    def clear(self) -> None:
        self.documents.clear()


class GcsProgressStore:
    """
    One JSON object per document in a GCS bucket.

    Upsert is a read-modify-write of the object; concurrent writers are
    last-write-wins. The storage client is blocking, so calls run in a worker
    thread. No change notifications.
    """

    def __init__(self, *, bucket_name: str | None = None) -> None:
        self.bucket_name = bucket_name or get_bucket_name()
        self.changes: ProgressHub | None = None

    async def load(self, user_scope: str, media_id: str) -> ProgressRecord | None:
        blob_name = gcs.progress_blob_name(user_scope, media_id)
        try:
            doc = await asyncio.to_thread(gcs.download_json, blob_name, bucket_name=self.bucket_name)
        except ValueError as e:
            logger.warning("[progress_store] Corrupt progress object %s: %s", blob_name, e)
            return None
        if doc is None:
            return None
        return ProgressRecord.from_dict(doc)

    async def save(self, user_scope: str, media_id: str, record: ProgressRecord) -> None:
        blob_name = gcs.progress_blob_name(user_scope, media_id)
        await asyncio.to_thread(self._upsert, blob_name, record.to_dict())

    def _upsert(self, blob_name: str, fields: dict[str, Any]) -> None:
        try:
            existing = gcs.download_json(blob_name, bucket_name=self.bucket_name)
        except ValueError:
            existing = None
        doc = existing if isinstance(existing, dict) else {}
        doc.update(fields)
        gcs.upload_json(blob_name, doc, bucket_name=self.bucket_name)


def create_progress_store(backend: str | None = None) -> ProgressStore:
    backend = backend or get_store_backend()
    if backend == "gcs":
        logger.info("[progress_store] Using GCS bucket %s", get_bucket_name())
        return GcsProgressStore()
    logger.info("[progress_store] Using in-memory store")
    return InMemoryProgressStore()


_store: ProgressStore | None = None


def get_progress_store() -> ProgressStore:
    """Process-wide store, created from configuration on first use."""
    global _store
    if _store is None:
        _store = create_progress_store()
    return _store


def set_progress_store(store: ProgressStore | None) -> None:
    global _store
    _store = store
