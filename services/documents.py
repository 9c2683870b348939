"""
Document and Blob Storage

Per-user document management over two collaborators:

  - DocumentStore: records grouped in collections ("users/{uid}/documents")
  - BlobStore: binary content addressed by path, with upload progress

In-memory implementations are provided for development and tests (they
would be backed by a hosted database and object storage in production).

DocumentManager ties them together: an upload writes the blob at
``users/{uid}/documents/{epoch_ms}_{suffix}_{filename}`` and then creates the
record; a delete removes the blob and then the record.
"""

from __future__ import annotations

import asyncio
import copy
import logging
import posixpath
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

from services.errors import DocumentNotFoundError, StorageError
from shared.models.documents import UploadedDocument
from shared.models.media import to_data_uri

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


def documents_collection(uid: str) -> str:
    return f"users/{uid}/documents"


# =============================================================================
# Interfaces
# =============================================================================


class DocumentStore(ABC):
    """Record store with create, list, get and delete. Records are never updated in place."""

    @abstractmethod
    async def create(self, collection: str, record: dict[str, Any]) -> str:
        """Insert a record and return its generated id."""
        pass

    @abstractmethod
    async def list(self, collection: str) -> list[dict[str, Any]]:
        """All records in the collection, each including its 'id'."""
        pass

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Remove a record. Returns False if it did not exist."""
        pass


class BlobStore(ABC):
    """Binary content store addressed by path."""

    @abstractmethod
    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """
        Store content at path and return its download URL.

        on_progress is called with the fraction uploaded, ending at 1.0.
        """
        pass

    @abstractmethod
    async def read(self, path: str) -> bytes:
        pass

    @abstractmethod
    async def delete(self, path: str) -> None:
        pass


# =============================================================================
# In-memory implementations
# =============================================================================


class InMemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def create(self, collection: str, record: dict[str, Any]) -> str:
        async with self._lock:
            doc_id = uuid4().hex
            self._collections.setdefault(collection, {})[doc_id] = {**copy.deepcopy(record), "id": doc_id}
            return doc_id

    async def list(self, collection: str) -> list[dict[str, Any]]:
        async with self._lock:
            return [copy.deepcopy(r) for r in self._collections.get(collection, {}).values()]

    async def get(self, collection: str, doc_id: str) -> Optional[dict[str, Any]]:
        async with self._lock:
            record = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(record) if record is not None else None

    async def delete(self, collection: str, doc_id: str) -> bool:
        async with self._lock:
            return self._collections.get(collection, {}).pop(doc_id, None) is not None


class InMemoryBlobStore(BlobStore):
    """
    Blob store held in a dict.

    Uploads are consumed in chunks so progress callbacks see intermediate
    fractions the way a resumable upload reports them.
    """

    def __init__(self, base_url: str = "memory://blobs", chunk_size: int = 256 * 1024):
        self.base_url = base_url.rstrip("/")
        self.chunk_size = chunk_size
        self._blobs: dict[str, tuple[bytes, str]] = {}
        self._lock = asyncio.Lock()

    async def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        total = len(data)
        buffer = bytearray()
        for start in range(0, total, self.chunk_size):
            buffer.extend(data[start:start + self.chunk_size])
            if on_progress is not None:
                on_progress(len(buffer) / total)
            await asyncio.sleep(0)

        async with self._lock:
            self._blobs[path] = (bytes(buffer), content_type)

        if on_progress is not None and total == 0:
            on_progress(1.0)
        return f"{self.base_url}/{path}"

    async def read(self, path: str) -> bytes:
        async with self._lock:
            if path not in self._blobs:
                raise StorageError(f"No blob at '{path}'")
            return self._blobs[path][0]

    async def delete(self, path: str) -> None:
        async with self._lock:
            if self._blobs.pop(path, None) is None:
                raise StorageError(f"No blob at '{path}'")

    def __contains__(self, path: str) -> bool:
        return path in self._blobs


# =============================================================================
# Document manager
# =============================================================================


class DocumentManager:
    """Per-user document uploads, listing, deletion and content loading."""

    def __init__(
        self,
        store: DocumentStore,
        blobs: BlobStore,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.store = store
        self.blobs = blobs
        self._clock = clock

    async def upload(
        self,
        uid: str,
        filename: str,
        content_type: str,
        data: bytes,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadedDocument:
        """Store the content and record it in the user's collection."""
        filename = posixpath.basename(filename.replace("\\", "/")) or "document"
        uploaded_at = self._clock()
        epoch_ms = int(uploaded_at.timestamp() * 1000)
        # Suffix keeps same-millisecond uploads of one filename apart
        storage_path = f"{documents_collection(uid)}/{epoch_ms}_{uuid4().hex[:8]}_{filename}"

        download_url = await self.blobs.upload(storage_path, data, content_type, on_progress)
        record = {
            "user_id": uid,
            "filename": filename,
            "content_type": content_type,
            "file_size": len(data),
            "storage_path": storage_path,
            "download_url": download_url,
            "upload_date": uploaded_at,
        }
        try:
            doc_id = await self.store.create(documents_collection(uid), record)
        except Exception:
            logger.exception(f"Failed to record upload {storage_path}; removing blob")
            await self.blobs.delete(storage_path)
            raise

        logger.info(f"Uploaded {filename} ({len(data)} bytes) for user {uid}")
        return UploadedDocument(id=doc_id, **record)

    async def list(self, uid: str) -> list[UploadedDocument]:
        """The user's documents, newest first."""
        records = await self.store.list(documents_collection(uid))
        documents = [UploadedDocument.model_validate(r) for r in records]
        return sorted(documents, key=lambda d: d.upload_date, reverse=True)

    async def get(self, uid: str, doc_id: str) -> UploadedDocument:
        record = await self.store.get(documents_collection(uid), doc_id)
        if record is None:
            raise DocumentNotFoundError(doc_id)
        return UploadedDocument.model_validate(record)

    async def delete(self, uid: str, doc_id: str) -> None:
        """Remove the blob, then the record."""
        document = await self.get(uid, doc_id)
        await self.blobs.delete(document.storage_path)
        await self.store.delete(documents_collection(uid), doc_id)
        logger.info(f"Deleted document {doc_id} for user {uid}")

    async def load_bytes(self, uid: str, doc_id: str) -> tuple[UploadedDocument, bytes]:
        document = await self.get(uid, doc_id)
        return document, await self.blobs.read(document.storage_path)

    async def load_text(self, uid: str, doc_id: str) -> str:
        _, data = await self.load_bytes(uid, doc_id)
        return data.decode("utf-8", errors="replace")

    async def load_data_uri(self, uid: str, doc_id: str) -> str:
        """The document as a data URI usable as a flow's document reference."""
        document, data = await self.load_bytes(uid, doc_id)
        return to_data_uri(document.content_type, data)
