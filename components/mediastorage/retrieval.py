from __future__ import annotations

import logging
from datetime import datetime
from email.utils import format_datetime
from typing import Optional

from components.mediacache import CachedMetadata, CachePopulator, MediaCache
from components.objectstore.contracts import ObjectBody
from components.objectstore.errors import ErrorKind, StorageError, not_found
from components.objectstore.ports import ObjectStorePort

from .config import StorageConfig
from .contracts import FileContent, FileMetadata
from .keys import path_key

log = logging.getLogger("mediastorage.retrieval")

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def http_date(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return format_datetime(value, usegmt=True) if value.tzinfo else format_datetime(value)


class RetrievalService:
    """Cache lookup, then the read backend, then background cache population.

    Only the configured read backend is consulted; a miss there is final.
    """

    def __init__(self, backend: ObjectStorePort, config: StorageConfig, cache: MediaCache,
                 populator: CachePopulator):
        self.backend = backend
        self.config = config
        self.cache = cache
        self.populator = populator

    async def _cached(self, key: str) -> Optional[FileContent]:
        try:
            entry = await self.cache.lookup(key)
        except Exception as e:
            # a cache outage costs latency, never the read
            log.warning("retrieve.cache err key=%s error=%r", key, e)
            return None
        if entry is None:
            return None
        meta = entry.metadata
        return FileContent(
            key=key,
            data=entry.data,
            metadata=FileMetadata(
                content_type=meta.content_type,
                content_length=meta.content_length if meta.content_length is not None else len(entry.data),
                last_modified=meta.last_modified,
            ),
            from_cache=True,
        )

    async def _open(self, key: str) -> ObjectBody:
        try:
            return await self.backend.get(self.config.public_bucket, key)
        except StorageError as e:
            if e.kind is ErrorKind.NOT_FOUND:
                raise not_found("File not found") from e
            raise

    async def retrieve(self, key: str) -> FileContent:
        hit = await self._cached(key)
        if hit is not None:
            log.debug("retrieve.hit key=%s", key)
            return hit

        ticket = self.populator.reserve()
        try:
            body = await self._open(key)
            data = await body.read()
        except BaseException:
            self.populator.release(ticket)
            raise
        metadata = FileMetadata(
            content_type=body.content_type or DEFAULT_CONTENT_TYPE,
            content_length=body.content_length if body.content_length is not None else len(data),
            last_modified=http_date(body.last_modified),
        )
        # cache the backend's own content type; an empty one keeps the entry unusable
        self.populator.submit(
            key,
            data,
            CachedMetadata(
                content_type=body.content_type or "",
                content_length=metadata.content_length,
                last_modified=metadata.last_modified,
            ),
            seq=ticket,
        )
        log.info("retrieve.miss key=%s size=%s backend=%s", key, len(data), self.backend.name)
        return FileContent(key=key, data=data, metadata=metadata, from_cache=False)

    async def open_stream(self, username: str, filename: str) -> ObjectBody:
        """Unbuffered read of ``username/filename``; bypasses the cache entirely."""
        key = path_key(username, filename)
        body = await self._open(key)
        if not body.content_type:
            body.content_type = DEFAULT_CONTENT_TYPE
        return body
