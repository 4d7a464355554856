from __future__ import annotations

import logging
from typing import Optional

from .contracts import CacheEntry, CachedMetadata
from .store import CacheStore

log = logging.getLogger("mediacache")

DAY_SECONDS = 24 * 60 * 60


def data_key(key: str) -> str:
    return f"file:{key}"


def metadata_key(key: str) -> str:
    return f"metadata:{key}"


class MediaCache:
    """Read-through cache of object bytes plus response metadata."""

    def __init__(self, store: CacheStore, ttl_seconds: int = DAY_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def lookup(self, key: str) -> Optional[CacheEntry]:
        data = await self.store.get_bytes(data_key(key))
        if data is None:
            return None
        fields = await self.store.get_fields(metadata_key(key))
        metadata = CachedMetadata.from_fields(fields)
        if not metadata.content_type:
            # half-written entry: bytes without usable headers
            log.info("cache.lookup partial key=%s", key)
            return None
        return CacheEntry(key=key, data=data, metadata=metadata)

    async def populate(self, key: str, data: bytes, metadata: CachedMetadata, ttl: Optional[int] = None) -> None:
        await self.store.set_entry(
            data_key(key), data, metadata_key(key), metadata.to_fields(len(data)),
            self.ttl_seconds if ttl is None else ttl,
        )
        log.debug("cache.populate ok key=%s size=%s", key, len(data))

    async def evict(self, key: str) -> None:
        await self.store.delete(data_key(key), metadata_key(key))
        log.debug("cache.evict ok key=%s", key)
