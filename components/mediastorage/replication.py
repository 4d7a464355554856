from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Dict, List, Optional

from components.mediacache import CachePopulator, MediaCache
from components.objectstore.errors import service_error
from components.objectstore.ports import ObjectStorePort

from .config import StorageConfig
from .contracts import ReplicatedWrite
from .keys import owner_prefix, require_owner

log = logging.getLogger("mediastorage.replication")


class ReplicatedWriter:
    """Applies one logical mutation to every backend.

    Both backend calls run concurrently and the operation succeeds only when
    all of them do. A one-sided failure is reported, not rolled back, so the
    backends can diverge until a sync pass repairs them.
    """

    def __init__(self, backends: Dict[str, ObjectStorePort], config: StorageConfig, cache: MediaCache,
                 populator: Optional[CachePopulator] = None):
        if not backends:
            raise ValueError("at least one backend is required")
        self.backends = backends
        self.config = config
        self.cache = cache
        self.populator = populator

    async def _fan_out(self, op: str, key: str, calls: Dict[str, Awaitable]) -> None:
        names = list(calls)
        results = await asyncio.gather(*calls.values(), return_exceptions=True)
        failed: List[str] = []
        first_error: Optional[BaseException] = None
        for name, res in zip(names, results):
            if isinstance(res, BaseException):
                if isinstance(res, asyncio.CancelledError):
                    raise res
                failed.append(name)
                first_error = first_error or res
                log.error("replicated.%s err backend=%s key=%s error=%r", op, name, key, res)

        if not failed:
            return
        succeeded = [n for n in names if n not in failed]
        if succeeded:
            log.error("replicated.%s diverged key=%s ok=%s failed=%s", op, key, succeeded, failed)
        raise service_error(
            f"Failed to {op} file", key=key, failed_backends=failed, succeeded_backends=succeeded
        ) from first_error

    async def upload(self, owner: str, filename: str, data: bytes, content_type: str,
                     metadata: Optional[Dict[str, str]] = None) -> ReplicatedWrite:
        key = f"{owner_prefix(owner)}{filename}"
        t0 = time.time()
        calls = {
            name: backend.put(
                self.config.public_bucket, key, data,
                content_type=content_type, cache_control=self.config.cache_control, metadata=metadata,
            )
            for name, backend in self.backends.items()
        }
        await self._fan_out("upload", key, calls)
        # an overwrite must not leave older cached bytes behind
        await self._evict(key)
        log.info("replicated.upload ok key=%s size=%s backends=%s dur_ms=%s",
                 key, len(data), list(self.backends), int((time.time() - t0) * 1000))
        return ReplicatedWrite(key=key, url=self.config.public_url(key), content_type=content_type, size=len(data))

    async def delete(self, owner: str, key: str) -> None:
        require_owner(owner, key)
        calls = {name: backend.delete(self.config.public_bucket, key) for name, backend in self.backends.items()}
        await self._fan_out("delete", key, calls)
        await self._evict(key, strict=True)
        log.info("replicated.delete ok key=%s backends=%s", key, list(self.backends))

    async def _evict(self, key: str, strict: bool = False) -> None:
        if self.populator is not None:
            # reads started before this mutation must not repopulate old bytes
            self.populator.discard(key)
        try:
            await self.cache.evict(key)
        except Exception as e:
            if strict:
                # a delete may not report success while stale bytes stay cached
                log.exception("replicated.evict err key=%s", key)
                raise service_error("Failed to evict cached file", key=key) from e
            log.warning("replicated.evict err key=%s error=%r", key, e)
