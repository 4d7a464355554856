from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Set

from .contracts import CachedMetadata
from .service import MediaCache

log = logging.getLogger("mediacache")


@dataclass
class PopulateJob:
    key: str
    data: bytes
    metadata: CachedMetadata
    seq: int = 0


class CachePopulator:
    """Background cache population off the response path.

    Jobs go through a bounded queue drained by worker tasks. A full queue drops
    the job; a failed write is logged. Neither ever reaches the reader.
    """

    def __init__(self, cache: MediaCache, maxsize: int = 256, workers: int = 1):
        self.cache = cache
        self.maxsize = maxsize
        self.worker_count = max(1, workers)
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self.dropped = 0
        self.failed = 0
        self.skipped = 0
        self._seq = 0
        # tickets handed out to reads that have not submitted yet
        self._pending: Set[int] = set()
        self._active = 0
        # key -> highest ticket that must not reach the cache
        self._barriers: Dict[str, int] = {}

    @property
    def running(self) -> bool:
        return any(not w.done() for w in self._workers)

    def start(self) -> None:
        if self.running:
            return
        self._queue = asyncio.Queue(maxsize=self.maxsize)
        self._workers = [
            asyncio.create_task(self._run(), name=f"cache-populator-{i}") for i in range(self.worker_count)
        ]

    def reserve(self) -> int:
        """Hand out a ticket before the backend read starts.

        A ``discard`` issued while the read is in flight covers the ticket, so
        bytes fetched before a delete never reach the cache after it.
        """
        self._seq += 1
        self._pending.add(self._seq)
        return self._seq

    def release(self, seq: int) -> None:
        """Return a ticket whose read produced nothing to cache."""
        self._pending.discard(seq)
        self._clear_barriers()

    def submit(self, key: str, data: bytes, metadata: CachedMetadata, seq: Optional[int] = None) -> bool:
        if seq is None:
            seq = self.reserve()
        self._pending.discard(seq)
        if seq <= self._barriers.get(key, 0):
            self.skipped += 1
            log.debug("cache.populate skipped key=%s reason=discarded", key)
            self._clear_barriers()
            return False
        if not self.running:
            self.start()
        try:
            self._queue.put_nowait(PopulateJob(key=key, data=data, metadata=metadata, seq=seq))
        except asyncio.QueueFull:
            self.dropped += 1
            log.warning("cache.populate dropped key=%s reason=queue_full", key)
            return False
        return True

    def discard(self, key: str) -> None:
        """Drop every job for ``key`` reserved so far; later reservations are unaffected."""
        self._barriers[key] = self._seq

    def _clear_barriers(self) -> None:
        if self._pending or self._active or (self._queue is not None and not self._queue.empty()):
            return
        self._barriers.clear()

    async def drain(self) -> None:
        """Wait until every queued job has been attempted."""
        if self._queue is not None and self.running:
            await self._queue.join()

    async def stop(self) -> None:
        await self.drain()
        for w in self._workers:
            w.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []

    async def _run(self) -> None:
        while True:
            job = await self._queue.get()
            try:
                if job.seq <= self._barriers.get(job.key, 0):
                    self.skipped += 1
                    log.debug("cache.populate skipped key=%s reason=discarded", job.key)
                    continue
                self._active += 1
                try:
                    await self.cache.populate(job.key, job.data, job.metadata)
                    if job.seq <= self._barriers.get(job.key, 0):
                        # discarded mid-write
                        self.skipped += 1
                        await self.cache.evict(job.key)
                finally:
                    self._active -= 1
            except Exception:
                self.failed += 1
                log.exception("cache.populate err key=%s", job.key)
            finally:
                self._queue.task_done()
                self._clear_barriers()
