"""Offline maintenance over the object stores: prefix renames and bucket syncs.

Both tools walk a paginated listing and process each page with a bounded
pool of tasks. A failure on one object is recorded in the report and the walk
continues; a listing failure ends the walk for that bucket only.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence

from components.mediacache import MediaCache
from components.mediastorage.config import StorageConfig
from components.objectstore import MIRROR, PRIMARY
from components.objectstore.ports import ObjectStorePort

from .contracts import BucketTarget, RenameReport, SyncReport

log = logging.getLogger("migration")

PAGE_SIZE = 100


def rename_targets(backends, config: StorageConfig) -> List[BucketTarget]:
    """The fixed bucket set a username rename has to cover."""
    return [
        BucketTarget("primary public", backends[PRIMARY], config.public_bucket),
        BucketTarget("primary private", backends[PRIMARY], config.private_bucket),
        BucketTarget("mirror public", backends[MIRROR], config.public_bucket),
    ]


async def _walk(backend: ObjectStorePort, bucket: str, prefix: str,
                handle: Callable[[str], Awaitable[None]], concurrency: int) -> int:
    sem = asyncio.Semaphore(max(1, concurrency))

    async def bounded(key: str) -> None:
        async with sem:
            await handle(key)

    seen = 0
    token: Optional[str] = None
    while True:
        page = await backend.list(bucket, prefix, token, PAGE_SIZE)
        keys = [e.key for e in page.entries if e.key]
        seen += len(keys)
        await asyncio.gather(*(bounded(k) for k in keys))
        token = page.next_token
        if not token:
            return seen


class BucketRenamer:
    def __init__(self, targets: Sequence[BucketTarget], concurrency: int = 8,
                 cache: Optional[MediaCache] = None):
        self.targets = list(targets)
        self.concurrency = concurrency
        self.cache = cache

    async def rename_user_files(self, old_username: str, new_username: str) -> RenameReport:
        if not old_username or not new_username:
            raise ValueError("both usernames are required")
        report = RenameReport(old_username=old_username, new_username=new_username)
        old_prefix, new_prefix = f"{old_username}/", f"{new_username}/"
        t0 = time.time()

        for target in self.targets:
            errors: List[str] = []

            async def move(old_key: str, target: BucketTarget = target, errors: List[str] = errors) -> None:
                new_key = new_prefix + old_key[len(old_prefix):]
                try:
                    head = await target.backend.head(target.bucket, old_key)
                    await target.backend.copy(
                        target.bucket, old_key, new_key,
                        content_type=head.content_type,
                        cache_control=head.cache_control,
                        metadata=head.metadata,
                    )
                    await target.backend.delete(target.bucket, old_key)
                except Exception as e:
                    log.error("rename.object err bucket=%s key=%s error=%r", target.bucket, old_key, e)
                    errors.append(f"Failed to rename {old_key}: {e}")
                    return
                report.files_renamed += 1
                await self._evict(old_key)

            try:
                await _walk(target.backend, target.bucket, old_prefix, move, self.concurrency)
            except Exception as e:
                log.error("rename.list err target=%s bucket=%s error=%r", target.label, target.bucket, e)
                errors.append(f"Failed to list objects in {target.bucket}: {e}")
            if errors:
                report.errors.append(f"{target.label}: {', '.join(errors)}")

        log.info("rename ok old=%s new=%s renamed=%s errors=%s dur_ms=%s", old_username, new_username,
                 report.files_renamed, len(report.errors), int((time.time() - t0) * 1000))
        return report

    async def _evict(self, key: str) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.evict(key)
        except Exception as e:
            log.warning("rename.evict err key=%s error=%r", key, e)


class BucketSyncer:
    """Copies objects from one backend/bucket into one or more others.

    Used as a manual repair pass after a one-sided replicated write.
    """

    def __init__(self, source: BucketTarget, targets: Sequence[BucketTarget], concurrency: int = 8):
        if not targets:
            raise ValueError("at least one sync target is required")
        self.source = source
        self.targets = list(targets)
        self.concurrency = concurrency

    async def sync_prefix(self, prefix: str = "") -> SyncReport:
        report = SyncReport(source=self.source.label, prefix=prefix)
        t0 = time.time()

        async def copy_one(key: str) -> None:
            report.total += 1
            try:
                body = await self.source.backend.get(self.source.bucket, key)
                data = await body.read()
            except Exception as e:
                log.error("sync.fetch err key=%s error=%r", key, e)
                report.errors.append(f"Failed to fetch {key}: {e}")
                return
            ok = True
            for target in self.targets:
                try:
                    await target.backend.put(
                        target.bucket, key, data,
                        content_type=body.content_type,
                        cache_control=body.cache_control,
                        metadata=body.metadata or None,
                    )
                except Exception as e:
                    ok = False
                    log.error("sync.put err target=%s key=%s error=%r", target.label, key, e)
                    report.errors.append(f"Failed to copy {key} to {target.label}: {e}")
            if ok:
                report.synced += 1

        try:
            await _walk(self.source.backend, self.source.bucket, prefix, copy_one, self.concurrency)
        except Exception as e:
            log.error("sync.list err source=%s error=%r", self.source.label, e)
            report.errors.append(f"Failed to list objects in {self.source.bucket}: {e}")

        log.info("sync ok source=%s prefix=%s synced=%s total=%s dur_ms=%s", self.source.label, prefix or "*",
                 report.synced, report.total, int((time.time() - t0) * 1000))
        return report
