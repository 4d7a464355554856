from __future__ import annotations

from typing import List, Optional

from components.objectstore.contracts import ObjectEntry
from components.objectstore.ports import ObjectStorePort

from .config import StorageConfig
from .contracts import FileListing, StorageUsage, StoredFileInfo
from .keys import owner_prefix

_UNITS = ["B", "KB", "MB", "GB"]


def format_size(size: int) -> str:
    if size <= 0:
        return "0 B"
    value, i = float(size), 0
    while value >= 1024 and i < len(_UNITS) - 1:
        value /= 1024
        i += 1
    return f"{round(value, 2):g} {_UNITS[i]}"


class StorageUsageService:
    """Per-user usage over the public bucket of the primary backend."""

    def __init__(self, backend: ObjectStorePort, config: StorageConfig, page_size: int = 1000):
        self.backend = backend
        self.config = config
        self.page_size = page_size

    async def _entries(self, username: str) -> List[ObjectEntry]:
        prefix = owner_prefix(username)
        token: Optional[str] = None
        out: List[ObjectEntry] = []
        while True:
            page = await self.backend.list(self.config.public_bucket, prefix, token, self.page_size)
            out.extend(e for e in page.entries if e.size > 0)
            token = page.next_token
            if not token:
                return out

    def _info(self, username: str, entry: ObjectEntry) -> StoredFileInfo:
        return StoredFileInfo(
            key=entry.key,
            filename=entry.key[len(owner_prefix(username)):],
            size=entry.size,
            size_formatted=format_size(entry.size),
            last_modified=entry.last_modified,
        )

    async def usage(self, username: str) -> StorageUsage:
        entries = await self._entries(username)
        total = sum(e.size for e in entries)
        return StorageUsage(
            username=username,
            total_size=total,
            total_size_formatted=format_size(total),
            file_count=len(entries),
            files=[self._info(username, e) for e in entries],
        )

    async def list_files(self, username: str) -> FileListing:
        entries = await self._entries(username)
        return FileListing(files=[self._info(username, e) for e in entries], file_count=len(entries))
