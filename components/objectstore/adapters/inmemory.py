
from __future__ import annotations

import hashlib
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Optional
from urllib.parse import quote, urlencode

from ..contracts import ObjectBody, ObjectEntry, ObjectMetadata, ObjectPage, PresignOperation, PutObjectResult
from ..errors import bad_request, not_found
from ..ports import ObjectStorePort

_CHUNK_SIZE = 64 * 1024


@dataclass
class _Stored:
    data: bytes
    content_type: Optional[str]
    cache_control: Optional[str]
    metadata: Dict[str, str]
    last_modified: datetime
    etag: str = field(init=False)

    def __post_init__(self) -> None:
        self.etag = '"%s"' % hashlib.md5(self.data).hexdigest()


class InMemoryObjectStore(ObjectStorePort):
    """Process-local object store keyed by bucket then key.

    Listing is ordered by key; the continuation token is the last key returned.
    """

    def __init__(self, name: str = "memory", signing_secret: str = "dev-signing-secret"):
        self.name = name
        self._secret = signing_secret
        self._buckets: Dict[str, Dict[str, _Stored]] = {}
        self._lock = threading.RLock()

    def _bucket(self, bucket: str) -> Dict[str, _Stored]:
        with self._lock:
            return self._buckets.setdefault(bucket, {})

    def _lookup(self, bucket: str, key: str) -> _Stored:
        with self._lock:
            obj = self._bucket(bucket).get(key)
        if obj is None:
            raise not_found()
        return obj

    def keys(self, bucket: str) -> list[str]:
        with self._lock:
            return sorted(self._bucket(bucket))

    async def put(self, bucket: str, key: str, data: bytes, *, content_type: Optional[str] = None,
                  cache_control: Optional[str] = None, metadata: Optional[Dict[str, str]] = None) -> PutObjectResult:
        if not key or ".." in key.split("/"):
            raise bad_request("invalid key")
        stored = _Stored(
            data=bytes(data),
            content_type=content_type,
            cache_control=cache_control,
            metadata=dict(metadata or {}),
            last_modified=datetime.now(timezone.utc).replace(microsecond=0),
        )
        with self._lock:
            self._bucket(bucket)[key] = stored
        return PutObjectResult(bucket=bucket, key=key, etag=stored.etag, size=len(stored.data))

    async def get(self, bucket: str, key: str) -> ObjectBody:
        obj = self._lookup(bucket, key)

        async def chunks() -> AsyncIterator[bytes]:
            for i in range(0, len(obj.data), _CHUNK_SIZE):
                yield obj.data[i:i + _CHUNK_SIZE]

        return ObjectBody(
            key=key,
            stream=chunks(),
            content_type=obj.content_type,
            content_length=len(obj.data),
            last_modified=obj.last_modified,
            cache_control=obj.cache_control,
            metadata=dict(obj.metadata),
        )

    async def head(self, bucket: str, key: str) -> ObjectMetadata:
        obj = self._lookup(bucket, key)
        return ObjectMetadata(
            key=key,
            content_type=obj.content_type,
            content_length=len(obj.data),
            last_modified=obj.last_modified,
            etag=obj.etag,
            cache_control=obj.cache_control,
            metadata=dict(obj.metadata),
        )

    async def delete(self, bucket: str, key: str) -> None:
        with self._lock:
            self._bucket(bucket).pop(key, None)

    async def list(self, bucket: str, prefix: str = "", continuation_token: Optional[str] = None,
                   limit: int = 1000) -> ObjectPage:
        with self._lock:
            snapshot = sorted(self._bucket(bucket).items())
        matching = [(k, v) for k, v in snapshot if k.startswith(prefix)]
        if continuation_token:
            matching = [(k, v) for k, v in matching if k > continuation_token]

        page = matching[:limit]
        entries = [
            ObjectEntry(key=k, size=len(v.data), last_modified=v.last_modified, etag=v.etag) for k, v in page
        ]
        next_token = page[-1][0] if len(matching) > limit else None
        return ObjectPage(bucket=bucket, prefix=prefix, entries=entries, next_token=next_token)

    async def copy(self, bucket: str, source_key: str, dest_key: str, *, content_type: Optional[str] = None,
                   cache_control: Optional[str] = None, metadata: Optional[Dict[str, str]] = None) -> None:
        src = self._lookup(bucket, source_key)
        await self.put(bucket, dest_key, src.data, content_type=content_type,
                       cache_control=cache_control, metadata=metadata)

    async def presign(self, bucket: str, key: str, operation: PresignOperation, expires_in: int, *,
                      content_type: Optional[str] = None, cache_control: Optional[str] = None) -> str:
        signature = hashlib.sha256(
            f"{self._secret}:{operation}:{bucket}:{key}:{expires_in}".encode("utf-8")
        ).hexdigest()
        query = urlencode({"X-Amz-Expires": str(expires_in), "X-Amz-Signature": signature})
        return f"https://{self.name}.objectstore.local/{bucket}/{quote(key)}?{query}"
