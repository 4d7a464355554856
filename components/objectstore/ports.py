
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Optional

from .contracts import ObjectBody, ObjectMetadata, ObjectPage, PresignOperation, PutObjectResult


class ObjectStorePort(ABC):
    """One storage endpoint. Every method is a single backend call, no retries."""

    name: str = "objectstore"

    @abstractmethod
    async def put(
        self,
        bucket: str,
        key: str,
        data: bytes,
        *,
        content_type: Optional[str] = None,
        cache_control: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> PutObjectResult: ...

    @abstractmethod
    async def get(self, bucket: str, key: str) -> ObjectBody: ...

    @abstractmethod
    async def head(self, bucket: str, key: str) -> ObjectMetadata: ...

    @abstractmethod
    async def delete(self, bucket: str, key: str) -> None: ...

    @abstractmethod
    async def list(
        self,
        bucket: str,
        prefix: str = "",
        continuation_token: Optional[str] = None,
        limit: int = 1000,
    ) -> ObjectPage: ...

    @abstractmethod
    async def copy(
        self,
        bucket: str,
        source_key: str,
        dest_key: str,
        *,
        content_type: Optional[str] = None,
        cache_control: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> None: ...

    @abstractmethod
    async def presign(
        self,
        bucket: str,
        key: str,
        operation: PresignOperation,
        expires_in: int,
        *,
        content_type: Optional[str] = None,
        cache_control: Optional[str] = None,
    ) -> str: ...
