
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

PresignOperation = Literal["upload", "download"]


class ObjectMetadata(BaseModel):
    key: str
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    cache_control: Optional[str] = None
    content_encoding: Optional[str] = None
    content_disposition: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class PutObjectResult(BaseModel):
    bucket: str
    key: str
    etag: Optional[str] = None
    size: int


class ObjectEntry(BaseModel):
    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None


class ObjectPage(BaseModel):
    bucket: str
    prefix: str = ""
    entries: List[ObjectEntry] = Field(default_factory=list)
    next_token: Optional[str] = None


@dataclass
class ObjectBody:
    """A fetched object: response headers plus a lazily consumed chunk stream."""

    key: str
    stream: AsyncIterator[bytes]
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    last_modified: Optional[datetime] = None
    cache_control: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    async def read(self) -> bytes:
        chunks = []
        async for chunk in self.stream:
            chunks.append(chunk)
        return b"".join(chunks)
