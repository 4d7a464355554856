from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel


class CachedMetadata(BaseModel):
    content_type: str = ""
    content_length: Optional[int] = None
    last_modified: Optional[str] = None  # HTTP date

    def to_fields(self, size: int) -> Dict[str, str]:
        return {
            "ContentType": self.content_type or "",
            "ContentLength": str(self.content_length if self.content_length is not None else size),
            "LastModified": self.last_modified or "",
        }

    @classmethod
    def from_fields(cls, fields: Dict[str, str]) -> "CachedMetadata":
        length = fields.get("ContentLength")
        return cls(
            content_type=fields.get("ContentType", ""),
            content_length=int(length) if length and length.isdigit() else None,
            last_modified=fields.get("LastModified") or None,
        )


class CacheEntry(BaseModel):
    key: str
    data: bytes
    metadata: CachedMetadata
