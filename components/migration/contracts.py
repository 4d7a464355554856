from __future__ import annotations

from dataclasses import dataclass
from typing import List

from pydantic import BaseModel, Field

from components.objectstore.ports import ObjectStorePort


@dataclass(frozen=True)
class BucketTarget:
    label: str
    backend: ObjectStorePort
    bucket: str


class RenameReport(BaseModel):
    old_username: str
    new_username: str
    files_renamed: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class SyncReport(BaseModel):
    source: str
    prefix: str = ""
    total: int = 0
    synced: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors
