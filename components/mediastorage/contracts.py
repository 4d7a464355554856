
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, constr

# ---------- Unified Wire Format (UWF) ----------

class ErrorPayload(BaseModel):
    type: str
    code: constr(strip_whitespace=True, min_length=1)
    message: constr(strip_whitespace=True, min_length=1)
    details: Optional[Dict[str, Any]] = None

class MetaPayload(BaseModel):
    trace_id: Optional[str] = None
    request_id: Optional[str] = None
    duration_ms: Optional[int] = None

class UWFResponse(BaseModel):
    ok: bool
    result: Optional[Any] = None
    error: Optional[ErrorPayload] = None
    meta: MetaPayload = Field(default_factory=MetaPayload)

# ---------- Writes ----------

class ReplicatedWrite(BaseModel):
    key: str
    url: str
    content_type: str
    size: int

class UploadResult(BaseModel):
    message: str
    url: str
    key: str
    content_type: str
    size: int

class DeleteResult(BaseModel):
    message: str = "File deleted successfully"
    key: str

# ---------- Reads ----------

class FileMetadata(BaseModel):
    content_type: str = "application/octet-stream"
    content_length: int
    last_modified: Optional[str] = None  # HTTP date

class FileContent(BaseModel):
    key: str
    data: bytes
    metadata: FileMetadata
    from_cache: bool = False

# ---------- Private bucket ----------

class PresignUploadRequest(BaseModel):
    filename: Optional[str] = None
    mimetype: Optional[str] = None

class PresignAccessRequest(BaseModel):
    key: Optional[str] = None

class PresignedUpload(BaseModel):
    presigned_url: str
    key: str
    url: str
    expires_in: int

class PresignedAccess(BaseModel):
    presigned_url: str
    expires_in: int

class ObjectMetadataView(BaseModel):
    content_type: Optional[str] = None
    content_length: Optional[int] = None
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None
    cache_control: Optional[str] = None
    content_encoding: Optional[str] = None
    content_disposition: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)

class FileMetadataResult(BaseModel):
    key: str
    metadata: ObjectMetadataView

class PrivateDeleteResult(BaseModel):
    success: Literal[True] = True
    message: str = "File deleted successfully"
    key: str

# ---------- Usage ----------

class StoredFileInfo(BaseModel):
    key: str
    filename: str
    size: int
    size_formatted: str
    last_modified: Optional[datetime] = None

class StorageUsage(BaseModel):
    username: str
    total_size: int
    total_size_formatted: str
    file_count: int
    files: List[StoredFileInfo] = Field(default_factory=list)

class FileListing(BaseModel):
    files: List[StoredFileInfo] = Field(default_factory=list)
    file_count: int
