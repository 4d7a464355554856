from __future__ import annotations

import logging
from urllib.parse import urlsplit

from components.accesscontrol.service import AccessDecisionEngine
from components.objectstore.errors import ErrorKind, StorageError, bad_request, not_found
from components.objectstore.ports import ObjectStorePort

from .config import StorageConfig
from .contracts import (
    FileMetadataResult,
    ObjectMetadataView,
    PresignedAccess,
    PresignedUpload,
    PrivateDeleteResult,
)
from .keys import generate_safe_filename, owner_prefix, require_owner

log = logging.getLogger("mediastorage.private")


class PrivateMediaService:
    """Private bucket on the primary backend: presigned capabilities, metadata, deletes.

    Reads are gated by the access decision engine before anything is signed
    or inspected.
    """

    def __init__(self, backend: ObjectStorePort, config: StorageConfig, engine: AccessDecisionEngine):
        self.backend = backend
        self.config = config
        self.engine = engine

    def cdn_rewrite(self, key: str, signed_url: str) -> str:
        """Move a signed URL onto the private CDN host, keeping its query string untouched."""
        query = urlsplit(signed_url).query
        base = self.config.private_url(key)
        return f"{base}?{query}" if query else base

    async def presign_upload(self, owner: str, filename: str, mimetype: str) -> PresignedUpload:
        if not filename or not mimetype:
            raise bad_request("Filename and mimetype are required")
        key = f"{owner_prefix(owner)}{generate_safe_filename(filename, mimetype)}"
        signed = await self.backend.presign(
            self.config.private_bucket,
            key,
            "upload",
            self.config.presign_ttl_seconds,
            content_type=mimetype,
            cache_control=self.config.cache_control,
        )
        log.info("private.presign_upload ok owner=%s key=%s", owner, key)
        return PresignedUpload(
            presigned_url=signed,
            key=key,
            url=self.config.private_url(key),
            expires_in=self.config.presign_ttl_seconds,
        )

    async def presign_access(self, user_id: int, key: str) -> PresignedAccess:
        if not key:
            raise bad_request("File key is required")
        await self.engine.authorize(user_id, key)
        signed = await self.backend.presign(
            self.config.private_bucket, key, "download", self.config.presign_ttl_seconds
        )
        return PresignedAccess(
            presigned_url=self.cdn_rewrite(key, signed),
            expires_in=self.config.presign_ttl_seconds,
        )

    async def _head(self, key: str):
        try:
            return await self.backend.head(self.config.private_bucket, key)
        except StorageError as e:
            if e.kind is ErrorKind.NOT_FOUND:
                raise not_found("File not found") from e
            raise

    async def file_metadata(self, user_id: int, key: str) -> FileMetadataResult:
        if not key:
            raise bad_request("File key is required")
        await self.engine.authorize(user_id, key)
        head = await self._head(key)
        return FileMetadataResult(
            key=key,
            metadata=ObjectMetadataView(**head.model_dump(exclude={"key"})),
        )

    async def delete(self, owner: str, key: str) -> PrivateDeleteResult:
        if not key:
            raise bad_request("File key is required")
        require_owner(owner, key, "You do not have permission to delete this file")
        await self._head(key)
        await self.backend.delete(self.config.private_bucket, key)
        log.info("private.delete ok owner=%s key=%s", owner, key)
        return PrivateDeleteResult(key=key)
