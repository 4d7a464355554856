from __future__ import annotations

import logging
import time
from typing import Optional

from components.objectstore.contracts import ObjectBody

from .contracts import DeleteResult, FileContent, UploadResult
from .keys import generate_safe_filename, key_from_reference
from .policy import AUDIO, FILE, IMAGE, VIDEO, MediaClass
from .replication import ReplicatedWriter
from .retrieval import RetrievalService
from .transform import ImageTransformer

log = logging.getLogger("mediastorage")


class MediaService:
    """
    Public media surface: validate -> (images) recompress -> replicated write,
    cached reads, and owner-checked replicated deletes.
    """

    def __init__(self, writer: ReplicatedWriter, retrieval: RetrievalService,
                 transformer: Optional[ImageTransformer] = None):
        self.writer = writer
        self.retrieval = retrieval
        self.transformer = transformer or ImageTransformer()

    async def _store(self, owner: str, media: MediaClass, original_name: str, data: bytes,
                     mimetype: str) -> UploadResult:
        output_name = generate_safe_filename(original_name, mimetype)
        written = await self.writer.upload(owner, output_name, data, mimetype)
        return UploadResult(
            message=f"{media.name.capitalize()} uploaded successfully",
            url=written.url,
            key=written.key,
            content_type=written.content_type,
            size=written.size,
        )

    async def upload_image(self, owner: str, filename: str, data: bytes, mimetype: str,
                           size: Optional[int] = None) -> UploadResult:
        IMAGE.validate(max(size or 0, len(data)), mimetype)
        t0 = time.time()
        out = await self.transformer.transform(data, mimetype, filename)
        log.info("upload.image transform owner=%s in=%s out=%s used_original=%s dur_ms=%s",
                 owner, len(data), len(out.data), out.used_original, int((time.time() - t0) * 1000))
        return await self._store(owner, IMAGE, out.output_name, out.data, out.content_type)

    async def upload_audio(self, owner: str, filename: str, data: bytes, mimetype: str,
                           size: Optional[int] = None) -> UploadResult:
        AUDIO.validate(max(size or 0, len(data)), mimetype)
        return await self._store(owner, AUDIO, filename, data, mimetype)

    async def upload_video(self, owner: str, filename: str, data: bytes, mimetype: str,
                           size: Optional[int] = None) -> UploadResult:
        VIDEO.validate(max(size or 0, len(data)), mimetype)
        return await self._store(owner, VIDEO, filename, data, mimetype)

    async def upload_file(self, owner: str, filename: str, data: bytes, mimetype: str,
                          size: Optional[int] = None) -> UploadResult:
        FILE.validate(max(size or 0, len(data)), mimetype)
        return await self._store(owner, FILE, filename, data, mimetype)

    async def get_file(self, key: str) -> FileContent:
        return await self.retrieval.retrieve(key)

    async def stream_file(self, username: str, filename: str) -> ObjectBody:
        return await self.retrieval.open_stream(username, filename)

    async def delete_file(self, owner: str, url_or_key: str) -> DeleteResult:
        key = key_from_reference(url_or_key)
        await self.writer.delete(owner, key)
        return DeleteResult(key=key)
