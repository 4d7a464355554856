from __future__ import annotations

from typing import Any, Optional
from urllib.parse import unquote

from fastapi import APIRouter, Body, Depends, File, Query, Request, UploadFile
from fastapi.responses import Response, StreamingResponse

from components.accesscontrol.contracts import Identity
from components.accesscontrol.deps import current_user, subscribed_user
from components.objectstore.errors import bad_request

from .contracts import (
    FileContent,
    MetaPayload,
    PresignAccessRequest,
    PresignUploadRequest,
    UWFResponse,
)
from .policy import AUDIO, FILE, IMAGE, VIDEO, MediaClass
from .private import PrivateMediaService
from .retrieval import http_date
from .service import MediaService
from .usage import StorageUsageService

READ_CACHE_CONTROL = "public, max-age=31536000"

# These are provided by the application container at startup.
_media_singleton: Optional[MediaService] = None
_private_singleton: Optional[PrivateMediaService] = None
_usage_singleton: Optional[StorageUsageService] = None


def set_media_services(media: MediaService, private: PrivateMediaService, usage: StorageUsageService) -> None:
    global _media_singleton, _private_singleton, _usage_singleton
    _media_singleton = media
    _private_singleton = private
    _usage_singleton = usage


def get_media_service() -> MediaService:
    if _media_singleton is None:
        raise RuntimeError("media service not configured; call set_media_services() first")
    return _media_singleton


def get_private_service() -> PrivateMediaService:
    if _private_singleton is None:
        raise RuntimeError("private media service not configured; call set_media_services() first")
    return _private_singleton


def get_usage_service() -> StorageUsageService:
    if _usage_singleton is None:
        raise RuntimeError("usage service not configured; call set_media_services() first")
    return _usage_singleton


def uwf_ok(request: Request, result: Any) -> UWFResponse:
    meta = MetaPayload(
        trace_id=getattr(request.state, "trace_id", None),
        request_id=getattr(request.state, "request_id", None),
    )
    return UWFResponse(ok=True, result=result, error=None, meta=meta)


async def _read_upload(upload: Optional[UploadFile], media: MediaClass) -> bytes:
    if upload is None:
        raise bad_request(media.missing_message)
    # the declared size is enough to reject before buffering the body
    if upload.size is not None:
        media.validate(upload.size, upload.content_type or "")
    try:
        return await upload.read()
    finally:
        await upload.close()


# ---- /api/s3 ----
public_router = APIRouter(prefix="/api/s3", tags=["media"])


@public_router.post("/upload/image", response_model=UWFResponse)
async def upload_image(
    request: Request,
    image: Optional[UploadFile] = File(default=None),
    user: Identity = Depends(current_user),
    svc: MediaService = Depends(get_media_service),
):
    data = await _read_upload(image, IMAGE)
    res = await svc.upload_image(user.username, image.filename or "", data, image.content_type or "", image.size)
    return uwf_ok(request, res)


@public_router.post("/upload/audio", response_model=UWFResponse)
async def upload_audio(
    request: Request,
    audio: Optional[UploadFile] = File(default=None),
    user: Identity = Depends(current_user),
    svc: MediaService = Depends(get_media_service),
):
    data = await _read_upload(audio, AUDIO)
    res = await svc.upload_audio(user.username, audio.filename or "", data, audio.content_type or "", audio.size)
    return uwf_ok(request, res)


@public_router.post("/upload/video", response_model=UWFResponse)
async def upload_video(
    request: Request,
    video: Optional[UploadFile] = File(default=None),
    user: Identity = Depends(current_user),
    svc: MediaService = Depends(get_media_service),
):
    data = await _read_upload(video, VIDEO)
    res = await svc.upload_video(user.username, video.filename or "", data, video.content_type or "", video.size)
    return uwf_ok(request, res)


@public_router.post("/upload/file", response_model=UWFResponse)
async def upload_file(
    request: Request,
    file: Optional[UploadFile] = File(default=None),
    user: Identity = Depends(current_user),
    svc: MediaService = Depends(get_media_service),
):
    data = await _read_upload(file, FILE)
    res = await svc.upload_file(user.username, file.filename or "", data, file.content_type or "", file.size)
    return uwf_ok(request, res)


@public_router.delete("/delete", response_model=UWFResponse)
async def delete_file(
    request: Request,
    url: Optional[str] = Body(default=None, embed=True),
    user: Identity = Depends(current_user),
    svc: MediaService = Depends(get_media_service),
):
    res = await svc.delete_file(user.username, url or "")
    return uwf_ok(request, res)


def _buffered(content: FileContent) -> Response:
    headers = {
        "Content-Length": str(len(content.data)),
        "Cache-Control": READ_CACHE_CONTROL,
        "X-Cache": "HIT" if content.from_cache else "MISS",
    }
    if content.metadata.last_modified:
        headers["Last-Modified"] = content.metadata.last_modified
    return Response(content=content.data, media_type=content.metadata.content_type, headers=headers)


def _encoded_key(request: Request) -> Optional[str]:
    """The key when it arrived as one segment with an encoded slash (``alice%2Fa.png``).

    Routing runs on the decoded path, so only ``raw_path`` still tells the two
    read shapes apart.
    """
    raw = request.scope.get("raw_path") or b""
    tail = raw.decode("latin-1").rsplit("/", 1)[-1]
    if "%2f" not in tail.lower():
        return None
    return unquote(tail)


@public_router.get("/{key}")
async def get_file(key: str, svc: MediaService = Depends(get_media_service)):
    return _buffered(await svc.get_file(key))


@public_router.get("/{username}/{filename}")
async def get_file_by_path(
    request: Request, username: str, filename: str, svc: MediaService = Depends(get_media_service)
):
    key = _encoded_key(request)
    if key is not None:
        return _buffered(await svc.get_file(key))
    body = await svc.stream_file(username, filename)
    headers = {"Cache-Control": READ_CACHE_CONTROL}
    if body.content_length is not None:
        headers["Content-Length"] = str(body.content_length)
    last_modified = http_date(body.last_modified)
    if last_modified:
        headers["Last-Modified"] = last_modified
    return StreamingResponse(body.stream, media_type=body.content_type, headers=headers)


# ---- /api/s3-private ----
private_router = APIRouter(prefix="/api/s3-private", tags=["private-media"])


@private_router.post("/upload/private/presigned-url", response_model=UWFResponse)
async def presign_private_upload(
    request: Request,
    body: PresignUploadRequest,
    user: Identity = Depends(subscribed_user),
    svc: PrivateMediaService = Depends(get_private_service),
):
    res = await svc.presign_upload(user.username, body.filename or "", body.mimetype or "")
    return uwf_ok(request, res)


@private_router.post("/access/presigned-url", response_model=UWFResponse)
async def presign_private_access(
    request: Request,
    body: PresignAccessRequest,
    user: Identity = Depends(current_user),
    svc: PrivateMediaService = Depends(get_private_service),
):
    res = await svc.presign_access(user.id, body.key or "")
    return uwf_ok(request, res)


@private_router.get("/metadata/{key:path}", response_model=UWFResponse)
async def private_metadata(
    key: str,
    request: Request,
    user: Identity = Depends(current_user),
    svc: PrivateMediaService = Depends(get_private_service),
):
    res = await svc.file_metadata(user.id, key)
    return uwf_ok(request, res)


@private_router.delete("/delete", response_model=UWFResponse)
async def private_delete(
    request: Request,
    key: Optional[str] = Query(default=None),
    user: Identity = Depends(current_user),
    svc: PrivateMediaService = Depends(get_private_service),
):
    res = await svc.delete(user.username, key or "")
    return uwf_ok(request, res)


# ---- /api/storage ----
storage_router = APIRouter(prefix="/api/storage", tags=["storage"])


@storage_router.get("/usage", response_model=UWFResponse)
async def storage_usage(
    request: Request,
    user: Identity = Depends(current_user),
    svc: StorageUsageService = Depends(get_usage_service),
):
    return uwf_ok(request, await svc.usage(user.username))


@storage_router.get("/files", response_model=UWFResponse)
async def storage_files(
    request: Request,
    user: Identity = Depends(current_user),
    svc: StorageUsageService = Depends(get_usage_service),
):
    return uwf_ok(request, await svc.list_files(user.username))
