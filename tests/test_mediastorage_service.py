import io
import os

import pytest
from PIL import Image

from components.mediacache import CachePopulator, InMemoryCacheStore, MediaCache
from components.mediastorage import MediaService, ReplicatedWriter, RetrievalService, StorageConfig
from components.objectstore import InMemoryObjectStore
from components.objectstore.errors import ErrorKind, StorageError

CONFIG = StorageConfig.for_environment("dev")


class CountingStore(InMemoryObjectStore):
    def __init__(self, name):
        super().__init__(name)
        self.calls = 0

    async def put(self, *args, **kwargs):
        self.calls += 1
        return await super().put(*args, **kwargs)

    async def delete(self, *args, **kwargs):
        self.calls += 1
        return await super().delete(*args, **kwargs)


def make_service():
    primary, mirror = CountingStore("primary"), CountingStore("mirror")
    cache = MediaCache(InMemoryCacheStore())
    populator = CachePopulator(cache)
    writer = ReplicatedWriter({"primary": primary, "mirror": mirror}, CONFIG, cache, populator)
    retrieval = RetrievalService(mirror, CONFIG, cache, populator)
    return MediaService(writer, retrieval), primary, mirror


def noise_png(side=820) -> bytes:
    img = Image.frombytes("RGB", (side, side), os.urandom(side * side * 3))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.mark.asyncio
async def test_png_upload_then_read_roundtrip():
    svc, primary, mirror = make_service()
    data = noise_png()
    assert 1_900_000 < len(data) < 5 * 1024 * 1024

    res = await svc.upload_image("alice", "holiday.png", data, "image/png")
    assert res.message == "Image uploaded successfully"
    assert res.key.startswith("alice/")
    assert res.key.endswith(".png") or res.key.endswith(".webp")
    assert res.url == f"https://cdn.korner.lol/{res.key}"
    assert res.content_type == ("image/webp" if res.key.endswith(".webp") else "image/png")
    assert primary.keys(CONFIG.public_bucket) == mirror.keys(CONFIG.public_bucket) == [res.key]

    stored = await (await mirror.get(CONFIG.public_bucket, res.key)).read()
    cold = await svc.get_file(res.key)
    assert cold.data == stored
    assert cold.metadata.content_type == res.content_type

    await svc.retrieval.populator.drain()
    warm = await svc.get_file(res.key)
    assert warm.from_cache and warm.data == stored
    await svc.retrieval.populator.stop()


@pytest.mark.asyncio
async def test_oversize_upload_rejected_without_backend_calls():
    svc, primary, mirror = make_service()
    with pytest.raises(StorageError) as ei:
        await svc.upload_video("alice", "movie.mp4", b"\x00" * 1024, "video/mp4", size=200_000_000)
    assert ei.value.kind is ErrorKind.PAYLOAD_TOO_LARGE
    assert primary.calls == mirror.calls == 0


@pytest.mark.asyncio
async def test_wrong_type_rejected_without_backend_calls():
    svc, primary, mirror = make_service()
    with pytest.raises(StorageError) as ei:
        await svc.upload_audio("alice", "song.flac", b"fLaC", "audio/flac")
    assert ei.value.kind is ErrorKind.UNSUPPORTED_MEDIA_TYPE
    assert primary.calls == mirror.calls == 0


@pytest.mark.asyncio
async def test_non_image_upload_stores_bytes_verbatim():
    svc, _, mirror = make_service()
    res = await svc.upload_file("bob", "Q3 Report.pdf", b"%PDF-1.7 ...", "application/pdf")
    assert res.message == "File uploaded successfully"
    assert res.key.startswith("bob/") and res.key.endswith("-file.pdf")
    assert await (await mirror.get(CONFIG.public_bucket, res.key)).read() == b"%PDF-1.7 ..."


@pytest.mark.asyncio
async def test_delete_by_url_removes_from_both_backends():
    svc, primary, mirror = make_service()
    res = await svc.upload_audio("alice", "song.mp3", b"ID3...", "audio/mpeg")
    out = await svc.delete_file("alice", res.url)
    assert out.key == res.key
    assert primary.keys(CONFIG.public_bucket) == mirror.keys(CONFIG.public_bucket) == []

    with pytest.raises(StorageError) as ei:
        await svc.get_file(res.key)
    assert ei.value.kind is ErrorKind.NOT_FOUND
