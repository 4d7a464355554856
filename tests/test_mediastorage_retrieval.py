import asyncio

import pytest

from components.mediacache import CachePopulator, InMemoryCacheStore, MediaCache
from components.mediastorage.config import StorageConfig
from components.mediastorage.replication import ReplicatedWriter
from components.mediastorage.retrieval import RetrievalService
from components.objectstore import InMemoryObjectStore
from components.objectstore.errors import ErrorKind, StorageError

CONFIG = StorageConfig.for_environment("dev")
BUCKET = CONFIG.public_bucket


class FlakyCacheStore(InMemoryCacheStore):
    async def get_bytes(self, key):
        raise ConnectionError("redis down")


def make(cache_store=None):
    primary, mirror = InMemoryObjectStore("primary"), InMemoryObjectStore("mirror")
    cache = MediaCache(cache_store or InMemoryCacheStore())
    populator = CachePopulator(cache)
    writer = ReplicatedWriter({"primary": primary, "mirror": mirror}, CONFIG, cache, populator)
    retrieval = RetrievalService(mirror, CONFIG, cache, populator)
    return writer, retrieval, primary, mirror


@pytest.mark.asyncio
async def test_cold_then_warm_read_returns_identical_bytes():
    writer, retrieval, _, _ = make()
    data = bytes(range(256)) * 40
    await writer.upload("alice", "a.png", data, "image/png")

    cold = await retrieval.retrieve("alice/a.png")
    assert cold.from_cache is False
    assert cold.data == data
    assert cold.metadata.content_type == "image/png"
    assert cold.metadata.content_length == len(data)
    assert cold.metadata.last_modified.endswith("GMT")

    await retrieval.populator.drain()
    warm = await retrieval.retrieve("alice/a.png")
    assert warm.from_cache is True
    assert warm.data == data
    assert warm.metadata == cold.metadata
    await retrieval.populator.stop()


@pytest.mark.asyncio
async def test_no_stale_read_after_delete():
    writer, retrieval, _, _ = make()
    await writer.upload("alice", "a.png", b"png", "image/png")
    await retrieval.retrieve("alice/a.png")
    await retrieval.populator.drain()

    await writer.delete("alice", "alice/a.png")
    with pytest.raises(StorageError) as ei:
        await retrieval.retrieve("alice/a.png")
    assert ei.value.kind is ErrorKind.NOT_FOUND
    assert ei.value.message == "File not found"
    await retrieval.populator.stop()



class GatedStore(InMemoryObjectStore):
    """Holds each read after the bytes are fetched until released."""

    def __init__(self, name):
        super().__init__(name)
        self.fetched = asyncio.Event()
        self.release = asyncio.Event()

    async def get(self, bucket, key):
        body = await super().get(bucket, key)
        self.fetched.set()
        await self.release.wait()
        return body


@pytest.mark.asyncio
async def test_read_in_flight_during_delete_does_not_repopulate_cache():
    primary, mirror = InMemoryObjectStore("primary"), GatedStore("mirror")
    cache = MediaCache(InMemoryCacheStore())
    populator = CachePopulator(cache)
    writer = ReplicatedWriter({"primary": primary, "mirror": mirror}, CONFIG, cache, populator)
    retrieval = RetrievalService(mirror, CONFIG, cache, populator)
    await writer.upload("alice", "a.png", b"OLD", "image/png")

    read = asyncio.create_task(retrieval.retrieve("alice/a.png"))
    await mirror.fetched.wait()
    await writer.delete("alice", "alice/a.png")
    mirror.release.set()
    assert (await read).data == b"OLD"

    await populator.drain()
    assert await cache.lookup("alice/a.png") is None
    with pytest.raises(StorageError) as ei:
        await retrieval.retrieve("alice/a.png")
    assert ei.value.kind is ErrorKind.NOT_FOUND
    await populator.stop()

@pytest.mark.asyncio
async def test_reads_use_only_the_configured_backend():
    _, retrieval, primary, _ = make()
    await primary.put(BUCKET, "alice/only-primary.png", b"png", content_type="image/png")
    with pytest.raises(StorageError) as ei:
        await retrieval.retrieve("alice/only-primary.png")
    assert ei.value.kind is ErrorKind.NOT_FOUND


@pytest.mark.asyncio
async def test_cache_outage_degrades_to_backend_reads():
    writer, retrieval, _, _ = make(FlakyCacheStore())
    await writer.upload("alice", "a.csv", b"a,b\n1,2\n", "text/csv")
    first = await retrieval.retrieve("alice/a.csv")
    await retrieval.populator.drain()
    second = await retrieval.retrieve("alice/a.csv")
    assert first.data == second.data == b"a,b\n1,2\n"
    assert second.from_cache is False
    await retrieval.populator.stop()


@pytest.mark.asyncio
async def test_missing_content_type_defaults_and_is_not_cached_as_usable():
    _, retrieval, _, mirror = make()
    await mirror.put(BUCKET, "alice/blob", b"raw")
    got = await retrieval.retrieve("alice/blob")
    assert got.metadata.content_type == "application/octet-stream"
    await retrieval.populator.drain()
    again = await retrieval.retrieve("alice/blob")
    assert again.from_cache is False
    await retrieval.populator.stop()


@pytest.mark.asyncio
async def test_open_stream_bypasses_cache():
    writer, retrieval, _, _ = make()
    await writer.upload("alice", "clip.webm", b"v" * 200_000, "video/webm")
    body = await retrieval.open_stream("alice", "clip.webm")
    assert body.content_type == "video/webm"
    assert await body.read() == b"v" * 200_000
    assert await retrieval.cache.lookup("alice/clip.webm") is None

    with pytest.raises(StorageError) as ei:
        await retrieval.open_stream("alice", "../secret")
    assert ei.value.kind is ErrorKind.BAD_REQUEST
