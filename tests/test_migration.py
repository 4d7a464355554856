import pytest

from components.mediacache import CachedMetadata, InMemoryCacheStore, MediaCache
from components.mediastorage import StorageConfig
from components.migration import BucketRenamer, BucketSyncer, BucketTarget, rename_targets
from components.migration.cli import parse_args
from components.objectstore import InMemoryObjectStore
from components.objectstore.errors import upstream_unavailable

CONFIG = StorageConfig.for_environment("dev")
PUBLIC, PRIVATE = CONFIG.public_bucket, CONFIG.private_bucket


class HeadFailsFor(InMemoryObjectStore):
    def __init__(self, name, bad_key):
        super().__init__(name)
        self.bad_key = bad_key

    async def head(self, bucket, key):
        if key == self.bad_key:
            raise upstream_unavailable("head failed")
        return await super().head(bucket, key)


class ListFails(InMemoryObjectStore):
    async def list(self, *args, **kwargs):
        raise upstream_unavailable("list failed")


async def seed(store, bucket, keys):
    for k in keys:
        await store.put(bucket, k, k.encode(), content_type="image/png", cache_control="public, max-age=60",
                        metadata={"src": k})


@pytest.mark.asyncio
async def test_rename_moves_every_bucket_and_preserves_headers():
    primary, mirror = InMemoryObjectStore("primary"), InMemoryObjectStore("mirror")
    await seed(primary, PUBLIC, [f"olga/{i}.png" for i in range(3)] + ["olgax/keep.png"])
    await seed(primary, PRIVATE, ["olga/secret.png"])
    await seed(mirror, PUBLIC, [f"olga/{i}.png" for i in range(3)])

    cache = MediaCache(InMemoryCacheStore())
    await cache.populate("olga/0.png", b"stale", CachedMetadata(content_type="image/png"))

    renamer = BucketRenamer(rename_targets({"primary": primary, "mirror": mirror}, CONFIG), concurrency=2, cache=cache)
    report = await renamer.rename_user_files("olga", "olga_new")

    assert report.success
    assert report.files_renamed == 7
    assert primary.keys(PUBLIC) == ["olga_new/0.png", "olga_new/1.png", "olga_new/2.png", "olgax/keep.png"]
    assert primary.keys(PRIVATE) == ["olga_new/secret.png"]
    assert mirror.keys(PUBLIC) == ["olga_new/0.png", "olga_new/1.png", "olga_new/2.png"]

    head = await primary.head(PUBLIC, "olga_new/1.png")
    assert head.content_type == "image/png"
    assert head.cache_control == "public, max-age=60"
    assert head.metadata == {"src": "olga/1.png"}
    assert await cache.lookup("olga/0.png") is None


@pytest.mark.asyncio
async def test_rename_collects_per_object_and_listing_errors():
    primary = HeadFailsFor("primary", "olga/1.png")
    mirror = ListFails("mirror")
    await seed(primary, PUBLIC, ["olga/0.png", "olga/1.png"])
    report = await BucketRenamer(rename_targets({"primary": primary, "mirror": mirror}, CONFIG)).rename_user_files(
        "olga", "olga2"
    )
    assert not report.success
    assert report.files_renamed == 1
    assert primary.keys(PUBLIC) == ["olga/1.png", "olga2/0.png"]
    assert len(report.errors) == 2
    assert report.errors[0].startswith("primary public: Failed to rename olga/1.png")
    assert report.errors[1].startswith("mirror public: Failed to list objects in korner-lol")


@pytest.mark.asyncio
async def test_rename_requires_both_names():
    with pytest.raises(ValueError):
        await BucketRenamer([]).rename_user_files("olga", "")


@pytest.mark.asyncio
async def test_sync_copies_missing_objects_to_targets():
    primary, mirror = InMemoryObjectStore("primary"), InMemoryObjectStore("mirror")
    await seed(primary, PUBLIC, ["alice/a.png", "alice/b.png", "bob/c.png"])
    await seed(mirror, PUBLIC, ["alice/a.png"])

    syncer = BucketSyncer(BucketTarget("primary public", primary, PUBLIC), [BucketTarget("mirror public", mirror, PUBLIC)])
    report = await syncer.sync_prefix()
    assert report.success
    assert (report.total, report.synced) == (3, 3)
    assert mirror.keys(PUBLIC) == primary.keys(PUBLIC)
    assert (await mirror.head(PUBLIC, "bob/c.png")).metadata == {"src": "bob/c.png"}


@pytest.mark.asyncio
async def test_sync_limited_to_a_user_prefix():
    primary, mirror = InMemoryObjectStore("primary"), InMemoryObjectStore("mirror")
    await seed(primary, PUBLIC, ["alice/a.png", "bob/c.png"])
    syncer = BucketSyncer(BucketTarget("primary public", primary, PUBLIC), [BucketTarget("mirror public", mirror, PUBLIC)])
    report = await syncer.sync_prefix("bob/")
    assert report.total == 1
    assert mirror.keys(PUBLIC) == ["bob/c.png"]


def test_cli_arguments():
    args = parse_args(["rename", "old", "new"])
    assert (args.command, args.old_username, args.new_username, args.evict_cache) == ("rename", "old", "new", False)
    args = parse_args(["--concurrency", "4", "sync", "--user", "alice"])
    assert (args.command, args.user, args.source, args.target, args.concurrency) == ("sync", "alice", "primary", "mirror", 4)
