"""Maintenance entry point.

    python -m components.migration.cli rename OLD NEW
    python -m components.migration.cli sync [--user NAME] [--source primary] [--target mirror]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from components.mediacache import MediaCache, RedisCacheStore
from components.mediastorage.config import MediaSettings, StorageConfig
from components.objectstore import MIRROR, PRIMARY, make_backends_from_env

from .contracts import BucketTarget
from .service import BucketRenamer, BucketSyncer, rename_targets

log = logging.getLogger("migration")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Rename user prefixes or sync buckets between backends.")
    p.add_argument("--concurrency", type=int, default=None, help="Objects processed in parallel per page")
    p.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("rename", help="Move every object under OLD/ to NEW/ in all buckets")
    r.add_argument("old_username")
    r.add_argument("new_username")
    r.add_argument("--evict-cache", action="store_true", help="Drop cached entries for renamed keys")

    s = sub.add_parser("sync", help="Copy the public bucket from one backend to another")
    s.add_argument("--user", default=None, help="Only sync objects under USER/")
    s.add_argument("--source", choices=[PRIMARY, MIRROR], default=PRIMARY)
    s.add_argument("--target", choices=[PRIMARY, MIRROR], default=MIRROR)
    return p.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    settings = MediaSettings()
    config = StorageConfig.from_settings(settings)
    backends = make_backends_from_env()
    concurrency = args.concurrency or settings.MIGRATION_CONCURRENCY

    if args.command == "rename":
        store = RedisCacheStore.from_url(settings.REDIS_URL) if args.evict_cache else None
        cache = MediaCache(store, settings.CACHE_TTL_SECONDS) if store is not None else None
        try:
            renamer = BucketRenamer(rename_targets(backends, config), concurrency=concurrency, cache=cache)
            report = await renamer.rename_user_files(args.old_username, args.new_username)
        finally:
            if store is not None:
                await store.close()
        print(f"Renamed {report.files_renamed} file(s) from {args.old_username}/ to {args.new_username}/")
    else:
        if args.source == args.target:
            print("source and target must differ", file=sys.stderr)
            return 2
        source = BucketTarget(f"{args.source} public", backends[args.source], config.public_bucket)
        target = BucketTarget(f"{args.target} public", backends[args.target], config.public_bucket)
        prefix = f"{args.user}/" if args.user else ""
        report = await BucketSyncer(source, [target], concurrency=concurrency).sync_prefix(prefix)
        print(f"Sync completed: {report.synced}/{report.total} files")

    for err in report.errors:
        print(f"  error: {err}", file=sys.stderr)
    return 0 if report.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
