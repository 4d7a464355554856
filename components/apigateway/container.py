from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Optional

import httpx

from components.accesscontrol import AccessDecisionEngine, make_clients_from_env
from components.accesscontrol.config import AccessSettings
from components.accesscontrol.deps import set_access_ports
from components.accesscontrol.ports import BillingOraclePort, CollectionLookupPort, IdentityResolverPort
from components.mediacache import CachePopulator, CacheStore, MediaCache, RedisCacheStore
from components.mediastorage import (
    ImageTransformer,
    MediaService,
    MediaSettings,
    PrivateMediaService,
    ReplicatedWriter,
    RetrievalService,
    StorageConfig,
    StorageUsageService,
)
from components.mediastorage.http import set_media_services
from components.objectstore import PRIMARY, make_backends_from_env
from components.objectstore.ports import ObjectStorePort

logger = logging.getLogger("apigateway")


@dataclass
class MediaContainer:
    """Everything a running service needs, built once and shared by all requests."""

    config: StorageConfig
    backends: Dict[str, ObjectStorePort]
    cache_store: CacheStore
    cache: MediaCache
    populator: CachePopulator
    media: MediaService
    private: PrivateMediaService
    usage: StorageUsageService
    identity: IdentityResolverPort
    engine: AccessDecisionEngine
    http: Optional[httpx.AsyncClient] = None

    def wire(self) -> None:
        set_media_services(self.media, self.private, self.usage)
        set_access_ports(self.identity, self.engine)

    async def start(self) -> None:
        self.populator.start()

    async def aclose(self) -> None:
        await self.populator.stop()
        await self.cache_store.close()
        if self.http is not None:
            await self.http.aclose()


def build_container(
    config: StorageConfig,
    backends: Dict[str, ObjectStorePort],
    cache_store: CacheStore,
    identity: IdentityResolverPort,
    collections: CollectionLookupPort,
    billing: BillingOraclePort,
    *,
    queue_size: int = 256,
    image_quality: int = 80,
    access_timeout: float = 5.0,
    http: Optional[httpx.AsyncClient] = None,
) -> MediaContainer:
    if config.read_backend not in backends:
        raise RuntimeError(f"READ_BACKEND {config.read_backend!r} is not one of {sorted(backends)}")
    cache = MediaCache(cache_store, config.cache_ttl_seconds)
    populator = CachePopulator(cache, maxsize=queue_size)
    engine = AccessDecisionEngine(collections, billing, timeout=access_timeout)
    writer = ReplicatedWriter(backends, config, cache, populator)
    retrieval = RetrievalService(backends[config.read_backend], config, cache, populator)
    return MediaContainer(
        config=config,
        backends=backends,
        cache_store=cache_store,
        cache=cache,
        populator=populator,
        media=MediaService(writer, retrieval, ImageTransformer(quality=image_quality)),
        private=PrivateMediaService(backends[PRIMARY], config, engine),
        usage=StorageUsageService(backends[PRIMARY], config),
        identity=identity,
        engine=engine,
        http=http,
    )


def build_from_env() -> MediaContainer:
    settings = MediaSettings()
    access = AccessSettings()
    config = StorageConfig.from_settings(settings)
    http = httpx.AsyncClient(timeout=access.EXTERNAL_TIMEOUT_SECONDS)
    main, billing = make_clients_from_env(http=http)
    container = build_container(
        config,
        make_backends_from_env(),
        RedisCacheStore.from_url(settings.REDIS_URL),
        identity=main,
        collections=main,
        billing=billing,
        queue_size=settings.CACHE_POPULATE_QUEUE_SIZE,
        image_quality=settings.IMAGE_QUALITY,
        access_timeout=access.EXTERNAL_TIMEOUT_SECONDS,
        http=http,
    )
    logger.info("container.built env=%s public=%s private=%s read_backend=%s",
                config.environment, config.public_bucket, config.private_bucket, config.read_backend)
    return container
