from .contracts import CacheEntry, CachedMetadata
from .populator import CachePopulator, PopulateJob
from .service import DAY_SECONDS, MediaCache
from .store import CacheStore, InMemoryCacheStore, RedisCacheStore

__all__ = [
    "CacheEntry",
    "CachedMetadata",
    "CachePopulator",
    "PopulateJob",
    "DAY_SECONDS",
    "MediaCache",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
]
