
from __future__ import annotations
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MediaSettings(BaseSettings):
    ACTIVE_ENV: str = Field(default="dev")  # "prod" selects production buckets and hosts
    # explicit overrides; empty means "derive from ACTIVE_ENV"
    PUBLIC_BUCKET: Optional[str] = None
    PRIVATE_BUCKET: Optional[str] = None
    CDN_HOST: Optional[str] = None
    PRIVATE_CDN_HOST: Optional[str] = None
    READ_BACKEND: str = "mirror"  # backend serving cached reads: "primary" | "mirror"
    CACHE_TTL_SECONDS: int = 24 * 60 * 60
    CACHE_POPULATE_QUEUE_SIZE: int = 256
    PRESIGN_TTL_SECONDS: int = 3600
    OBJECT_CACHE_CONTROL: str = "public, max-age=31536000, immutable"
    IMAGE_QUALITY: int = 80
    MIGRATION_CONCURRENCY: int = 8
    REDIS_URL: str = "redis://localhost:6379"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


class StorageConfig(BaseModel, frozen=True):
    """Per-environment bucket and host selection, fixed at construction."""

    environment: str
    public_bucket: str
    private_bucket: str
    cdn_host: str
    private_cdn_host: str
    read_backend: str = "mirror"
    cache_ttl_seconds: int = 24 * 60 * 60
    presign_ttl_seconds: int = 3600
    cache_control: str = "public, max-age=31536000, immutable"

    @classmethod
    def for_environment(cls, environment: str, **overrides) -> "StorageConfig":
        if environment == "prod":
            base = dict(
                public_bucket="korner-pro",
                private_bucket="korner-pro-private",
                cdn_host="https://cdn.korner.pro",
                private_cdn_host="https://cdn-private.korner.pro",
            )
        else:
            base = dict(
                public_bucket="korner-lol",
                private_bucket="korner-lol-private",
                cdn_host="https://cdn.korner.lol",
                private_cdn_host="https://cdn-private.korner.lol",
            )
        base.update({k: v for k, v in overrides.items() if v is not None})
        return cls(environment=environment, **base)

    @classmethod
    def from_settings(cls, settings: MediaSettings) -> "StorageConfig":
        return cls.for_environment(
            settings.ACTIVE_ENV,
            public_bucket=settings.PUBLIC_BUCKET,
            private_bucket=settings.PRIVATE_BUCKET,
            cdn_host=settings.CDN_HOST,
            private_cdn_host=settings.PRIVATE_CDN_HOST,
            read_backend=settings.READ_BACKEND,
            cache_ttl_seconds=settings.CACHE_TTL_SECONDS,
            presign_ttl_seconds=settings.PRESIGN_TTL_SECONDS,
            cache_control=settings.OBJECT_CACHE_CONTROL,
        )

    def public_url(self, key: str) -> str:
        return f"{self.cdn_host.rstrip('/')}/{key}"

    def private_url(self, key: str) -> str:
        return f"{self.private_cdn_host.rstrip('/')}/{key}"
