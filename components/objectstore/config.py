
from __future__ import annotations
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional

class ObjectStoreSettings(BaseSettings):
    OBJECTSTORE_ADAPTER: str = Field(default="s3")  # "s3" | "memory"
    # Backend A (primary): AWS S3, also holds the private bucket
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[str] = None
    AWS_REGION: Optional[str] = None
    AWS_S3_ENDPOINT_URL: Optional[str] = None
    AWS_S3_FORCE_PATH_STYLE: bool = False
    # Backend B (mirror): S3-compatible endpoint
    YC_ACCESS_KEY_ID: Optional[str] = None
    YC_SECRET_ACCESS_KEY: Optional[str] = None
    YC_REGION: str = "kz1"
    YC_ENDPOINT_URL: Optional[str] = "https://storage.yandexcloud.kz"
    YC_FORCE_PATH_STYLE: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")
