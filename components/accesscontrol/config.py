from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AccessSettings(BaseSettings):
    KORNER_MAIN_URL: str = Field(default="http://localhost:3001")
    KORNER_BILLING_URL: str = Field(default="http://localhost:3002")
    EXTERNAL_TIMEOUT_SECONDS: float = 5.0

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")


def ensure_protocol(url: str) -> str:
    if url.startswith("http://") or url.startswith("https://"):
        return url.rstrip("/")
    return f"http://{url}".rstrip("/")
