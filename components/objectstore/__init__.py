from __future__ import annotations
from typing import Dict

from .contracts import *
from .errors import *
from .ports import ObjectStorePort
from .adapters.inmemory import InMemoryObjectStore
from .adapters.s3 import S3ObjectStore
from .config import ObjectStoreSettings

PRIMARY = "primary"
MIRROR = "mirror"


def make_backends_from_env() -> Dict[str, ObjectStorePort]:
    """Build Backend A (primary) and Backend B (mirror) from the environment."""
    cfg = ObjectStoreSettings()
    adapter = cfg.OBJECTSTORE_ADAPTER.lower()
    if adapter == "memory":
        return {PRIMARY: InMemoryObjectStore(PRIMARY), MIRROR: InMemoryObjectStore(MIRROR)}
    elif adapter == "s3":
        return {
            PRIMARY: S3ObjectStore(
                PRIMARY,
                region=cfg.AWS_REGION,
                endpoint_url=cfg.AWS_S3_ENDPOINT_URL,
                access_key_id=cfg.AWS_ACCESS_KEY_ID,
                secret_access_key=cfg.AWS_SECRET_ACCESS_KEY,
                force_path_style=cfg.AWS_S3_FORCE_PATH_STYLE,
            ),
            MIRROR: S3ObjectStore(
                MIRROR,
                region=cfg.YC_REGION,
                endpoint_url=cfg.YC_ENDPOINT_URL,
                access_key_id=cfg.YC_ACCESS_KEY_ID,
                secret_access_key=cfg.YC_SECRET_ACCESS_KEY,
                force_path_style=cfg.YC_FORCE_PATH_STYLE,
            ),
        }
    else:
        raise RuntimeError(f"Unknown OBJECTSTORE_ADAPTER: {cfg.OBJECTSTORE_ADAPTER}")
