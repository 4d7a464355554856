from __future__ import annotations

import os
import re
import secrets
import time
from typing import Optional
from urllib.parse import unquote, urlparse

from components.objectstore.errors import access_denied, bad_request

MAX_FILENAME_LENGTH = 100
_UNSAFE = re.compile(r"[^a-zA-Z0-9\-_]")
_PATH_FILENAME = re.compile(r"^[\w\-.~]+$", re.ASCII)

FILE_TYPE_SUFFIXES = {
    "image/jpeg": "image",
    "image/png": "image",
    "image/gif": "image",
    "image/webp": "image",
    "application/pdf": "file",
    "application/vnd.ms-excel": "file",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": "file",
    "text/csv": "file",
    "video/mp4": "video",
    "video/mpeg": "video",
    "video/webm": "video",
}

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _DIGITS[r] + out
        if n == 0:
            return out


def generate_safe_filename(original: str, mimetype: str, *, now_ms: Optional[int] = None) -> str:
    """Opaque storage name: ``<base36 ms>-<8 hex>-<kind><original extension>``."""
    extension = os.path.splitext(original or "")[1].lower()
    suffix = FILE_TYPE_SUFFIXES.get(mimetype, "file")
    stamp = _base36(now_ms if now_ms is not None else int(time.time() * 1000))
    name = f"{stamp}-{secrets.token_hex(4)}-{suffix}"

    name = _UNSAFE.sub("-", name)
    name = re.sub(r"-+", "-", name).strip("-")
    if len(name) > MAX_FILENAME_LENGTH - len(extension):
        name = name[: MAX_FILENAME_LENGTH - len(extension)]
    return f"{name}{extension}"


def owner_prefix(owner: str) -> str:
    return f"{owner}/"


def owns_key(owner: str, key: str) -> bool:
    return bool(owner) and bool(key) and key.startswith(owner_prefix(owner))


def require_owner(owner: str, key: str, message: str = "You can only delete files from your own directory") -> None:
    if not owns_key(owner, key):
        raise access_denied(message)


def key_from_reference(ref: str) -> str:
    """Accept either a bare object key or a full public URL and return the key."""
    if not ref or not isinstance(ref, str):
        raise bad_request("URL must be a non-empty string", code="INVALID_INPUT")
    ref = ref.strip()
    if "://" not in ref:
        return ref.lstrip("/")
    parsed = urlparse(ref)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise bad_request("Invalid URL format", code="INVALID_INPUT")
    key = unquote(parsed.path).lstrip("/")
    if not key:
        raise bad_request("Invalid URL format", code="INVALID_INPUT")
    return key


def path_key(username: str, filename: str) -> str:
    if not filename or not _PATH_FILENAME.match(filename):
        raise bad_request("Invalid filename", code="INVALID_INPUT")
    if not username or "/" in username:
        raise bad_request("Invalid username", code="INVALID_INPUT")
    return f"{username}/{filename}"
