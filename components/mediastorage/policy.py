from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, FrozenSet

from components.objectstore.errors import ErrorKind, StorageError, bad_request

MB = 1024 * 1024


@dataclass(frozen=True)
class MediaClass:
    name: str
    max_bytes: int
    allowed_types: FrozenSet[str]
    label: str

    @property
    def missing_message(self) -> str:
        return "No file provided" if self.name == "file" else f"No {self.name} file provided"

    def validate(self, size: int, mimetype: str) -> None:
        """Reject before any backend call: size ceiling first, then the allow-list."""
        if size <= 0:
            raise bad_request(self.missing_message)
        if size > self.max_bytes:
            raise StorageError(
                ErrorKind.PAYLOAD_TOO_LARGE,
                f"{self.name.capitalize()} file size exceeds {self.max_bytes // MB} MB limit",
                details={"limit_bytes": self.max_bytes, "size_bytes": size},
            )
        if mimetype not in self.allowed_types:
            raise StorageError(
                ErrorKind.UNSUPPORTED_MEDIA_TYPE,
                f"Invalid {self.name} type. Allowed: {self.label}",
            )


IMAGE = MediaClass("image", 5 * MB, frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"}),
                   "JPEG, PNG, GIF, WEBP")
AUDIO = MediaClass("audio", 100 * MB, frozenset({"audio/mpeg", "audio/wav", "audio/wave"}), "MP3, WAV")
VIDEO = MediaClass("video", 100 * MB, frozenset({"video/mp4", "video/webm"}), "MP4, WEBM")
FILE = MediaClass(
    "file",
    15 * MB,
    frozenset({
        "application/pdf",
        "application/vnd.ms-excel",
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "text/csv",
    }),
    "PDF, XLS, XLSX, CSV",
)

MEDIA_CLASSES: Dict[str, MediaClass] = {c.name: c for c in (IMAGE, AUDIO, VIDEO, FILE)}
