
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    NOT_FOUND = "NOT_FOUND"
    ACCESS_DENIED = "ACCESS_DENIED"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    SERVICE_ERROR = "SERVICE_ERROR"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.ACCESS_DENIED: 403,
    ErrorKind.UNSUPPORTED_MEDIA_TYPE: 415,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.UPSTREAM_UNAVAILABLE: 502,
    ErrorKind.SERVICE_ERROR: 500,
}

DEFAULT_CODE_BY_KIND: Dict[ErrorKind, str] = {
    ErrorKind.BAD_REQUEST: "BAD_REQUEST",
    ErrorKind.UNAUTHORIZED: "AUTH_TOKEN_REQUIRED",
    ErrorKind.INVALID_TOKEN: "INVALID_ACCESS_TOKEN",
    ErrorKind.NOT_FOUND: "FILE_NOT_FOUND",
    ErrorKind.ACCESS_DENIED: "ACCESS_DENIED",
    ErrorKind.UNSUPPORTED_MEDIA_TYPE: "INVALID_FILE_TYPE",
    ErrorKind.PAYLOAD_TOO_LARGE: "PAYLOAD_TOO_LARGE",
    ErrorKind.UPSTREAM_UNAVAILABLE: "UPSTREAM_UNAVAILABLE",
    ErrorKind.SERVICE_ERROR: "SERVER_ERROR",
}


class StorageError(Exception):
    """Single tagged error for every storage and access failure.

    Callers branch on ``kind`` rather than on exception subclasses.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.code = code or DEFAULT_CODE_BY_KIND[kind]
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_payload(self) -> Dict[str, Any]:
        return {
            "type": self.kind.value,
            "code": self.code,
            "message": self.message,
            "details": self.details or {},
        }

    def __repr__(self) -> str:
        return f"StorageError(kind={self.kind.value}, code={self.code}, message={self.message!r})"


def bad_request(message: str, code: str = "BAD_REQUEST") -> StorageError:
    return StorageError(ErrorKind.BAD_REQUEST, message, code=code)


def not_found(message: str = "File not found", code: str = "FILE_NOT_FOUND") -> StorageError:
    return StorageError(ErrorKind.NOT_FOUND, message, code=code)


def access_denied(message: str, code: str = "ACCESS_DENIED") -> StorageError:
    return StorageError(ErrorKind.ACCESS_DENIED, message, code=code)


def upstream_unavailable(message: str, **details: Any) -> StorageError:
    return StorageError(ErrorKind.UPSTREAM_UNAVAILABLE, message, details=details or None)


def service_error(message: str = "Internal server error", **details: Any) -> StorageError:
    return StorageError(ErrorKind.SERVICE_ERROR, message, details=details or None)
