from .config import MediaSettings, StorageConfig
from .contracts import (
    DeleteResult,
    FileContent,
    FileMetadata,
    PresignedAccess,
    PresignedUpload,
    StorageUsage,
    UploadResult,
)
from .policy import AUDIO, FILE, IMAGE, MEDIA_CLASSES, VIDEO, MediaClass
from .keys import generate_safe_filename, key_from_reference, owns_key
from .transform import ImageTransformer, TransformResult
from .replication import ReplicatedWriter
from .retrieval import RetrievalService
from .service import MediaService
from .private import PrivateMediaService
from .usage import StorageUsageService, format_size

__all__ = [
    "MediaSettings",
    "StorageConfig",
    "DeleteResult",
    "FileContent",
    "FileMetadata",
    "PresignedAccess",
    "PresignedUpload",
    "StorageUsage",
    "UploadResult",
    "AUDIO",
    "FILE",
    "IMAGE",
    "MEDIA_CLASSES",
    "VIDEO",
    "MediaClass",
    "generate_safe_filename",
    "key_from_reference",
    "owns_key",
    "ImageTransformer",
    "TransformResult",
    "ReplicatedWriter",
    "RetrievalService",
    "MediaService",
    "PrivateMediaService",
    "StorageUsageService",
    "format_size",
]
