"""Object storage access: reference parsing and backends."""

from .factory import build_storage_backend
from .interfaces import ObjectStorage
from .paths import (
    ParsedReference,
    file_name_from_path,
    media_kind,
    parse_reference,
    requires_transcode,
    resolve,
    try_resolve,
)
from .s3 import S3StorageBackend
from .supabase import SupabaseStorageBackend

__all__ = [
    "ObjectStorage",
    "ParsedReference",
    "S3StorageBackend",
    "SupabaseStorageBackend",
    "build_storage_backend",
    "file_name_from_path",
    "media_kind",
    "parse_reference",
    "requires_transcode",
    "resolve",
    "try_resolve",
]
