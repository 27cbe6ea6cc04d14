"""Service layer: URL issuance, media loading, exports and uploads."""

from .export_service import ExportService
from .media_loader import MediaLoader, MediaLoaderFactory
from .signed_url_cache import SignedUrlCache, SignedUrlCacheEntry
from .temp_urls import TemporaryUrlRegistry
from .transcoder import ImageTranscoder
from .upload_service import UploadedFile, UploadService

__all__ = [
    "ExportService",
    "ImageTranscoder",
    "MediaLoader",
    "MediaLoaderFactory",
    "SignedUrlCache",
    "SignedUrlCacheEntry",
    "TemporaryUrlRegistry",
    "UploadService",
    "UploadedFile",
]
