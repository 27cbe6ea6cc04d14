"""StrEnum definitions for type-safe constants."""

from enum import StrEnum


class StorageBackendKind(StrEnum):
    """Supported object storage backends."""

    SUPABASE = "supabase"
    S3 = "s3"


class UrlTemplate(StrEnum):
    """Historical storage URL shapes a reference may be saved in."""

    PUBLIC = "public"
    SIGN = "sign"
    AUTHENTICATED = "authenticated"


class MediaKind(StrEnum):
    """Renderer family for a stored file."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    UNKNOWN = "unknown"


class LoaderState(StrEnum):
    """Media loader lifecycle states."""

    IDLE = "idle"
    RESOLVING = "resolving"
    AWAITING_LOAD = "awaiting_load"
    FETCHING_URL = "fetching_url"
    TRANSCODING = "transcoding"
    READY = "ready"
    FAILED = "failed"


class FieldType(StrEnum):
    """Form field input types."""

    TEXT = "text"
    SELECT = "select"
