"""Stored-object reference parsing.

Submissions saved over the years hold file references in several shapes:

- a canonical path relative to the bucket: ``acme/user_1/abc/file.png``
- a public URL:        ``https://<host>/storage/v1/object/public/forms/<path>``
- a signed URL:        ``https://<host>/storage/v1/object/sign/forms/<path>?token=...``
- an authenticated URL ``https://<host>/storage/v1/object/authenticated/forms/<path>``

Everything downstream works on canonical paths only; this module is the one
place that turns a reference into one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePosixPath

from formvault.enums import MediaKind, UrlTemplate
from formvault.errors import ResolutionFailure

DEFAULT_BUCKET = "forms"

_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.\-]*://")

IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".heif"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".webm", ".mkv"}
AUDIO_EXTENSIONS = {".mp3", ".wav", ".ogg", ".m4a"}

# Still-image formats common renderers cannot display.
TRANSCODE_EXTENSIONS = {".heic", ".heif"}
TRANSCODE_CONTENT_TYPES = {"image/heic", "image/heif", "image/heic-sequence", "image/heif-sequence"}


@dataclass(frozen=True)
class ParsedReference:
    """A resolved reference.

    Attributes:
        path: Canonical bucket-relative path.
        template: URL shape the reference was stored in, None for bare paths.
    """

    path: str
    template: UrlTemplate | None = None

    @property
    def is_public_url(self) -> bool:
        return self.template is UrlTemplate.PUBLIC


def _template_regex(bucket: str) -> re.Pattern[str]:
    kinds = "|".join(t.value for t in UrlTemplate)
    return re.compile(
        rf"/object/(?P<kind>{kinds})/{re.escape(bucket)}/(?P<path>[^?#]+)(?:[?#].*)?$"
    )


_TEMPLATE_CACHE: dict[str, re.Pattern[str]] = {}


def _pattern_for(bucket: str) -> re.Pattern[str]:
    pattern = _TEMPLATE_CACHE.get(bucket)
    if pattern is None:
        pattern = _template_regex(bucket)
        _TEMPLATE_CACHE[bucket] = pattern
    return pattern


def is_absolute_url(reference: str) -> bool:
    return bool(_SCHEME_RE.match(reference))


def parse_reference(reference: str | None, *, bucket: str = DEFAULT_BUCKET) -> ParsedReference:
    """Parse a stored-object reference.

    Args:
        reference: Canonical path or storage URL.
        bucket: Bucket (container) name the URL templates embed.

    Returns:
        ParsedReference with the canonical path.

    Raises:
        ResolutionFailure: Empty input, or a URL matching no known template.
    """
    if reference is None or not reference.strip():
        raise ResolutionFailure(reference or "")

    if not is_absolute_url(reference):
        return ParsedReference(path=reference)

    match = _pattern_for(bucket).search(reference)
    if match is None:
        raise ResolutionFailure(reference)

    return ParsedReference(path=match.group("path"), template=UrlTemplate(match.group("kind")))


def resolve(reference: str | None, *, bucket: str = DEFAULT_BUCKET) -> str:
    """Return the canonical path for a reference, raising ResolutionFailure."""
    return parse_reference(reference, bucket=bucket).path


def try_resolve(reference: str | None, *, bucket: str = DEFAULT_BUCKET) -> str | None:
    """Like resolve(), but returns None instead of raising."""
    try:
        return resolve(reference, bucket=bucket)
    except ResolutionFailure:
        return None


def file_name_from_path(path: str, default: str = "unknown") -> str:
    """Last segment of a canonical path, query string dropped."""
    name = path.split("?", 1)[0].rstrip("/").split("/")[-1]
    return name or default


def media_kind(name: str) -> MediaKind:
    """Classify a file by extension into the renderer family to use."""
    ext = PurePosixPath(name.split("?", 1)[0]).suffix.lower()
    if ext in IMAGE_EXTENSIONS:
        return MediaKind.IMAGE
    if ext in VIDEO_EXTENSIONS:
        return MediaKind.VIDEO
    if ext in AUDIO_EXTENSIONS:
        return MediaKind.AUDIO
    return MediaKind.UNKNOWN


def requires_transcode(name: str, content_type: str | None = None) -> bool:
    """True for formats that must be converted locally before display."""
    if content_type and content_type.split(";", 1)[0].strip().lower() in TRANSCODE_CONTENT_TYPES:
        return True
    return PurePosixPath(name.split("?", 1)[0]).suffix.lower() in TRANSCODE_EXTENSIONS
