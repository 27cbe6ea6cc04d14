"""Object storage contract shared by all backends."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ObjectStorage(Protocol):
    """Narrow interface to the object storage service.

    Every path argument is a canonical bucket-relative path. Backends raise
    StorageError for any failure reported by the service.
    """

    bucket: str

    async def issue_signed_url(self, path: str, ttl_seconds: int) -> str:
        """Issue a time-limited read URL for a private object."""
        ...

    async def download_object(self, path: str) -> bytes:
        """Fetch object bytes with the backend's own credentials."""
        ...

    async def upload_object(
        self,
        path: str,
        data: bytes,
        *,
        cache_control: str = "3600",
        allow_overwrite: bool = False,
        content_type: str | None = None,
    ) -> None:
        """Store bytes under path."""
        ...

    def public_url_for(self, path: str) -> str:
        """Deterministic public URL for path. No network call."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...
