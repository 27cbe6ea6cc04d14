"""Process-scoped cache of signed access URLs.

Maps canonical storage paths to the last issued access URL and its expiry.
Concurrent requests for the same path share one issuance call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from formvault.errors import StorageError
from formvault.storage.interfaces import ObjectStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignedUrlCacheEntry:
    """A cached access URL.

    Attributes:
        path: Canonical storage path (cache key).
        url: Issued access URL.
        expires_at: Clock reading after which the URL is no longer valid.
    """

    path: str
    url: str
    expires_at: float

    def remaining(self, now: float) -> float:
        return self.expires_at - now


class SignedUrlCache:
    """Keyed cache + issuer for signed URLs.

    Built once at startup and shared by every consumer. Entries are
    replaced whole on re-issuance and never persisted. A failed issuance
    leaves no entry behind, so the next caller simply retries.
    """

    def __init__(
        self,
        storage: ObjectStorage,
        *,
        safety_margin_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            storage: Object storage backend used for issuance.
            safety_margin_seconds: Entries closer than this to expiry are
                treated as expired.
            clock: Monotonic clock in seconds (injectable for tests).
        """
        self._storage = storage
        self._margin = safety_margin_seconds
        self._clock = clock
        self._entries: dict[str, SignedUrlCacheEntry] = {}
        self._in_flight: dict[str, tuple[asyncio.Task[str | None], int]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    def _fresh_entry(self, path: str, min_ttl_remaining: float | None = None) -> SignedUrlCacheEntry | None:
        entry = self._entries.get(path)
        if entry is None:
            return None
        remaining = entry.remaining(self._clock())
        if remaining <= self._margin:
            return None
        if min_ttl_remaining is not None and remaining < min_ttl_remaining:
            return None
        return entry

    def peek_cached(self, path: str) -> str | None:
        """Return a still-valid cached URL without ever issuing one."""
        if not path:
            return None
        entry = self._fresh_entry(path)
        return entry.url if entry else None

    def get_entry(self, path: str) -> SignedUrlCacheEntry | None:
        """Return the raw entry for path, fresh or not."""
        return self._entries.get(path)

    async def get_or_issue(
        self,
        path: str,
        ttl_seconds: int,
        *,
        min_ttl_remaining: float | None = None,
    ) -> str | None:
        """Return a valid access URL for path, issuing one if needed.

        Args:
            path: Canonical storage path.
            ttl_seconds: Lifetime to request if a new URL is issued.
            min_ttl_remaining: If set, a cached URL is only reused when it
                has at least this many seconds left. This also applies
                to a joined in-flight issuance that asked for less.

        Returns:
            The access URL, or None if issuance failed.
        """
        if not path or not path.strip():
            logger.warning("Empty path provided for signed URL issuance")
            return None

        entry = self._fresh_entry(path, min_ttl_remaining)
        if entry is not None:
            return entry.url

        while True:
            # Check-then-insert happens with no await in between.
            in_flight = self._in_flight.get(path)
            joined = in_flight is not None
            if in_flight is None:
                task = asyncio.ensure_future(self._issue(path, ttl_seconds))
                self._in_flight[path] = (task, ttl_seconds)
            else:
                task, in_flight_ttl = in_flight
                logger.debug("Joining in-flight issuance for %s (ttl=%ss)", path, in_flight_ttl)

            # Shield so a cancelled caller does not cancel the shared call.
            url = await asyncio.shield(task)
            if not joined or url is None or min_ttl_remaining is None:
                return url

            # A shared issuance may have asked for a shorter lifetime.
            entry = self._fresh_entry(path, min_ttl_remaining)
            if entry is not None:
                return entry.url

    async def _issue(self, path: str, ttl_seconds: int) -> str | None:
        started_at = self._clock()
        try:
            url = await self._storage.issue_signed_url(path, ttl_seconds)
        except StorageError as e:
            logger.error("Failed to issue signed URL for %s: %s", path, e)
            return None
        except Exception:
            logger.exception("Unexpected error issuing signed URL for %s", path)
            return None
        finally:
            self._in_flight.pop(path, None)

        if not url:
            logger.error("No signed URL returned for %s", path)
            return None

        self._entries[path] = SignedUrlCacheEntry(
            path=path,
            url=url,
            expires_at=started_at + ttl_seconds,
        )
        logger.info("Issued signed URL for %s (ttl=%ss)", path, ttl_seconds)
        return url

    def invalidate(self, path: str) -> None:
        """Drop the cached entry for path, if any."""
        self._entries.pop(path, None)

    def purge_expired(self) -> int:
        """Remove entries past expiry. Returns the number removed."""
        now = self._clock()
        expired = [p for p, e in self._entries.items() if e.remaining(now) <= 0]
        for p in expired:
            del self._entries[p]
        return len(expired)

    def clear(self) -> None:
        """Clear all cached entries (useful for testing)."""
        self._entries.clear()
