"""Locally-scoped temporary URLs for transcoded media.

A temporary URL points at a file this process wrote; revoking it deletes
the file. Each URL is owned by exactly one media loader.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class TemporaryUrlRegistry:
    """Creates and revokes file:// URLs backed by temporary files."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base = Path(base_dir)
        self._base.mkdir(parents=True, exist_ok=True)
        self._active: dict[str, Path] = {}

    @property
    def active_count(self) -> int:
        return len(self._active)

    def create(self, data: bytes, *, suffix: str = "") -> str:
        """Write data to a new temporary file and return its URL."""
        fd, tmp_path = tempfile.mkstemp(prefix="formvault_", suffix=suffix, dir=self._base)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        path = Path(tmp_path)
        url = path.resolve().as_uri()
        self._active[url] = path
        return url

    def is_active(self, url: str) -> bool:
        return url in self._active

    def revoke(self, url: str) -> bool:
        """Release a temporary URL.

        Returns:
            True if the URL was active and is now released, False if it was
            unknown or already revoked.
        """
        path = self._active.pop(url, None)
        if path is None:
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        return True

    def revoke_all(self) -> int:
        """Release every active URL (on shutdown)."""
        urls = list(self._active)
        for url in urls:
            self.revoke(url)
        if urls:
            logger.info("Released %d temporary media URLs", len(urls))
        return len(urls)
