"""Per-display-unit media loader.

State flow:

    IDLE -> RESOLVING -> AWAITING_LOAD | FETCHING_URL -> [TRANSCODING] -> READY | FAILED

Every attempt captures a generation number. teardown() and new inputs
advance the generation, so a late result from an older attempt is dropped
instead of committed. Network calls are never aborted, only ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from formvault.enums import LoaderState, MediaKind
from formvault.errors import (
    DownloadFailure,
    FormVaultError,
    IssuanceFailure,
    ResolutionFailure,
    TranscodeFailure,
)
from formvault.services.signed_url_cache import SignedUrlCache
from formvault.services.temp_urls import TemporaryUrlRegistry
from formvault.services.transcoder import ImageTranscoder
from formvault.storage.paths import DEFAULT_BUCKET, media_kind, parse_reference, requires_transcode

logger = logging.getLogger(__name__)


class MediaLoader:
    """Resolves a stored reference into a renderable URL.

    The load gate (`should_load`) keeps grids of thumbnails from issuing
    URLs for every file on render: while it is closed the loader performs
    no network activity. It defaults to closed.
    """

    def __init__(
        self,
        *,
        reference: str | None,
        file_name: str,
        cache: SignedUrlCache,
        transcoder: ImageTranscoder,
        temp_urls: TemporaryUrlRegistry,
        ttl_seconds: int = 3600,
        should_load: bool = False,
        content_type: str | None = None,
        bucket: str = DEFAULT_BUCKET,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.reference = reference
        self.file_name = file_name
        self.content_type = content_type
        self.should_load = should_load
        self._cache = cache
        self._transcoder = transcoder
        self._temp_urls = temp_urls
        self._ttl = ttl_seconds
        self._bucket = bucket
        self._http = http_client

        self.state = LoaderState.IDLE
        self.url: str | None = None
        self.path: str | None = None
        self.error: FormVaultError | None = None
        self._generation = 0
        self._temp_url: str | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def media_kind(self) -> MediaKind:
        return media_kind(self.file_name)

    @property
    def is_placeholder(self) -> bool:
        return self.state == LoaderState.AWAITING_LOAD

    @property
    def needs_transcode(self) -> bool:
        return requires_transcode(self.file_name, self.content_type)

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _fail(self, generation: int, error: FormVaultError) -> LoaderState:
        if self._is_stale(generation):
            return self.state
        logger.warning("Media unavailable (%s): %s", self.file_name, error)
        self.error = error
        self.url = None
        self.state = LoaderState.FAILED
        return self.state

    def _ready(self, generation: int, url: str) -> LoaderState:
        if self._is_stale(generation):
            return self.state
        self.url = url
        self.error = None
        self.state = LoaderState.READY
        return self.state

    async def load(self) -> LoaderState:
        """Run one load attempt for the current inputs.

        Returns:
            The state after the attempt (or the current state if the attempt
            went stale while awaiting).
        """
        self._release_temp_url()
        self._generation += 1
        generation = self._generation
        self.url = None
        self.error = None
        self.state = LoaderState.RESOLVING

        try:
            parsed = parse_reference(self.reference, bucket=self._bucket)
        except ResolutionFailure as e:
            return self._fail(generation, e)
        self.path = parsed.path

        # Public objects need no issuance.
        if parsed.is_public_url and not self.needs_transcode:
            return self._ready(generation, self.reference)

        cached = self._cache.peek_cached(parsed.path)
        if cached and not self.needs_transcode:
            return self._ready(generation, cached)

        if not self.should_load:
            self.state = LoaderState.AWAITING_LOAD
            return self.state

        self.state = LoaderState.FETCHING_URL
        if parsed.is_public_url:
            url = self.reference
        else:
            url = cached or await self._cache.get_or_issue(parsed.path, self._ttl)
        if self._is_stale(generation):
            return self.state
        if not url:
            return self._fail(generation, IssuanceFailure(parsed.path))

        if not self.needs_transcode:
            return self._ready(generation, url)

        self.state = LoaderState.TRANSCODING
        try:
            data = await self._download(url, parsed.path)
            if self._is_stale(generation):
                return self.state
            converted = await self._transcoder.transcode(data, source=parsed.path)
        except (DownloadFailure, TranscodeFailure) as e:
            return self._fail(generation, e)
        if self._is_stale(generation):
            return self.state

        self._temp_url = self._temp_urls.create(converted, suffix=self._transcoder.output_suffix)
        return self._ready(generation, self._temp_url)

    async def _download(self, url: str, path: str) -> bytes:
        try:
            if self._http is not None:
                response = await self._http.get(url)
                response.raise_for_status()
                return response.content
            async with httpx.AsyncClient() as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.content
        except httpx.HTTPError as e:
            raise DownloadFailure(path, str(e)) from e

    async def set_should_load(self, should_load: bool) -> LoaderState:
        """Open or close the load gate.

        Re-opening the gate starts a new attempt when the loader is waiting
        or has failed; closing it has no effect on a load already under way.
        """
        reopened = should_load and not self.should_load
        self.should_load = should_load
        if should_load and self.state == LoaderState.AWAITING_LOAD:
            return await self.load()
        if reopened and self.state == LoaderState.FAILED:
            return await self.load()
        return self.state

    async def update(
        self,
        *,
        reference: str | None = None,
        file_name: str | None = None,
        should_load: bool | None = None,
    ) -> LoaderState:
        """Apply new inputs, restarting the load when the reference changes."""
        changed = False
        if reference is not None and reference != self.reference:
            self.reference = reference
            changed = True
        if file_name is not None and file_name != self.file_name:
            self.file_name = file_name
            changed = True
        if changed:
            self.teardown()
            if should_load is not None:
                self.should_load = should_load
            return await self.load()
        if should_load is not None:
            return await self.set_should_load(should_load)
        return self.state

    def report_render_error(self) -> None:
        """The renderer could not display the URL (e.g. broken link)."""
        if self.state == LoaderState.READY:
            logger.error("Media failed to render from %s", self.path)
            self.state = LoaderState.FAILED

    def _release_temp_url(self) -> None:
        if self._temp_url is not None:
            self._temp_urls.revoke(self._temp_url)
            self._temp_url = None

    def teardown(self) -> None:
        """Unmount: drop pending work and release the temporary URL once."""
        self._generation += 1
        self._release_temp_url()
        self.url = None
        self.state = LoaderState.IDLE


@dataclass
class MediaLoaderFactory:
    """Builds loaders bound to the shared cache, transcoder and URL registry."""

    cache: SignedUrlCache
    transcoder: ImageTranscoder
    temp_urls: TemporaryUrlRegistry
    ttl_seconds: int = 3600
    bucket: str = DEFAULT_BUCKET
    http_client: httpx.AsyncClient | None = None

    def create(
        self,
        reference: str | None,
        file_name: str,
        *,
        should_load: bool = False,
        content_type: str | None = None,
    ) -> MediaLoader:
        return MediaLoader(
            reference=reference,
            file_name=file_name,
            cache=self.cache,
            transcoder=self.transcoder,
            temp_urls=self.temp_urls,
            ttl_seconds=self.ttl_seconds,
            should_load=should_load,
            content_type=content_type,
            bucket=self.bucket,
            http_client=self.http_client,
        )
