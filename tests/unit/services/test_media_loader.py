"""Tests for the per-display-unit media loader state machine."""

import asyncio
import io
from pathlib import Path

import httpx
import pytest
from PIL import Image

from formvault.enums import LoaderState, MediaKind
from formvault.errors import DownloadFailure, IssuanceFailure, ResolutionFailure, TranscodeFailure
from formvault.services.media_loader import MediaLoaderFactory
from formvault.services.signed_url_cache import SignedUrlCache
from formvault.services.temp_urls import TemporaryUrlRegistry
from formvault.services.transcoder import ImageTranscoder
from tests.helpers import FakeClock, FakeStorage

HOST = "https://abc.supabase.co/storage/v1"


def _png_bytes() -> bytes:
    out = io.BytesIO()
    Image.new("RGBA", (8, 8), (255, 0, 0, 128)).save(out, format="PNG")
    return out.getvalue()


class RecordingTransport(httpx.AsyncBaseTransport):
    def __init__(self, body: bytes = b"", status: int = 200) -> None:
        self.body = body
        self.status = status
        self.requests: list[str] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        return httpx.Response(self.status, content=self.body)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport(_png_bytes())


@pytest.fixture
def temp_urls(tmp_path: Path) -> TemporaryUrlRegistry:
    return TemporaryUrlRegistry(tmp_path / "media")


@pytest.fixture
def cache(storage: FakeStorage, clock: FakeClock) -> SignedUrlCache:
    return SignedUrlCache(storage, safety_margin_seconds=60, clock=clock)


@pytest.fixture
def factory(cache, temp_urls, transport) -> MediaLoaderFactory:
    return MediaLoaderFactory(
        cache=cache,
        transcoder=ImageTranscoder(quality=80),
        temp_urls=temp_urls,
        ttl_seconds=3600,
        http_client=httpx.AsyncClient(transport=transport),
    )


class TestLoadGate:
    async def test_closed_gate_makes_no_calls(self, factory, storage):
        loader = factory.create("acme/u1/s1/photo.png", "photo.png")

        state = await loader.load()

        assert state == LoaderState.AWAITING_LOAD
        assert loader.is_placeholder
        assert loader.url is None
        assert storage.sign_calls == []

    async def test_opening_gate_issues_exactly_once(self, factory, storage):
        loader = factory.create("acme/u1/s1/photo.png", "photo.png")
        await loader.load()

        state = await loader.set_should_load(True)

        assert state == LoaderState.READY
        assert loader.url and "token=" in loader.url
        assert storage.sign_calls == [("acme/u1/s1/photo.png", 3600)]

        # Closing and reopening a ready loader does not issue again.
        await loader.set_should_load(False)
        await loader.set_should_load(True)
        assert len(storage.sign_calls) == 1

    async def test_reopening_gate_retries_failed_load(self, factory, storage):
        storage.fail_sign.add("acme/a.png")
        loader = factory.create("acme/a.png", "a.png", should_load=True)
        assert await loader.load() == LoaderState.FAILED

        storage.fail_sign.clear()
        await loader.set_should_load(False)
        assert loader.state == LoaderState.FAILED

        assert await loader.set_should_load(True) == LoaderState.READY
        assert len(storage.sign_calls) == 2
        assert loader.error is None

    async def test_gate_left_open_does_not_retry_failed_load(self, factory, storage):
        storage.fail_sign.add("acme/a.png")
        loader = factory.create("acme/a.png", "a.png", should_load=True)
        await loader.load()

        assert await loader.set_should_load(True) == LoaderState.FAILED
        assert len(storage.sign_calls) == 1

    async def test_cached_url_is_used_while_gate_closed(self, factory, cache, storage):
        cached = await cache.get_or_issue("acme/u1/s1/photo.png", 3600)
        loader = factory.create("acme/u1/s1/photo.png", "photo.png")

        assert await loader.load() == LoaderState.READY
        assert loader.url == cached
        assert len(storage.sign_calls) == 1

    async def test_grid_of_loaders_shares_issuance(self, factory, storage):
        storage.sign_delay = 0.01
        loaders = [factory.create("acme/u1/s1/photo.png", "photo.png", should_load=True) for _ in range(6)]

        states = await asyncio.gather(*[loader.load() for loader in loaders])

        assert set(states) == {LoaderState.READY}
        assert len(storage.sign_calls) == 1


class TestResolution:
    async def test_public_url_needs_no_issuance(self, factory, storage):
        ref = f"{HOST}/object/public/forms/acme/u1/s1/clip.mp4"
        loader = factory.create(ref, "clip.mp4")

        assert await loader.load() == LoaderState.READY
        assert loader.url == ref
        assert loader.media_kind == MediaKind.VIDEO
        assert storage.sign_calls == []

    async def test_historical_signed_url_is_reissued_by_path(self, factory, storage):
        ref = f"{HOST}/object/sign/forms/acme/u1/s1/a.png?token=expired"
        loader = factory.create(ref, "a.png", should_load=True)

        assert await loader.load() == LoaderState.READY
        assert loader.path == "acme/u1/s1/a.png"
        assert storage.sign_calls == [("acme/u1/s1/a.png", 3600)]

    async def test_unresolvable_reference_fails_without_calls(self, factory, storage):
        loader = factory.create("https://example.com/elsewhere/a.png", "a.png", should_load=True)

        assert await loader.load() == LoaderState.FAILED
        assert isinstance(loader.error, ResolutionFailure)
        assert storage.sign_calls == []

    async def test_missing_reference_fails(self, factory):
        loader = factory.create(None, "unknown", should_load=True)
        assert await loader.load() == LoaderState.FAILED

    async def test_issuance_failure(self, factory, storage):
        storage.fail_sign.add("acme/a.png")
        loader = factory.create("acme/a.png", "a.png", should_load=True)

        assert await loader.load() == LoaderState.FAILED
        assert isinstance(loader.error, IssuanceFailure)
        assert loader.url is None


class TestTranscoding:
    async def test_heic_is_converted_to_temporary_url(self, factory, temp_urls, transport):
        loader = factory.create("acme/u1/s1/IMG_0001.HEIC", "IMG_0001.HEIC", should_load=True)

        assert await loader.load() == LoaderState.READY
        assert loader.url.startswith("file://")
        assert loader.url.endswith(".jpg")
        assert temp_urls.is_active(loader.url)
        assert len(transport.requests) == 1

    async def test_teardown_releases_temporary_url_once(self, factory, temp_urls):
        loader = factory.create("acme/IMG.heic", "IMG.heic", should_load=True)
        await loader.load()
        url = loader.url

        loader.teardown()
        loader.teardown()

        assert not temp_urls.is_active(url)
        assert temp_urls.active_count == 0
        assert loader.state == LoaderState.IDLE

    async def test_reload_replaces_previous_temporary_url(self, factory, temp_urls):
        loader = factory.create("acme/IMG.heic", "IMG.heic", should_load=True)
        await loader.load()
        first = loader.url

        await loader.update(reference="acme/IMG2.heic", file_name="IMG2.heic")

        assert loader.url != first
        assert not temp_urls.is_active(first)
        assert temp_urls.active_count == 1

    async def test_download_failure(self, factory, transport):
        transport.status = 403
        loader = factory.create("acme/IMG.heic", "IMG.heic", should_load=True)

        assert await loader.load() == LoaderState.FAILED
        assert isinstance(loader.error, DownloadFailure)

    async def test_undecodable_bytes_fail_transcode(self, factory, transport, temp_urls):
        transport.body = b"not an image"
        loader = factory.create("acme/IMG.heic", "IMG.heic", should_load=True)

        assert await loader.load() == LoaderState.FAILED
        assert isinstance(loader.error, TranscodeFailure)
        assert temp_urls.active_count == 0


class TestStaleness:
    async def test_teardown_during_issuance_discards_result(self, factory, storage):
        storage.sign_delay = 0.02
        loader = factory.create("acme/a.png", "a.png", should_load=True)

        pending = asyncio.ensure_future(loader.load())
        await asyncio.sleep(0)
        loader.teardown()
        await pending

        assert loader.state == LoaderState.IDLE
        assert loader.url is None

    async def test_newer_reference_wins(self, factory, storage):
        storage.sign_delay = 0.02
        loader = factory.create("acme/old.png", "old.png", should_load=True)

        pending = asyncio.ensure_future(loader.load())
        await asyncio.sleep(0)
        await loader.update(reference="acme/new.png", file_name="new.png")
        await pending

        assert loader.state == LoaderState.READY
        assert loader.path == "acme/new.png"
        assert "acme/new.png" in loader.url

    async def test_teardown_before_transcode_creates_no_temporary_url(self, factory, temp_urls):
        loader = factory.create("acme/IMG.heic", "IMG.heic", should_load=True)

        pending = asyncio.ensure_future(loader.load())
        await asyncio.sleep(0)
        loader.teardown()
        await pending

        assert loader.url is None
        assert temp_urls.active_count == 0


class TestRenderError:
    async def test_render_error_moves_ready_to_failed(self, factory):
        loader = factory.create("acme/a.png", "a.png", should_load=True)
        await loader.load()

        loader.report_render_error()

        assert loader.state == LoaderState.FAILED

    async def test_render_error_ignored_when_not_ready(self, factory):
        loader = factory.create("acme/a.png", "a.png")
        await loader.load()

        loader.report_render_error()

        assert loader.state == LoaderState.AWAITING_LOAD
