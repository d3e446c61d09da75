"""
Tests for the acquisition chain and download resolvers.
"""
import asyncio

import httpx
import pytest

from services.content_download.acquisition import AcquisitionChain
from services.content_download.resolvers import (
    resolve_via_snaptik,
    resolve_via_ssst,
    resolve_via_tikwm,
)
from shared.errors import AcquisitionError

SOURCE_URL = "https://www.tiktok.com/@creator/video/111"
MEDIA_URL = "https://cdn.example.com/video.mp4"


def media_transport(body: bytes, status_code: int = 200) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == MEDIA_URL
        return httpx.Response(status_code, content=body)
    return httpx.MockTransport(handler)


class RecordingResolver:
    def __init__(self, name, result=None, error=None):
        self.__name__ = name
        self.result = result
        self.error = error
        self.calls = []

    async def __call__(self, source_url):
        self.calls.append(source_url)
        if self.error:
            raise self.error
        return self.result


def run_acquire(tmp_path, resolvers, body=b"x" * 5000, status_code=200):
    async def scenario():
        async with httpx.AsyncClient(transport=media_transport(body, status_code)) as client:
            chain = AcquisitionChain(tmp_path, resolvers=resolvers, client=client)
            return await chain.acquire(SOURCE_URL, "111")
    return asyncio.run(scenario())


class TestAcquisitionChain:

    def test_first_failure_falls_through_and_later_resolvers_not_called(self, tmp_path):
        """The first resolver that yields a URL wins; later ones are never tried."""
        first = RecordingResolver("first", error=RuntimeError("service down"))
        second = RecordingResolver("second", result=MEDIA_URL)
        third = RecordingResolver("third", result="https://other.example.com/v.mp4")

        path = run_acquire(tmp_path, [first, second, third])

        assert first.calls == [SOURCE_URL]
        assert second.calls == [SOURCE_URL]
        assert third.calls == []
        assert path.exists()
        assert path.stat().st_size == 5000

    def test_empty_result_moves_to_next_resolver(self, tmp_path):
        """A resolver returning nothing counts as a miss."""
        empty = RecordingResolver("empty", result=None)
        working = RecordingResolver("working", result=MEDIA_URL)

        path = run_acquire(tmp_path, [empty, working])
        assert path.exists()
        assert working.calls == [SOURCE_URL]

    def test_filename_contains_item_id(self, tmp_path):
        path = run_acquire(tmp_path, [RecordingResolver("ok", result=MEDIA_URL)])
        assert path.parent == tmp_path
        assert path.name.startswith("video_111_")
        assert path.suffix == ".mp4"

    def test_all_resolvers_failing_raises(self, tmp_path):
        """Every resolver failing raises AcquisitionError."""
        resolvers = [
            RecordingResolver("a", error=RuntimeError("a down")),
            RecordingResolver("b", result=None),
            RecordingResolver("c", error=httpx.ConnectError("c down")),
        ]
        with pytest.raises(AcquisitionError, match="All download services failed"):
            run_acquire(tmp_path, resolvers)
        assert list(tmp_path.iterdir()) == []

    def test_too_small_file_raises_and_is_removed(self, tmp_path):
        """Downloads under the minimum size are discarded."""
        with pytest.raises(AcquisitionError, match="too small"):
            run_acquire(tmp_path, [RecordingResolver("ok", result=MEDIA_URL)], body=b"x" * 999)
        assert list(tmp_path.glob("*.mp4")) == []

    def test_download_http_error_raises_and_leaves_no_file(self, tmp_path):
        """A failed stream leaves no partial file behind."""
        with pytest.raises(AcquisitionError, match="Download failed"):
            run_acquire(tmp_path, [RecordingResolver("ok", result=MEDIA_URL)], status_code=403)
        assert list(tmp_path.glob("*.mp4")) == []


def resolve_with(resolver, handler):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await resolver(SOURCE_URL, client=client)
    return asyncio.run(scenario())


class TestResolvers:

    def test_tikwm_prefers_hd(self):
        """TikWM returns the HD link when present."""
        def handler(request):
            assert request.url.host == "www.tikwm.com"
            assert b"hd=1" in request.content
            return httpx.Response(200, json={"data": {"hdplay": "https://hd.example.com/v.mp4", "play": "https://sd.example.com/v.mp4"}})

        assert resolve_with(resolve_via_tikwm, handler) == "https://hd.example.com/v.mp4"

    def test_tikwm_skips_hd_with_error_marker(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"hdplay": "https://hd.example.com/error.mp4", "play": "https://sd.example.com/v.mp4"}})

        assert resolve_with(resolve_via_tikwm, handler) == "https://sd.example.com/v.mp4"

    def test_tikwm_relative_path_made_absolute(self):
        def handler(request):
            return httpx.Response(200, json={"data": {"play": "/video/media/play/111.mp4"}})

        assert resolve_with(resolve_via_tikwm, handler) == "https://www.tikwm.com/video/media/play/111.mp4"

    def test_tikwm_http_error_propagates(self):
        def handler(request):
            return httpx.Response(503)

        with pytest.raises(httpx.HTTPStatusError):
            resolve_with(resolve_via_tikwm, handler)

    def test_snaptik_extracts_first_mp4_link(self):
        """SnapTik picks the first .mp4 href from the page."""
        html = (
            '<a href="https://example.com/page">x</a>'
            '<a href="https://dl.snaptik.app/v.mp4?token=abc\\u0026dl=1">Download</a>'
        )

        def handler(request):
            return httpx.Response(200, text=html)

        assert resolve_with(resolve_via_snaptik, handler) == "https://dl.snaptik.app/v.mp4?token=abc&dl=1"

    def test_snaptik_without_link_returns_none(self):
        def handler(request):
            return httpx.Response(200, text="<html>nothing here</html>")

        assert resolve_with(resolve_via_snaptik, handler) is None

    def test_ssst_reads_nwm_url(self):
        def handler(request):
            assert request.url.host == "api.douyin.wtf"
            assert request.url.params["url"] == SOURCE_URL
            return httpx.Response(200, json={"nwm_video_url": MEDIA_URL})

        assert resolve_with(resolve_via_ssst, handler) == MEDIA_URL
