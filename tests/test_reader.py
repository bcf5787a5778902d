"""Tests for the Jina reader page fetcher."""

import httpx
import pytest

from lorekeeper.protocols import FetchError, PageFetcher
from lorekeeper.reader import JINA_READER_BASE, JinaReader


def _reader(handler, **kwargs):
    return JinaReader(httpx.Client(transport=httpx.MockTransport(handler)), **kwargs)


class TestJinaReader:
    def test_fetch_returns_markdown(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["format"] = request.headers.get("X-Return-Format")
            return httpx.Response(200, text="# Tokio\nAn async runtime.")

        reader = _reader(handler)
        assert reader.fetch("https://tokio.rs/") == "# Tokio\nAn async runtime."
        assert seen["url"] == f"{JINA_READER_BASE}https://tokio.rs/"
        assert seen["format"] == "markdown"

    def test_output_is_bounded(self):
        reader = _reader(lambda request: httpx.Response(200, text="z" * 10_000), max_chars=6000)
        assert len(reader.fetch("https://example.com")) == 6000

    def test_http_error_gives_empty_string(self):
        reader = _reader(lambda request: httpx.Response(404))
        assert reader.fetch("https://example.com/missing") == ""
        with pytest.raises(FetchError, match="404"):
            reader.read("https://example.com/missing")

    def test_timeout_gives_empty_string(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        reader = _reader(handler)
        assert reader.fetch("https://example.com") == ""
        with pytest.raises(FetchError, match="Timed out"):
            reader.read("https://example.com")

    def test_connection_error_gives_empty_string(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert _reader(handler).fetch("https://example.com") == ""

    def test_satisfies_protocol(self):
        assert isinstance(_reader(lambda request: httpx.Response(200)), PageFetcher)
