"""
Tests for the upstream metadata API client.
"""
import httpx
import pytest

from playlist_gateway.errors import UpstreamError
from playlist_gateway.models.playlist import Region
from conftest import make_meta


class TestFetchCatalog:
    """Catalog requests fail loudly."""

    @pytest.mark.asyncio
    async def test_fetch_catalog_returns_channel_ids_in_order(self, upstream, fake_upstream):
        fake_upstream.catalogs["usa"] = ["c2", "c1", "c3"]

        catalog = await upstream.fetch_catalog("key", Region.USA)

        assert [item.id for item in catalog.metas] == ["c2", "c1", "c3"]
        assert fake_upstream.calls[("catalog", "usa")] == 1

    @pytest.mark.asyncio
    async def test_fetch_catalog_error_carries_status_and_body(self, upstream, fake_upstream):
        fake_upstream.catalogs["uk"] = 503

        with pytest.raises(UpstreamError) as exc_info:
            await upstream.fetch_catalog("key", Region.UK)

        assert exc_info.value.status_code == 503
        assert exc_info.value.body == "catalog unavailable"
        assert "503" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_fetch_catalog_network_error_is_upstream_error(self, upstream, fake_upstream):
        def broken(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(broken)) as http:
            upstream.http = http
            with pytest.raises(UpstreamError):
                await upstream.fetch_catalog("key", Region.CA)


class TestFetchChannelMeta:
    """Channel requests retry with linear backoff and never raise."""

    @pytest.mark.asyncio
    async def test_returns_parsed_meta(self, upstream, fake_upstream):
        fake_upstream.metas["c1"] = make_meta("c1.us", "News1", genres=["News", "Local"])

        meta = await upstream.fetch_channel_meta("c1", "key")

        assert meta.tvg_id == "c1.us"
        assert meta.name == "News1"
        assert meta.primary_genre == "News"
        assert meta.stream_url == "http://stream.test/c1.us.m3u8"

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_none(self, upstream, fake_upstream):
        fake_upstream.metas["c2"] = 500

        meta = await upstream.fetch_channel_meta("c2", "key")

        assert meta is None
        assert fake_upstream.calls[("meta", "c2")] == 3

    @pytest.mark.asyncio
    async def test_network_failures_are_retried(self, upstream, fake_upstream):
        fake_upstream.metas["c3"] = httpx.ReadTimeout("timed out")

        assert await upstream.fetch_channel_meta("c3", "key", retries=2) is None
        assert fake_upstream.calls[("meta", "c3")] == 2

    @pytest.mark.asyncio
    async def test_recovers_on_later_attempt(self, upstream, fake_upstream):
        responses = [httpx.Response(502), httpx.Response(200, json=make_meta("c4", "Four"))]

        def flaky(request):
            return responses.pop(0)

        async with httpx.AsyncClient(transport=httpx.MockTransport(flaky)) as http:
            upstream.http = http
            meta = await upstream.fetch_channel_meta("c4", "key")

        assert meta is not None
        assert meta.name == "Four"
        assert responses == []

    @pytest.mark.asyncio
    async def test_backoff_waits_grow_linearly(self, upstream, fake_upstream, monkeypatch):
        fake_upstream.metas["c5"] = 500
        upstream.retry_backoff = 0.5
        waits = []

        async def fake_sleep(seconds):
            waits.append(seconds)

        monkeypatch.setattr("playlist_gateway.services.upstream.asyncio.sleep", fake_sleep)

        assert await upstream.fetch_channel_meta("c5", "key", retries=3) is None
        # No wait after the final attempt
        assert waits == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_response_without_meta_is_skipped_without_retry(self, upstream, fake_upstream):
        fake_upstream.metas["c6"] = {"unexpected": True}

        assert await upstream.fetch_channel_meta("c6", "key", retries=3) is None
        assert fake_upstream.calls[("meta", "c6")] == 1

    @pytest.mark.asyncio
    async def test_null_streams_are_not_retried(self, upstream, fake_upstream):
        fake_upstream.metas["c7"] = {"meta": {"tvgId": "c7", "name": "C", "streams": None}}

        meta = await upstream.fetch_channel_meta("c7", "key", retries=3)

        assert meta is not None
        assert meta.stream_url is None
        assert fake_upstream.calls[("meta", "c7")] == 1

    @pytest.mark.asyncio
    async def test_undecodable_body_is_retried(self, upstream, fake_upstream):
        requests = []

        def garbled(request):
            requests.append(request)
            return httpx.Response(200, text="<html>busy</html>")

        async with httpx.AsyncClient(transport=httpx.MockTransport(garbled)) as http:
            upstream.http = http
            assert await upstream.fetch_channel_meta("c8", "key", retries=2) is None

        assert len(requests) == 2
