"""
Pytest configuration and fixtures for playlist gateway tests.
"""
import re
from collections import Counter

import httpx
import pytest
import pytest_asyncio

from playlist_gateway.config import Settings
from playlist_gateway.services.cache import PlaylistCache
from playlist_gateway.services.playlist_builder import PlaylistBuilder
from playlist_gateway.services.playlist_service import PlaylistService
from playlist_gateway.services.upstream import UpstreamClient

BASE_URL = "http://upstream.test"

CATALOG_PATH = re.compile(r"^/(?P<apikey>[^/]+)/catalog/tv/(?P<region>[^/]+)\.json$")
META_PATH = re.compile(r"^/(?P<apikey>[^/]+)/meta/tv/(?P<channel>[^/]+)$")


def make_meta(tvg_id, name, url="http://stream.test/{id}.m3u8", genres=("News",), logo=None):
    """Build an upstream meta payload."""
    return {
        "meta": {
            "tvgId": tvg_id,
            "name": name,
            "logo": logo or f"http://logo.test/{tvg_id}.png",
            "genres": list(genres),
            "streams": [{"url": url.format(id=tvg_id)}] if url else [],
        }
    }


class FakeUpstream:
    """
    In-process stand-in for the IPTV metadata API.

    ``catalogs`` maps region -> list of channel ids, or an int status code to
    fail with. ``metas`` maps channel id -> payload, an int status code, or
    an exception instance to raise.
    """

    def __init__(self):
        self.catalogs = {}
        self.metas = {}
        self.calls = Counter()

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def total_calls(self) -> int:
        return sum(self.calls.values())

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        match = CATALOG_PATH.match(path)
        if match:
            region = match.group("region")
            self.calls[("catalog", region)] += 1
            catalog = self.catalogs.get(region, 404)
            if isinstance(catalog, int):
                return httpx.Response(catalog, text="catalog unavailable")
            return httpx.Response(200, json={"metas": [{"id": cid} for cid in catalog]})

        match = META_PATH.match(path)
        if match:
            channel = match.group("channel")
            self.calls[("meta", channel)] += 1
            meta = self.metas.get(channel, 404)
            if isinstance(meta, Exception):
                raise meta
            if isinstance(meta, int):
                return httpx.Response(meta, text="meta unavailable")
            return httpx.Response(200, json=meta)

        return httpx.Response(404, text="not found")


@pytest.fixture
def settings():
    """Settings isolated from the environment: no log file, no timers, no waits."""
    return Settings(
        _env_file=None,
        upstream_base_url=BASE_URL,
        channel_retry_backoff_seconds=0,
        refresh_enabled=False,
        rate_limit_enabled=False,
        log_file="",
    )


@pytest.fixture
def fake_upstream():
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(fake_upstream):
    async with httpx.AsyncClient(transport=fake_upstream.transport) as client:
        yield client


@pytest.fixture
def upstream(http_client, settings):
    return UpstreamClient(http_client, settings)


@pytest.fixture
def builder(upstream):
    return PlaylistBuilder(upstream)


@pytest.fixture
def cache(settings):
    return PlaylistCache(settings.cache_ttl_seconds)


@pytest.fixture
def playlist_service(cache, builder, settings):
    return PlaylistService(cache, builder, settings)
