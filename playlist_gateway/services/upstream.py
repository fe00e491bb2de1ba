"""
Upstream metadata API client.
Fetches region catalogs and per-channel stream metadata.
"""
import asyncio
import logging
from typing import Optional

import httpx
from pydantic import ValidationError as SchemaError

from playlist_gateway.config import Settings, get_settings
from playlist_gateway.errors import ChannelFetchError, UpstreamError
from playlist_gateway.models.playlist import Catalog, ChannelMeta, Region

logger = logging.getLogger(__name__)


class UpstreamClient:
    """Client for the catalog/meta endpoints of the IPTV metadata API."""

    def __init__(self, http: httpx.AsyncClient, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.http = http
        self.base_url = self.settings.upstream_base_url.rstrip("/")
        self.retries = self.settings.channel_fetch_retries
        self.retry_backoff = self.settings.channel_retry_backoff_seconds

    def catalog_url(self, api_key: str, region: Region) -> str:
        return f"{self.base_url}/{api_key}/catalog/tv/{region.value}.json"

    def meta_url(self, api_key: str, channel_id: str) -> str:
        return f"{self.base_url}/{api_key}/meta/tv/{channel_id}"

    async def fetch_catalog(self, api_key: str, region: Region) -> Catalog:
        """
        Fetch the channel catalog for a region.

        Raises:
            UpstreamError: on a non-success status, a transport failure
                or an unreadable body.
        """
        try:
            response = await self.http.get(self.catalog_url(api_key, region))
        except httpx.HTTPError as e:
            raise UpstreamError(f"Failed to fetch catalog for {region.value}: {e}") from e

        if not response.is_success:
            raise UpstreamError(
                f"Failed to fetch catalog for {region.value}",
                status_code=response.status_code,
                body=response.text,
            )

        try:
            catalog = Catalog.model_validate(response.json())
        except (ValueError, SchemaError) as e:
            raise UpstreamError(f"Invalid catalog for {region.value}: {e}") from e

        logger.info(f"Fetched {len(catalog.metas)} channels for {region.value}")
        return catalog

    async def _fetch_meta_once(self, channel_id: str, api_key: str):
        """Single metadata request returning the decoded JSON body."""
        try:
            response = await self.http.get(self.meta_url(api_key, channel_id))
        except httpx.HTTPError as e:
            raise ChannelFetchError(str(e) or e.__class__.__name__) from e

        if not response.is_success:
            raise ChannelFetchError(f"HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            raise ChannelFetchError(f"Invalid JSON: {e}") from e

    def parse_meta(self, channel_id: str, payload) -> Optional[ChannelMeta]:
        """Parse a meta response; incomplete payloads are logged and skipped."""
        if not isinstance(payload, dict) or not isinstance(payload.get("meta"), dict):
            logger.warning(f"Channel {channel_id} skipped: response has no meta object")
            return None

        try:
            return ChannelMeta.model_validate(payload["meta"])
        except SchemaError as e:
            logger.warning(f"Channel {channel_id} skipped: invalid meta: {e}")
            return None

    async def fetch_channel_meta(
        self,
        channel_id: str,
        api_key: str,
        retries: Optional[int] = None,
    ) -> Optional[ChannelMeta]:
        """
        Fetch metadata for one channel, retrying with linear backoff.

        Only transport errors, non-success statuses and undecodable bodies
        are retried. Waits ``retry_backoff * attempt`` seconds after each
        failed attempt except the last one.

        Returns:
            The channel metadata, or None if the response was incomplete or
            all attempts have failed.
        """
        retries = self.retries if retries is None else retries

        for attempt in range(1, retries + 1):
            try:
                payload = await self._fetch_meta_once(channel_id, api_key)
            except ChannelFetchError as e:
                logger.warning(
                    f"Channel {channel_id} fetch failed (attempt {attempt}/{retries}): {e}"
                )
                if attempt < retries:
                    await asyncio.sleep(self.retry_backoff * attempt)
                continue
            return self.parse_meta(channel_id, payload)

        logger.error(f"Channel {channel_id} skipped after {retries} failed attempts")
        return None
