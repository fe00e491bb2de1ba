"""
Playlist Builder Service.
Renders extended M3U playlists from upstream catalogs and channel metadata.
"""
import asyncio
import logging
from typing import Optional

from playlist_gateway.errors import UpstreamError
from playlist_gateway.models.playlist import (
    PREFERRED_REGION,
    Catalog,
    ChannelMeta,
    PlaylistEntry,
    Region,
)
from playlist_gateway.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)

M3U_HEADER = "#EXTM3U"


def render_entry(entry: PlaylistEntry) -> str:
    """Render one #EXTINF line followed by its stream URL."""
    return (
        f'#EXTINF:-1 tvg-id="{entry.tvg_id}" tvg-logo="{entry.logo}" '
        f'group-title="{entry.group}",{entry.name}\n{entry.url}'
    )


def render_playlist(entries: list[PlaylistEntry]) -> str:
    lines = [M3U_HEADER]
    lines.extend(render_entry(entry) for entry in entries)
    return "\n".join(lines)


def to_entry(meta: Optional[ChannelMeta], filter_genre: Optional[str] = None) -> Optional[PlaylistEntry]:
    """
    Convert channel metadata into a playlist entry.

    Returns None when the metadata is absent, has no usable stream, or its
    primary genre does not match ``filter_genre`` (case-insensitive).
    """
    if meta is None or not meta.stream_url:
        return None
    if filter_genre and meta.primary_genre.lower() != filter_genre.lower():
        return None
    return PlaylistEntry(
        tvg_id=meta.tvg_id or "",
        logo=meta.logo or "",
        group=meta.primary_genre,
        name=meta.name or "",
        url=meta.stream_url,
    )


class PlaylistBuilder:
    """Builds playlist text for one or several regions."""

    def __init__(self, upstream: UpstreamClient):
        self.upstream = upstream

    async def _fetch_one(self, channel_id: str, api_key: str) -> Optional[ChannelMeta]:
        try:
            return await self.upstream.fetch_channel_meta(channel_id, api_key)
        except Exception as e:
            logger.error(f"Unexpected error fetching channel {channel_id}: {e}")
            return None

    async def fetch_channels(self, catalog: Catalog, api_key: str) -> list[Optional[ChannelMeta]]:
        """Fetch metadata for every catalog channel concurrently, in catalog order."""
        return await asyncio.gather(
            *[self._fetch_one(item.id, api_key) for item in catalog.metas]
        )

    async def build_entries(
        self,
        catalog: Catalog,
        api_key: str,
        filter_genre: Optional[str] = None,
    ) -> list[tuple[str, PlaylistEntry]]:
        """Return (catalog id, entry) pairs for the channels that survive filtering."""
        results = await self.fetch_channels(catalog, api_key)
        entries = []
        for item, meta in zip(catalog.metas, results):
            entry = to_entry(meta, filter_genre)
            if entry is not None:
                entries.append((item.id, entry))
        return entries

    async def build_playlist(
        self,
        catalog: Catalog,
        api_key: str,
        filter_genre: Optional[str] = None,
    ) -> str:
        """Build a single-region playlist."""
        entries = await self.build_entries(catalog, api_key, filter_genre)
        logger.info(f"Built playlist with {len(entries)}/{len(catalog.metas)} channels")
        return render_playlist([entry for _, entry in entries])

    async def build_multi_region_playlist(
        self,
        api_key: str,
        regions: list[Region],
        genre_filter: Optional[str],
    ) -> Optional[str]:
        """
        Build one playlist merged from several regions.

        Regions are processed one after another. Channels are deduplicated by
        channel id: the first occurrence wins, except that entries from the
        preferred region always replace earlier ones. Display names get the
        source region appended.

        Returns:
            The playlist text, or None if no region catalog could be fetched.
        """
        merged: dict[str, PlaylistEntry] = {}
        fetched_regions = 0

        for region in regions:
            try:
                catalog = await self.upstream.fetch_catalog(api_key, region)
            except UpstreamError as e:
                logger.error(f"Skipping region {region.value}: {e}")
                continue

            fetched_regions += 1
            for channel_id, entry in await self.build_entries(catalog, api_key, genre_filter):
                key = entry.tvg_id or channel_id
                if key in merged and region != PREFERRED_REGION:
                    continue
                entry.name = f"{entry.name} ({region.value.upper()})"
                merged[key] = entry

        if not fetched_regions:
            return None

        logger.info(
            f"Built multi-region playlist with {len(merged)} channels "
            f"from {fetched_regions}/{len(regions)} regions"
        )
        return render_playlist(list(merged.values()))
