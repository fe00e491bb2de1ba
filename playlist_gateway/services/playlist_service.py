"""
Playlist service.
Builds playlists for cache keys and stores successful builds.
"""
import logging
from typing import Optional

from playlist_gateway.config import Settings, get_settings
from playlist_gateway.errors import UpstreamError
from playlist_gateway.models.playlist import PlaylistKey, PlaylistMode
from playlist_gateway.services.cache import PlaylistCache
from playlist_gateway.services.playlist_builder import PlaylistBuilder

logger = logging.getLogger(__name__)


class PlaylistService:
    """Fetch-and-cache unit shared by the HTTP routes and the daily refresh."""

    def __init__(
        self,
        cache: PlaylistCache,
        builder: PlaylistBuilder,
        settings: Optional[Settings] = None,
    ):
        self.cache = cache
        self.builder = builder
        self.settings = settings or get_settings()

    async def build(self, key: PlaylistKey) -> Optional[str]:
        """Build the playlist text for a key. Returns None on failure."""
        upstream = self.builder.upstream
        try:
            if key.mode == PlaylistMode.MULTI_SPORTS:
                return await self.builder.build_multi_region_playlist(
                    key.api_key, list(key.regions), self.settings.sports_genre
                )

            region = key.regions[0]
            catalog = await upstream.fetch_catalog(key.api_key, region)
            genre = self.settings.sports_genre if key.mode == PlaylistMode.SPORTS else None
            return await self.builder.build_playlist(catalog, key.api_key, filter_genre=genre)
        except UpstreamError as e:
            logger.error(f"Error refreshing {key.label}: {e}")
            return None
        except Exception as e:
            logger.error(f"Unexpected error building {key.label}: {e}", exc_info=True)
            return None

    async def refresh(self, key: PlaylistKey) -> bool:
        """
        Rebuild a playlist and store it.

        A failed rebuild leaves any previously cached entry in place.
        """
        logger.info(f"Refreshing playlist for {key.label}...")
        text = await self.build(key)
        if text is None:
            logger.warning(f"Playlist for {key.label} was not updated")
            return False

        self.cache.put(key, text)
        logger.info(f"Playlist for {key.label} updated successfully.")
        return True

    async def get_playlist(self, key: PlaylistKey, force: bool = False) -> Optional[str]:
        """
        Serve a playlist from cache, rebuilding when missing, stale or forced.

        Returns:
            Playlist text, or None if nothing could be produced.
        """
        if not force:
            entry = self.cache.get_fresh(key)
            if entry is not None:
                return entry.text

        await self.refresh(key)
        entry = self.cache.get(key)
        return entry.text if entry is not None else None
