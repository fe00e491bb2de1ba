"""
In-memory playlist cache.
Entries live for the lifetime of the process and are checked for freshness
lazily on every read.
"""
import time
from typing import Optional

from playlist_gateway.config import get_settings
from playlist_gateway.models.playlist import CacheEntry, PlaylistKey


class PlaylistCache:
    """Mapping of PlaylistKey to rendered playlist text with a TTL check."""
    
    def __init__(self, ttl_seconds: Optional[int] = None):
        if ttl_seconds is None:
            ttl_seconds = get_settings().cache_ttl_seconds
        self.ttl_seconds = ttl_seconds
        self._entries: dict[PlaylistKey, CacheEntry] = {}
    
    def __len__(self) -> int:
        return len(self._entries)
    
    def __contains__(self, key: PlaylistKey) -> bool:
        return key in self._entries
    
    def get(self, key: PlaylistKey) -> Optional[CacheEntry]:
        return self._entries.get(key)
    
    def put(self, key: PlaylistKey, text: str, timestamp: Optional[float] = None) -> CacheEntry:
        """Store (or overwrite) the playlist for a key."""
        entry = CacheEntry(text=text, timestamp=time.time() if timestamp is None else timestamp)
        self._entries[key] = entry
        return entry
    
    def keys(self) -> list[PlaylistKey]:
        """Snapshot of the cached keys, safe to iterate while refreshing."""
        return list(self._entries)
    
    def is_fresh(self, entry: CacheEntry, now: Optional[float] = None) -> bool:
        now = time.time() if now is None else now
        return (now - entry.timestamp) < self.ttl_seconds
    
    def get_fresh(self, key: PlaylistKey, now: Optional[float] = None) -> Optional[CacheEntry]:
        """Get an entry only if it is still within the freshness window."""
        entry = self._entries.get(key)
        if entry is not None and self.is_fresh(entry, now):
            return entry
        return None
