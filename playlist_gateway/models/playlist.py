"""
Playlist data models.
Maps to the upstream catalog/meta API schema and the in-memory cache.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Region(str, Enum):
    """Regions served by the upstream catalog API."""
    USA = "usa"
    CA = "ca"
    MX = "mx"
    UK = "uk"
    AU = "au"
    CL = "cl"
    FR = "fr"
    IT = "it"
    ZA = "za"
    NZ = "nz"
    EE = "ee"

    @classmethod
    def values(cls) -> list[str]:
        return [region.value for region in cls]


DEFAULT_REGION = Region.USA
PREFERRED_REGION = Region.USA


class PlaylistMode(str, Enum):
    """How a cached playlist was built."""
    PLAIN = "plain"
    SPORTS = "sports"
    MULTI_SPORTS = "multi_sports"


class CatalogItem(BaseModel):
    """Channel stub listed in a region catalog."""
    model_config = ConfigDict(extra="ignore")

    id: str


class Catalog(BaseModel):
    """Region catalog matching {base}/{apikey}/catalog/tv/{region}.json."""
    model_config = ConfigDict(extra="ignore")

    metas: list[CatalogItem] = Field(default_factory=list)


class StreamSource(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    url: Optional[str] = None


class ChannelMeta(BaseModel):
    """Channel metadata matching {base}/{apikey}/meta/tv/{channelId}."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)

    tvg_id: Optional[str] = Field(None, alias="tvgId")
    name: Optional[str] = None
    logo: Optional[str] = None
    genres: list[str] = Field(default_factory=list)
    streams: list[StreamSource] = Field(default_factory=list)

    @field_validator("genres", "streams", mode="before")
    @classmethod
    def null_to_empty(cls, value):
        return [] if value is None else value

    @property
    def primary_genre(self) -> str:
        return self.genres[0] if self.genres else ""

    @property
    def stream_url(self) -> Optional[str]:
        """URL of the first stream; the remaining candidates are ignored."""
        if not self.streams:
            return None
        return self.streams[0].url or None


@dataclass(frozen=True)
class PlaylistKey:
    """Cache key identifying one playlist variant."""
    api_key: str
    mode: PlaylistMode
    regions: tuple[Region, ...]

    @classmethod
    def plain(cls, api_key: str, region: Region) -> "PlaylistKey":
        return cls(api_key, PlaylistMode.PLAIN, (region,))

    @classmethod
    def for_sports(cls, api_key: str, regions: list[Region]) -> "PlaylistKey":
        mode = PlaylistMode.SPORTS if len(regions) == 1 else PlaylistMode.MULTI_SPORTS
        return cls(api_key, mode, tuple(regions))

    @property
    def label(self) -> str:
        """Log-friendly description; the API key is never included."""
        return f"{self.mode.value}:{','.join(r.value for r in self.regions)}"


@dataclass
class CacheEntry:
    """Rendered playlist text and its creation time (epoch seconds)."""
    text: str
    timestamp: float


@dataclass
class PlaylistEntry:
    """One rendered #EXTINF/URL pair."""
    tvg_id: str
    logo: str
    group: str
    name: str
    url: str
