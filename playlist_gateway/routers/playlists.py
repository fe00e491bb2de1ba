"""
Playlist API endpoints.
Serve cached extended M3U playlists, rebuilding them on demand.
"""
from typing import Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import PlainTextResponse

from playlist_gateway.errors import BuildFailure, ValidationError
from playlist_gateway.models.playlist import DEFAULT_REGION, PlaylistKey, Region
from playlist_gateway.rate_limit import limiter, playlist_rate_limit
from playlist_gateway.services.playlist_service import PlaylistService

router = APIRouter(tags=["playlists"])

INVALID_PARAMS_MESSAGE = "Error: Missing or invalid parameters. Valid regions: {}"


def invalid_parameters() -> ValidationError:
    return ValidationError(INVALID_PARAMS_MESSAGE.format(", ".join(Region.values())))


def parse_region(value: Optional[str]) -> Region:
    """Parse a region name, ignoring case and surrounding whitespace."""
    try:
        return Region((value or "").strip().lower())
    except ValueError:
        raise invalid_parameters() from None


def parse_regions(value: Optional[str]) -> list[Region]:
    """
    Parse a comma separated region list.

    Unknown tokens and duplicates are dropped; an omitted list means the
    default region.
    """
    if value is None:
        return [DEFAULT_REGION]

    regions: list[Region] = []
    for token in value.split(","):
        try:
            region = parse_region(token)
        except ValidationError:
            continue
        if region not in regions:
            regions.append(region)

    if not regions:
        raise invalid_parameters()
    return regions


def get_playlist_service(request: Request) -> PlaylistService:
    return request.app.state.playlist_service


async def serve(service: PlaylistService, key: PlaylistKey, refresh: Optional[str]) -> PlainTextResponse:
    text = await service.get_playlist(key, force=refresh is not None)
    if text is None:
        raise BuildFailure("Unable to generate playlist")
    return PlainTextResponse(text)


@router.get("/playlist", response_class=PlainTextResponse)
@limiter.limit(playlist_rate_limit)
async def get_playlist(
    request: Request,
    apikey: Optional[str] = Query(None, description="Upstream API key"),
    region: Optional[str] = Query(None, description=f"One of: {', '.join(Region.values())}"),
    refresh: Optional[str] = Query(None, description="Any value forces a rebuild"),
):
    """
    Get the playlist for one region.
    """
    if not apikey:
        raise invalid_parameters()
    key = PlaylistKey.plain(apikey, parse_region(region))
    return await serve(get_playlist_service(request), key, refresh)


@router.get("/sports-playlist", response_class=PlainTextResponse)
@limiter.limit(playlist_rate_limit)
async def get_sports_playlist(
    request: Request,
    apikey: Optional[str] = Query(None, description="Upstream API key"),
    regions: Optional[str] = Query(None, description="Comma separated regions (default: usa)"),
    refresh: Optional[str] = Query(None, description="Any value forces a rebuild"),
):
    """
    Get the sports-only playlist for one or more regions.

    With several regions, channels are merged and deduplicated and each name
    is suffixed with its source region.
    """
    if not apikey:
        raise invalid_parameters()
    key = PlaylistKey.for_sports(apikey, parse_regions(regions))
    return await serve(get_playlist_service(request), key, refresh)
