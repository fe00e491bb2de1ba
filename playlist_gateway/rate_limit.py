"""
Per-client rate limiting for the playlist endpoints.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from playlist_gateway.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def playlist_rate_limit() -> str:
    return f"{get_settings().rate_limit_per_minute}/minute"
