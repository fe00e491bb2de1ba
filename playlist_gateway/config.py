"""
Configuration management for the playlist gateway.
Uses pydantic-settings for environment variable loading.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # API Configuration
    app_name: str = "IPTV Playlist Gateway"
    app_version: str = "1.0.0"
    debug: bool = False
    
    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 9697
    
    # CORS Configuration
    cors_origins: list[str] = ["*"]
    
    # Rate Limiting
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 100
    
    # Upstream metadata API
    upstream_base_url: str = "https://tv-addon.debridio.com"
    upstream_timeout_seconds: float = 30.0
    channel_fetch_retries: int = 3
    channel_retry_backoff_seconds: float = 0.5  # multiplied by the attempt number
    
    # Cache Configuration
    cache_ttl_seconds: int = 24 * 60 * 60
    
    # Daily refresh (local wall-clock time)
    refresh_enabled: bool = True
    refresh_hour: int = 0
    refresh_minute: int = 0
    refresh_second: int = 5
    refresh_interval_hours: int = 24
    
    # Genre used by the sports playlists
    sports_genre: str = "Sports"
    
    # Logging
    log_file: str = "logs/server.log"
    log_level: str = "INFO"
    
    # Pydantic V2 configuration
    model_config = SettingsConfigDict(env_prefix="PLAYLIST_", env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
