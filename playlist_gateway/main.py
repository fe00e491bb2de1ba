"""
IPTV Playlist Gateway - FastAPI Backend

Builds extended M3U playlists from the IPTV metadata API, caches them in
memory for 24 hours and refreshes them daily.
"""
import logging
from contextlib import asynccontextmanager
from datetime import time, timedelta
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from playlist_gateway.config import Settings, get_settings
from playlist_gateway.errors import BuildFailure, ValidationError
from playlist_gateway.logging_config import configure_logging
from playlist_gateway.rate_limit import limiter
from playlist_gateway.routers import playlists
from playlist_gateway.services.cache import PlaylistCache
from playlist_gateway.services.playlist_builder import PlaylistBuilder
from playlist_gateway.services.playlist_service import PlaylistService
from playlist_gateway.services.scheduler import RefreshScheduler
from playlist_gateway.services.upstream import UpstreamClient

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Create the application.

    The cache, upstream client and refresh scheduler are created in the
    lifespan and live on ``app.state`` until shutdown. ``transport`` replaces
    the network transport of the upstream HTTP client.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup and shutdown events."""
        configure_logging(settings)
        logger.info(f"Starting {settings.app_name} on port {settings.port}...")

        http = httpx.AsyncClient(timeout=settings.upstream_timeout_seconds, transport=transport)
        cache = PlaylistCache(settings.cache_ttl_seconds)
        upstream = UpstreamClient(http, settings)
        service = PlaylistService(cache, PlaylistBuilder(upstream), settings)
        scheduler = RefreshScheduler(
            service,
            run_at=time(settings.refresh_hour, settings.refresh_minute, settings.refresh_second),
            interval=timedelta(hours=settings.refresh_interval_hours),
        )

        app.state.cache = cache
        app.state.playlist_service = service
        app.state.scheduler = scheduler

        if settings.refresh_enabled:
            scheduler.start()

        try:
            yield
        finally:
            logger.info("Shutting down playlist gateway...")
            await scheduler.stop()
            await http.aclose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Cached M3U playlists from the IPTV metadata API",
        lifespan=lifespan,
    )

    # Add rate limiter
    limiter.enabled = settings.rate_limit_enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(playlists.router)

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        return {
            "status": "healthy",
            "version": settings.app_version,
            "cached_playlists": len(request.app.state.cache),
            "scheduler": request.app.state.scheduler.get_stats(),
        }

    # Error handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return PlainTextResponse(str(exc), status_code=400)

    @app.exception_handler(BuildFailure)
    async def build_failure_handler(request: Request, exc: BuildFailure):
        return PlainTextResponse(str(exc), status_code=500)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return PlainTextResponse("Internal server error", status_code=500)

    return app


app = create_app()


def run():
    """Run the gateway with uvicorn."""
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "playlist_gateway.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
