"""
FastAPI Application Entry Point

This module builds the FastAPI application and runs it:
- create_app(): wires settings, store, generator and geolocator into an app
  with routes, middleware (CORS, logging) and the per-client rate limit
- main(): resolves settings from environment and flags, opens the store,
  and serves the app with uvicorn

Design Decisions:
- Every component receives the same frozen Settings at construction
- The store backend is chosen once here; endpoints only see URLStore
- uvicorn handles SIGINT/SIGTERM and shuts the app down gracefully
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional, Sequence

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shorturl import __version__
from shorturl.api import endpoints
from shorturl.core.exceptions import StorageError
from shorturl.core.logging_config import setup_logging
from shorturl.core.rate_limit import build_limiter, parse_rate_limit
from shorturl.core.setting import Settings, load_settings
from shorturl.middleware.cors import add_cors_middleware, add_options_middleware
from shorturl.middleware.logging import add_logging_middleware
from shorturl.services.geolocation import GeoLocator
from shorturl.services.shortcode import ShortCodeGenerator
from shorturl.services.url_store import URLStore, create_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Release the store and the geolocation client on shutdown."""
    yield
    logger.info("Shutting down server...")
    app.state.geolocator.close()
    app.state.store.close()


def create_app(
    settings: Settings,
    store: URLStore,
    code_generator: Optional[ShortCodeGenerator] = None,
    geolocator: Optional[GeoLocator] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Frozen application settings
        store: URL store shared by every request
        code_generator: Short code generator (random by default)
        geolocator: Geolocation resolver (built from settings by default)

    Raises:
        ValueError: If settings or store is missing
    """
    if settings is None:
        raise ValueError("settings are required")
    if store is None:
        raise ValueError("store is required")

    app = FastAPI(
        title="URL Shortener Service",
        description="Short random aliases with per-alias access statistics",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.code_generator = code_generator or ShortCodeGenerator()
    app.state.geolocator = geolocator or GeoLocator.from_settings(settings)

    app.state.limiter = build_limiter(settings)
    app.state.rate_limits = parse_rate_limit(settings.RATE_LIMIT)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Last added runs first: CORS -> logging -> bare OPTIONS -> route
    add_options_middleware(app)
    add_logging_middleware(app)
    add_cors_middleware(app)

    app.include_router(endpoints.admin_router, tags=["Admin"])
    # Catch-all redirect route, must come last
    app.include_router(endpoints.public_router, tags=["URL Shortener"])

    return app


def app_from_env() -> FastAPI:
    """App factory for `uvicorn shorturl.main:app_from_env --factory`."""
    settings = Settings()
    setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)
    return create_app(settings, create_store(settings))


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Run the service until interrupted."""
    try:
        settings = load_settings(argv)
    except ValidationError as e:
        setup_logging().error(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    try:
        store = create_store(settings)
    except StorageError as e:
        logger.error(f"Failed to initialize store: {e}")
        sys.exit(1)

    app = create_app(settings, store)

    logger.info(
        f"Starting server on host:{settings.bind_host} port:{settings.PORT} "
        f"store:{settings.STORE_BACKEND.value}..."
    )
    uvicorn.run(app, host=settings.bind_host, port=settings.PORT, log_config=None)
    logger.info("Server stopped")


if __name__ == "__main__":
    main()
