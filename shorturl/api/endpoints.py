"""
FastAPI Endpoints for URL Shortener Service

This module defines all HTTP endpoints with minimal logic.
Endpoints only handle:
- Reading query/body parameters
- Translating store errors into HTTP status codes
- Logging each outcome with the alias involved

All storage logic is in the URL store.

Design Principles:
- Endpoints accept any method reaching them (GET, POST, PUT, PATCH, DELETE, HEAD);
  OPTIONS is answered by middleware before routing
- Every router charges the per-client rate limit
- Administrative endpoints sit on admin_router, gated by verify_token
- Handlers are plain functions, so each request runs on a worker thread
  against the shared store
- 500 responses carry a generic message; the cause only goes to the log
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse, RedirectResponse, Response
from starlette.concurrency import run_in_threadpool

from shorturl.api.dependencies import (
    get_code_generator,
    get_geolocator,
    get_settings,
    get_store,
    verify_token,
)
from shorturl.api.schemas import (
    HealthResponse,
    MessageResponse,
    ShortenResponse,
    StatsResponse,
    UpdateResponse,
)
from shorturl.core.exceptions import (
    ImportParseError,
    RandomSourceError,
    SerializationError,
    ShortCodeNotFoundError,
    StorageError,
)
from shorturl.core.rate_limit import enforce_rate_limit, get_client_ip
from shorturl.core.setting import Settings
from shorturl.services.geolocation import GeoLocator
from shorturl.services.shortcode import ShortCodeGenerator
from shorturl.services.url_store import URLStore

logger = logging.getLogger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]

# Codes that would be shadowed by a fixed route
RESERVED_CODES = frozenset({
    "shorten", "stats", "update", "flush", "backup", "import", "health", "docs", "redoc",
})

NOT_FOUND = "Short URL not found"

admin_router = APIRouter(dependencies=[Depends(enforce_rate_limit), Depends(verify_token)])
public_router = APIRouter(dependencies=[Depends(enforce_rate_limit)])


def draw_short_code(store: URLStore, generator: ShortCodeGenerator, max_retries: int) -> str:
    """
    Generate a short code, drawing again while the code is already taken.

    After max_retries extra draws the last code is returned even if taken;
    saving it then overwrites the existing alias.

    Raises:
        RandomSourceError: If the entropy source is unavailable
    """
    code = generator.generate()
    for _ in range(max_retries):
        if code not in RESERVED_CODES and not store.get(code)[1]:
            break
        logger.info(f"Short code collision on {code}, drawing again")
        code = generator.generate()
    return code


@admin_router.api_route(
    "/shorten",
    methods=ALL_METHODS,
    response_model=ShortenResponse,
    summary="Create a short URL",
    description="Takes the `url` query parameter and returns a short URL for it"
)
def shorten_url(
    url: Optional[str] = None,
    store: URLStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
    generator: ShortCodeGenerator = Depends(get_code_generator),
) -> ShortenResponse:
    """
    Create a new short URL.

    Raises:
        HTTPException 400: If the url parameter is missing
        HTTPException 500: If no code can be generated or saved
    """
    if not url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="URL parameter is missing"
        )

    try:
        short_code = draw_short_code(store, generator, settings.SHORT_CODE_MAX_RETRIES)
        store.save(short_code, url)
    except RandomSourceError:
        logger.error("Failed to generate short URL", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate short URL"
        )
    except StorageError:
        logger.error(f"Failed to save short URL for {url}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate short URL"
        )

    logger.info(f"URL shortened: original_url={url} short_url={short_code}")
    return ShortenResponse(short_url=f"{settings.short_url_base()}/{short_code}")


@admin_router.api_route(
    "/stats",
    methods=ALL_METHODS,
    response_model=StatsResponse,
    summary="Get URL statistics",
    description="Returns count, last IPs, referrers and last geolocation for `short_url`"
)
def get_url_stats(
    short_url: Optional[str] = None,
    store: URLStore = Depends(get_store),
) -> Response:
    """
    Get statistics for a short URL.

    Raises:
        HTTPException 404: If the short code is unknown
        HTTPException 500: If the statistics cannot be read or encoded
    """
    alias = short_url or ""
    try:
        stats_json, found = store.get_stats(alias)
    except (SerializationError, StorageError):
        logger.error(f"Failed to marshal stats for {alias}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to marshal stats"
        )

    if not found:
        logger.warning(f"Short URL not found for stats: {alias}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)

    logger.info(f"Retrieved stats for URL {alias}")
    return Response(content=stats_json, media_type="application/json")


@admin_router.api_route(
    "/update",
    methods=ALL_METHODS,
    response_model=UpdateResponse,
    summary="Change the target of a short URL",
    description="Points `short_url` at `new_url`; statistics are kept"
)
def update_url(
    short_url: Optional[str] = None,
    new_url: Optional[str] = None,
    store: URLStore = Depends(get_store),
) -> UpdateResponse:
    """
    Raises:
        HTTPException 400: If either parameter is missing
        HTTPException 404: If the short code is unknown
    """
    if not short_url or not new_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Both short_url and new_url parameters are required"
        )

    try:
        store.update_url(short_url, new_url)
    except ShortCodeNotFoundError as e:
        logger.warning(f"Failed to update URL {short_url}: {e}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    except StorageError:
        logger.error(f"Failed to update URL {short_url}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update URL"
        )

    logger.info(f"Updated URL {short_url}: new_original_url={new_url}")
    return UpdateResponse(url=short_url, message="URL updated successfully")


@admin_router.api_route(
    "/flush",
    methods=ALL_METHODS,
    summary="Remove every short URL",
    description="Clears the store and returns the removed mapping as a backup"
)
def flush_urls(store: URLStore = Depends(get_store)) -> JSONResponse:
    try:
        backup = store.flush()
    except StorageError:
        logger.error("Failed to flush URLs", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to flush URLs"
        )

    logger.info(f"Flushed all URLs and returned backup ({len(backup)} entries)")
    return JSONResponse(content=backup)


@admin_router.api_route(
    "/backup",
    methods=ALL_METHODS,
    summary="Export every short URL",
    description="Returns the current alias to URL mapping without changing it"
)
def backup_urls(store: URLStore = Depends(get_store)) -> Response:
    try:
        document = store.backup()
    except (SerializationError, StorageError):
        logger.error("Failed to generate backup", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate backup"
        )

    logger.info("Returned current backup")
    return Response(content=document, media_type="application/json")


@admin_router.api_route(
    "/import",
    methods=ALL_METHODS,
    response_model=MessageResponse,
    summary="Import short URLs",
    description="Request body is a JSON object of alias to URL; existing aliases are overwritten"
)
async def import_urls(request: Request, store: URLStore = Depends(get_store)) -> MessageResponse:
    """
    Raises:
        HTTPException 400: If the body is not a JSON object of alias to URL
    """
    body = await request.body()
    try:
        imported = await run_in_threadpool(store.import_urls, body)
    except ImportParseError as e:
        logger.error(f"Failed to import URLs: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to import URLs"
        )

    logger.info(f"URLs imported successfully ({imported} entries)")
    return MessageResponse(message="URLs imported successfully")


@public_router.api_route("/health", methods=ALL_METHODS, response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for monitoring."""
    return HealthResponse(status="ok")


@public_router.api_route("/", methods=ALL_METHODS, include_in_schema=False)
def redirect_root() -> None:
    # The empty alias never exists
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)


@public_router.api_route(
    "/{alias}",
    methods=ALL_METHODS,
    status_code=status.HTTP_302_FOUND,
    summary="Redirect to original URL",
    description="Redirects a short code to its original URL and records the access"
)
def redirect_to_url(
    alias: str,
    request: Request,
    store: URLStore = Depends(get_store),
    geolocator: GeoLocator = Depends(get_geolocator),
) -> RedirectResponse:
    """
    Redirect to the original URL for a given short code.

    The client's geolocation is resolved before touching the statistics, so
    the network call never runs under the store lock.

    Raises:
        HTTPException 404: If the short code is unknown
        HTTPException 500: If the statistics cannot be updated
    """
    try:
        original_url, found = store.get(alias)
    except StorageError:
        logger.error(f"Failed to look up {alias}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to look up short URL"
        )

    if not found:
        logger.warning(f"Short URL not found: {alias}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)

    client_ip = get_client_ip(request)
    referrer = request.headers.get("Referer", "")
    geo_location = geolocator.resolve(client_ip)

    try:
        store.update_stats(alias, client_ip, referrer, geo_location)
    except ShortCodeNotFoundError:
        # flushed between the lookup and the update
        logger.warning(f"Short URL disappeared before stats update: {alias}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    except StorageError:
        logger.error(f"Failed to update stats for {alias}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update stats"
        )

    logger.info(f"Redirecting {alias} to {original_url} (geo_location={geo_location})")
    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
