"""
Rate Limiting Configuration

This module provides rate limiting for API endpoints.
Rate limiting prevents abuse and ensures fair usage.

Design Decisions:
- Uses slowapi for rate limiting (lightweight, FastAPI-compatible)
- One limiter per application, built from that application's settings
- A single per-client limit, charged by enforce_rate_limit, a dependency
  on every router; it does not rely on middleware route discovery
- IP-based limiting, proxy-aware (same client IP the stats record)
"""

import logging
from typing import List

from fastapi import Request
from limits import RateLimitItem, parse_many
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.wrappers import Limit

from shorturl.core.setting import Settings

logger = logging.getLogger(__name__)

RATE_LIMIT_SCOPE = "shorturl"


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request.

    Handles proxies and load balancers by checking X-Forwarded-For header.

    Args:
        request: Incoming request

    Returns:
        IP address as string
    """
    # X-Forwarded-For can contain multiple IPs, take the first one
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    return request.client.host if request.client else "unknown"


def build_limiter(settings: Settings) -> Limiter:
    """Create the limiter installed on app.state.limiter."""
    return Limiter(
        key_func=get_client_ip,
        default_limits=[settings.RATE_LIMIT],
        enabled=settings.RATE_LIMIT_ENABLED,
    )


def parse_rate_limit(value: str) -> List[RateLimitItem]:
    """Parse a limit string such as "600/minute" or "10/second;600/minute"."""
    return parse_many(value)


def enforce_rate_limit(request: Request) -> None:
    """
    Charge one request against the client's limits.

    Raises:
        RateLimitExceeded: If any limit for the client is used up
    """
    limiter: Limiter = request.app.state.limiter
    request.state.view_rate_limit = None
    if not limiter.enabled:
        return

    client_ip = get_client_ip(request)
    for item in request.app.state.rate_limits:
        if not limiter.limiter.hit(item, client_ip, RATE_LIMIT_SCOPE):
            logger.warning(f"Rate limit {item} exceeded by {client_ip}")
            request.state.view_rate_limit = (item, [client_ip, RATE_LIMIT_SCOPE])
            raise RateLimitExceeded(
                Limit(item, get_client_ip, None, False, None, None, None, 1, False)
            )
