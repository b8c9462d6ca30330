"""
FastAPI dependencies.

Components are built once at startup and stored on app.state; these
functions hand them to endpoints. verify_token gates the administrative
endpoints on the shared secret in X-Auth-Token.
"""

import hmac
import logging
from typing import Optional

from fastapi import Header, HTTPException, Request, status

from shorturl.core.rate_limit import get_client_ip
from shorturl.core.setting import Settings
from shorturl.services.geolocation import GeoLocator
from shorturl.services.shortcode import ShortCodeGenerator
from shorturl.services.url_store import URLStore

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> URLStore:
    return request.app.state.store


def get_code_generator(request: Request) -> ShortCodeGenerator:
    return request.app.state.code_generator


def get_geolocator(request: Request) -> GeoLocator:
    return request.app.state.geolocator


def verify_token(
    request: Request,
    x_auth_token: Optional[str] = Header(default=None),
) -> None:
    """
    Reject the request unless X-Auth-Token equals the configured token.

    Raises:
        HTTPException 403: If the header is missing or wrong
    """
    expected = request.app.state.settings.TOKEN
    supplied = x_auth_token or ""
    if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
        logger.warning(
            f"Unauthorized access attempt: {request.method} {request.url.path} "
            f"from {get_client_ip(request)}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: invalid or missing token"
        )
