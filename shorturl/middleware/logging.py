"""
Request logging middleware.

Every request is logged twice under "shorturl.middleware.logging": once on
arrival (method, path, client address, user agent, referer) and once with
the response status and the time spent. The elapsed seconds are also
returned to the client in X-Process-Time.
"""

import logging
import time

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

from shorturl.core.rate_limit import get_client_ip

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log arrival and completion of each request."""

    async def dispatch(self, request: Request, call_next):
        client_ip = get_client_ip(request)
        logger.info(
            f"Received request: method={request.method} path={request.url.path} "
            f"remote_addr={client_ip} "
            f"user_agent={request.headers.get('User-Agent', '')} "
            f"referer={request.headers.get('Referer', '')}"
        )

        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        # Format: METHOD PATH STATUS_CODE PROCESS_TIME_MS
        logger.info(
            f"Processed request: {request.method} {request.url.path} "
            f"{response.status_code} {process_time * 1000:.2f}ms"
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response


def add_logging_middleware(app: FastAPI) -> None:
    app.add_middleware(LoggingMiddleware)
