"""
CORS handling.

Browsers' preflight requests (Origin plus Access-Control-Request-Method)
are answered by Starlette's CORSMiddleware. Any other OPTIONS request is
answered here with 200 before routing, so it never reaches a handler or
the token check.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from starlette.middleware.base import BaseHTTPMiddleware

ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]
ALLOWED_HEADERS = ["Content-Type", "Authorization", "X-Auth-Token"]


class OptionsMiddleware(BaseHTTPMiddleware):
    """Answer bare OPTIONS requests on every path."""

    async def dispatch(self, request: Request, call_next):
        if request.method != "OPTIONS":
            return await call_next(request)
        return Response(
            status_code=200,
            headers={
                "Access-Control-Allow-Origin": "*",
                "Access-Control-Allow-Methods": ", ".join(ALLOWED_METHODS),
                "Access-Control-Allow-Headers": ", ".join(ALLOWED_HEADERS),
            },
        )


def add_options_middleware(app: FastAPI) -> None:
    app.add_middleware(OptionsMiddleware)


def add_cors_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=ALLOWED_METHODS,
        allow_headers=ALLOWED_HEADERS,
    )
