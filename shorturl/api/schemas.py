"""
API Response Schemas

This module defines the Pydantic models for API responses.
Statistics reuse the store's URLStats model so the JSON shape is defined
in one place: {count, last_ips, referrers, last_geo_location}.
"""

from pydantic import BaseModel, Field

from shorturl.services.url_store import URLStats

StatsResponse = URLStats


class ShortenResponse(BaseModel):
    """Response model for URL shortening endpoint."""
    short_url: str = Field(..., description="The complete short URL")


class UpdateResponse(BaseModel):
    """Response model for URL update endpoint."""
    url: str = Field(..., description="The short code that was updated")
    message: str


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"
