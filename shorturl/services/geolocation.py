"""
Geolocation Resolver

Maps a client IP address to a coarse "City, Country" label using the
ip-api.com JSON endpoint.

Design Decisions:
- locate() is an explicit fallible lookup: every failure raises GeolocationError
- resolve() is the best-effort contract used by the redirect handler; it maps
  any GeolocationError to UNKNOWN_LOCATION and logs the cause
- The HTTP call always has a timeout and is made outside the store lock
"""

import logging
from typing import Optional

import httpx

from shorturl.core.exceptions import GeolocationError
from shorturl.core.setting import Settings

logger = logging.getLogger(__name__)

UNKNOWN_LOCATION = "Unknown"


class GeoLocator:
    """Resolve IP addresses to "City, Country" labels."""

    def __init__(
        self,
        url_template: str = "http://ip-api.com/json/{ip}",
        timeout: float = 2.0,
        enabled: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Args:
            url_template: Lookup URL; "{ip}" is replaced with the address
            timeout: Seconds before the lookup is abandoned
            enabled: When False, resolve() never touches the network
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.url_template = url_template
        self.timeout = timeout
        self.enabled = enabled
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, settings: Settings) -> "GeoLocator":
        return cls(
            url_template=settings.GEOLOCATION_URL,
            timeout=settings.GEOLOCATION_TIMEOUT,
            enabled=settings.GEOLOCATION_ENABLED,
        )

    def locate(self, ip: str) -> str:
        """
        Look up the location of an IP address.

        Returns:
            "City, Country"

        Raises:
            GeolocationError: On network errors, non-2xx responses, malformed
                JSON or an unsuccessful lookup
        """
        url = self.url_template.format(ip=ip)
        try:
            response = self._client.get(url)
            response.raise_for_status()
            result = response.json()
        except httpx.HTTPError as e:
            raise GeolocationError(ip, str(e)) from e
        except ValueError as e:
            raise GeolocationError(ip, f"malformed response: {e}") from e

        if not isinstance(result, dict) or result.get("status") != "success":
            raise GeolocationError(ip, "lookup unsuccessful")

        city = result.get("city")
        country = result.get("country")
        if not isinstance(city, str) or not isinstance(country, str):
            raise GeolocationError(ip, "response missing city or country")

        return f"{city}, {country}"

    def resolve(self, ip: str) -> str:
        """Best-effort lookup; returns UNKNOWN_LOCATION instead of raising."""
        if not self.enabled:
            return UNKNOWN_LOCATION
        try:
            return self.locate(ip)
        except GeolocationError as e:
            logger.warning(f"Geolocation unavailable for {ip}: {e.reason}")
            return UNKNOWN_LOCATION

    def close(self) -> None:
        self._client.close()
