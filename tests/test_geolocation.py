"""Tests for the geolocation resolver."""

import logging

import httpx
import pytest

from shorturl.core.exceptions import GeolocationError
from shorturl.services.geolocation import UNKNOWN_LOCATION, GeoLocator
from tests.conftest import geo_transport, make_settings


def locator_answering(handler, **kwargs) -> GeoLocator:
    return GeoLocator(transport=httpx.MockTransport(handler), **kwargs)


class TestLocate:
    def test_success(self):
        locator = GeoLocator(transport=geo_transport("Paris", "France"))
        assert locator.locate("1.2.3.4") == "Paris, France"

    def test_requests_address_in_path(self):
        seen = []

        def handler(request):
            seen.append(request.url)
            return httpx.Response(200, json={"status": "success", "city": "Lima", "country": "Peru"})

        locator_answering(handler).locate("1.2.3.4")

        assert seen[0].host == "ip-api.com"
        assert seen[0].path == "/json/1.2.3.4"

    def test_unsuccessful_lookup(self):
        locator = locator_answering(
            lambda request: httpx.Response(200, json={"status": "fail", "message": "private range"})
        )
        with pytest.raises(GeolocationError):
            locator.locate("10.0.0.1")

    def test_server_error(self):
        locator = locator_answering(lambda request: httpx.Response(500))
        with pytest.raises(GeolocationError):
            locator.locate("1.2.3.4")

    def test_malformed_json(self):
        locator = locator_answering(lambda request: httpx.Response(200, content=b"<html>"))
        with pytest.raises(GeolocationError):
            locator.locate("1.2.3.4")

    def test_missing_fields(self):
        locator = locator_answering(lambda request: httpx.Response(200, json={"status": "success"}))
        with pytest.raises(GeolocationError):
            locator.locate("1.2.3.4")

    def test_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GeolocationError) as exc_info:
            locator_answering(handler).locate("1.2.3.4")
        assert exc_info.value.ip == "1.2.3.4"


class TestResolve:
    def test_success(self):
        assert GeoLocator(transport=geo_transport()).resolve("1.2.3.4") == "City, Country"

    def test_failure_maps_to_unknown(self, caplog):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with caplog.at_level(logging.WARNING, logger="shorturl.services.geolocation"):
            assert locator_answering(handler).resolve("1.2.3.4") == UNKNOWN_LOCATION
        assert "1.2.3.4" in caplog.text

    def test_disabled_never_calls_out(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"status": "success", "city": "X", "country": "Y"})

        assert locator_answering(handler, enabled=False).resolve("1.2.3.4") == UNKNOWN_LOCATION
        assert calls == []


def test_from_settings():
    settings = make_settings(
        GEOLOCATION_ENABLED=False,
        GEOLOCATION_URL="http://geo.internal/{ip}",
        GEOLOCATION_TIMEOUT=0.5,
    )
    locator = GeoLocator.from_settings(settings)
    try:
        assert locator.enabled is False
        assert locator.url_template == "http://geo.internal/{ip}"
        assert locator.timeout == 0.5
    finally:
        locator.close()
