"""Pytest configuration and fixtures."""

from typing import Iterator, List

import httpx
import pytest
from fastapi.testclient import TestClient

from shorturl.core.setting import Settings
from shorturl.main import create_app
from shorturl.services.geolocation import GeoLocator
from shorturl.services.memory_store import MemoryURLStore
from shorturl.services.shortcode import ShortCodeGenerator
from shorturl.services.sqlite_store import SQLiteURLStore
from shorturl.services.url_store import URLStore

TEST_TOKEN = "test-token"

# Environment wins over keyword arguments, so tests run with these unset
CONFIG_ENV_VARS = [
    "HOST", "PORT", "DOMAIN", "HTTPS", "LOCAL", "SUPERSCRT", "TOKEN",
    "STORE_BACKEND", "DATABASE_URL", "GEOLOCATION_ENABLED", "GEOLOCATION_URL",
    "GEOLOCATION_TIMEOUT", "SHORT_CODE_MAX_RETRIES", "RATE_LIMIT_ENABLED",
    "RATE_LIMIT", "LOG_LEVEL", "LOG_JSON",
]


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch):
    for name in CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def make_settings(**overrides) -> Settings:
    values = dict(
        TOKEN=TEST_TOKEN,
        PORT=8080,
        LOCAL=True,
        RATE_LIMIT_ENABLED=False,
        LOG_JSON=False,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def geo_transport(city: str = "City", country: str = "Country") -> httpx.MockTransport:
    """ip-api.com stand-in answering every lookup with the same place."""
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"status": "success", "city": city, "country": country})
    return httpx.MockTransport(handler)


def sequence_generator(raw_values: List[bytes]) -> ShortCodeGenerator:
    """Short code generator fed from a fixed list of byte strings."""
    values = iter(raw_values)
    return ShortCodeGenerator(random_bytes=lambda n: next(values))


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path) -> Iterator[URLStore]:
    """Every store contract test runs against both backends."""
    if request.param == "memory":
        instance = MemoryURLStore()
    else:
        instance = SQLiteURLStore(f"sqlite:///{tmp_path / 'shorturl.db'}")
    yield instance
    instance.close()


@pytest.fixture
def sqlite_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'shorturl.db'}"


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def geolocator() -> GeoLocator:
    return GeoLocator(transport=geo_transport())


@pytest.fixture
def app_store() -> MemoryURLStore:
    return MemoryURLStore()


@pytest.fixture
def client(settings, app_store, geolocator) -> Iterator[TestClient]:
    app = create_app(settings, app_store, geolocator=geolocator)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth() -> dict:
    return {"X-Auth-Token": TEST_TOKEN}
