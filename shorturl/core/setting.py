"""
Configuration Settings

This module defines application configuration using Pydantic Settings.
Values come from environment variables (or a .env file); command-line
flags fill in whatever the environment leaves unset or empty.

Design Decisions:
- Settings are frozen: built once at startup and handed to every component
- Reloading means building a new app from a new Settings value
- Source priority: environment, then .env, then constructor keyword
  arguments (the command-line flags), then field defaults
- The shared secret keeps its historical variable name, SUPERSCRT
"""

from __future__ import annotations

import argparse
import logging
from enum import Enum
from typing import Optional, Sequence, Tuple, Type

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

__all__ = ["Settings", "StoreBackend", "build_arg_parser", "load_settings"]


class StoreBackend(str, Enum):
    """Storage backends for the URL store."""
    memory = "memory"
    sqlite = "sqlite"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    Keyword arguments only fill fields the environment leaves unset.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        frozen=True,
    )

    # Server Configuration
    HOST: str = Field(default="", description="Interface to bind; empty binds all interfaces")
    PORT: int = Field(default=8080, ge=1, le=65535, description="Port to listen on")
    DOMAIN: str = Field(default="localhost", description="Public domain used in short URLs")
    HTTPS: bool = Field(default=False, description="Build public short URLs with https://")
    LOCAL: bool = Field(
        default=True,
        description="Build short URLs as http://localhost:<port>/<code> instead of the public domain"
    )

    # Shared secret checked against the X-Auth-Token header
    TOKEN: str = Field(
        default="5ecr3tT0k3n",
        min_length=1,
        validation_alias=AliasChoices("SUPERSCRT", "TOKEN"),
        description="Shared secret required on administrative endpoints"
    )

    # Storage Configuration
    STORE_BACKEND: StoreBackend = Field(
        default=StoreBackend.memory,
        description="URL store backend (memory, sqlite)"
    )
    DATABASE_URL: str = Field(
        default="sqlite:///./shorturl.db",
        description="Database connection string for the sqlite backend"
    )

    # Geolocation Configuration
    GEOLOCATION_ENABLED: bool = Field(default=True, description="Resolve client IPs to 'city, country'")
    GEOLOCATION_URL: str = Field(
        default="http://ip-api.com/json/{ip}",
        description="Lookup endpoint; {ip} is replaced with the client address"
    )
    GEOLOCATION_TIMEOUT: float = Field(default=2.0, gt=0, description="Lookup timeout in seconds")

    # Short Code Configuration
    SHORT_CODE_MAX_RETRIES: int = Field(
        default=5,
        ge=0,
        description="Extra draws when a generated short code is already taken"
    )

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = Field(default=True, description="Enable per-IP rate limiting")
    RATE_LIMIT: str = Field(default="600/minute", description="Default per-IP limit (slowapi syntax)")

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=True, description="Emit logs as JSON lines")

    @field_validator("LOG_LEVEL")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value}")
        return level

    @property
    def bind_host(self) -> str:
        return self.HOST or "0.0.0.0"

    def short_url_base(self) -> str:
        """Return the prefix that generated short codes are appended to."""
        if self.LOCAL:
            return f"http://localhost:{self.PORT}"
        scheme = "https" if self.HTTPS else "http"
        return f"{scheme}://{self.DOMAIN}"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # earlier sources win
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def build_arg_parser() -> argparse.ArgumentParser:
    """
    Command-line flags. Only flags given on the command line appear in the
    parsed namespace; everything else is left to the environment and the
    field defaults.
    """
    parser = argparse.ArgumentParser(
        prog="shorturl",
        description="URL shortening service",
        argument_default=argparse.SUPPRESS,
    )
    parser.add_argument("--host", dest="HOST", help="interface to bind (default: all)")
    parser.add_argument("--port", dest="PORT", type=int, help="port to listen on (default: 8080)")
    parser.add_argument("--token", dest="TOKEN", help="secret token for authentication")
    parser.add_argument("--domain", dest="DOMAIN", help="domain name (default: localhost)")
    parser.add_argument("--https", dest="HTTPS", action="store_true", help="use https")
    parser.add_argument(
        "--local", dest="LOCAL", action=argparse.BooleanOptionalAction,
        help="build short URLs against localhost:<port> (default: on)"
    )
    parser.add_argument(
        "--store", dest="STORE_BACKEND", choices=[b.value for b in StoreBackend],
        help="URL store backend (default: memory)"
    )
    parser.add_argument("--database-url", dest="DATABASE_URL", help="SQLite URL for the sqlite store")
    parser.add_argument("--log-level", dest="LOG_LEVEL", help="logging level (default: INFO)")
    return parser


def load_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """
    Resolve settings from the environment, falling back to command-line flags.

    A non-empty environment variable or .env entry always wins; a flag is
    only used when neither sets the field.
    """
    flags = vars(build_arg_parser().parse_args(argv))
    return Settings(**flags)
