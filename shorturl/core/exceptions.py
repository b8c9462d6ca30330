"""
Custom Exceptions

This module defines the error taxonomy shared by the URL store, the
short-code generator, the geolocation resolver and the API layer.

Mapping to HTTP (done in the endpoints, never here):
- ShortCodeNotFoundError -> 404
- InvalidParameterError -> 400
- ImportParseError -> 400
- StorageError, SerializationError, RandomSourceError -> 500
- GeolocationError is never surfaced; callers degrade to "Unknown"
"""

from typing import Optional


class URLShortenerException(Exception):
    """Base exception for URL shortener service."""
    pass


class InvalidParameterError(URLShortenerException):
    """Raised when a required parameter is missing or empty."""

    def __init__(self, parameter: str, reason: str = "parameter is missing"):
        self.parameter = parameter
        self.reason = reason
        super().__init__(f"{parameter}: {reason}")


class ShortCodeNotFoundError(URLShortenerException):
    """Raised when a short code is not present in the store."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short code '{short_code}' not found")


class StorageError(URLShortenerException):
    """Raised when the backing store fails to read or write."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Storage error: {message}")


class SerializationError(URLShortenerException):
    """Raised when a statistics snapshot or backup cannot be encoded."""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__(f"Serialization error: {message}")


class ImportParseError(SerializationError):
    """Raised when an import document is not a flat object of alias -> URL."""


class RandomSourceError(URLShortenerException):
    """Raised when the entropy source cannot produce bytes for a short code."""

    def __init__(self, original_error: Optional[Exception] = None):
        self.original_error = original_error
        super().__init__("Random source unavailable")


class GeolocationError(URLShortenerException):
    """Raised by GeoLocator.locate when a lookup fails for any reason."""

    def __init__(self, ip: str, reason: str):
        self.ip = ip
        self.reason = reason
        super().__init__(f"Geolocation lookup failed for {ip}: {reason}")
