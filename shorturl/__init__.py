"""URL shortening service with per-alias access statistics."""

__version__ = "1.0.0"
