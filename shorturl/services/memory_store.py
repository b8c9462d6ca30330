"""
In-memory URL store.

Volatile backend: two dicts guarded by the store's read/write lock.
Everything is lost on restart; use /backup or /flush to keep a copy.
"""

from typing import Dict, Optional

from shorturl.core.exceptions import ShortCodeNotFoundError
from shorturl.services.url_store import URLMapping, URLStats, URLStore


class MemoryURLStore(URLStore):
    """URL store backed by process memory."""

    def __init__(self):
        super().__init__()
        self._urls: Dict[str, str] = {}
        self._stats: Dict[str, URLStats] = {}

    def _save(self, alias: str, url: str) -> None:
        self._urls[alias] = url
        self._stats[alias] = URLStats()

    def _get(self, alias: str) -> Optional[str]:
        return self._urls.get(alias)

    def _get_stats(self, alias: str) -> Optional[URLStats]:
        stats = self._stats.get(alias)
        # callers get a copy; the stored model is only replaced, never shared
        return stats.model_copy(deep=True) if stats is not None else None

    def _update_url(self, alias: str, new_url: str) -> None:
        if alias not in self._urls:
            raise ShortCodeNotFoundError(alias)
        self._urls[alias] = new_url

    def _update_stats(self, alias: str, ip: str, referrer: str, geo_location: str) -> None:
        stats = self._stats.get(alias)
        if stats is None:
            raise ShortCodeNotFoundError(alias)
        self._stats[alias] = stats.record_access(ip, referrer, geo_location)

    def _flush(self) -> URLMapping:
        backup = self._urls
        self._urls = {}
        self._stats = {}
        return backup

    def _snapshot(self) -> URLMapping:
        return dict(self._urls)

    def _count(self) -> int:
        return len(self._urls)
