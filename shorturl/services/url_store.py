"""
URL Store Abstraction

This module defines the contract every URL store backend implements, plus
the pieces shared by all backends:
- URLStats: per-alias access statistics and the bounded-history update rule
- ReadWriteLock: shared reads, exclusive writes over both tables together
- URLStore: template base class; public methods take the lock, validate,
  and (de)serialize, backends only implement the unlocked primitives
- create_store(): picks a backend once, at construction time

To add a new backend:
1. Subclass URLStore
2. Implement the underscore primitives
3. Register it in create_store()
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from shorturl.core.exceptions import (
    ImportParseError,
    InvalidParameterError,
    SerializationError,
    StorageError,
)
from shorturl.core.setting import Settings, StoreBackend

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 5

URLMapping = Dict[str, str]
_mapping_adapter = TypeAdapter(Dict[str, str])


def append_with_limit(items: List[str], item: str, limit: int = HISTORY_LIMIT) -> List[str]:
    """Append item, then drop the oldest entries until at most `limit` remain."""
    updated = [*items, item]
    if len(updated) > limit:
        updated = updated[len(updated) - limit:]
    return updated


class URLStats(BaseModel):
    """Access statistics kept for each alias."""
    count: int = 0
    last_ips: List[str] = Field(default_factory=list)
    referrers: List[str] = Field(default_factory=list)
    last_geo_location: str = ""

    def record_access(self, ip: str, referrer: str, geo_location: str) -> "URLStats":
        """
        Return the statistics after one more redirect.

        The IP is always recorded; an empty referrer leaves `referrers` as is.
        The geolocation is overwritten, not accumulated.
        """
        referrers = self.referrers
        if referrer:
            referrers = append_with_limit(referrers, referrer)
        return URLStats(
            count=self.count + 1,
            last_ips=append_with_limit(self.last_ips, ip),
            referrers=referrers,
            last_geo_location=geo_location,
        )


class URLRecord(BaseModel):
    """A mapping together with its statistics, read in one step."""
    short_url: str
    original_url: str
    stats: URLStats


def parse_url_document(document: Union[bytes, str]) -> URLMapping:
    """
    Decode a backup/import document: a flat JSON object of alias -> URL.

    Raises:
        ImportParseError: If the document is not valid JSON or not an object
            of string keys to string values
    """
    try:
        return _mapping_adapter.validate_json(document)
    except ValidationError as e:
        raise ImportParseError("document must be a JSON object of alias to URL", original_error=e) from e


def dump_url_document(mapping: URLMapping) -> bytes:
    try:
        return _mapping_adapter.dump_json(mapping)
    except PydanticSerializationError as e:
        raise SerializationError("failed to encode URL mapping", original_error=e) from e


class ReadWriteLock:
    """
    Many concurrent readers or one writer.

    A waiting writer blocks new readers, so a steady stream of reads cannot
    starve writes. Not reentrant.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class URLStore(ABC):
    """
    Alias -> URL mapping with per-alias access statistics.

    Every backend behaves identically through these public methods. Writes
    (save, update_url, update_stats, flush, import_urls) are exclusive with
    each other and with reads; reads (get, get_stats, get_record, backup)
    may run concurrently.
    """

    def __init__(self):
        self._lock = ReadWriteLock()

    # -- public contract -------------------------------------------------

    def save(self, alias: str, url: str) -> None:
        """Create or overwrite a mapping and reset its statistics."""
        if not alias:
            raise InvalidParameterError("short_url", "alias must not be empty")
        with self._lock.write():
            self._save(alias, url)

    def get(self, alias: str) -> Tuple[str, bool]:
        """Return (original_url, True), or ("", False) when the alias is unknown."""
        with self._lock.read():
            url = self._get(alias)
        if url is None:
            return "", False
        return url, True

    def get_stats_snapshot(self, alias: str) -> Optional[URLStats]:
        with self._lock.read():
            return self._get_stats(alias)

    def get_stats(self, alias: str) -> Tuple[str, bool]:
        """
        Return the statistics of an alias as a JSON document.

        Returns:
            (json, True), or ("", False) when the alias is unknown

        Raises:
            SerializationError: If the snapshot cannot be encoded
        """
        stats = self.get_stats_snapshot(alias)
        if stats is None:
            return "", False
        try:
            return stats.model_dump_json(), True
        except PydanticSerializationError as e:
            raise SerializationError(f"failed to encode stats for {alias}", original_error=e) from e

    def get_record(self, alias: str) -> Optional[URLRecord]:
        """
        Read a mapping and its statistics under one lock acquisition.

        Raises:
            StorageError: If only one of the two exists
        """
        with self._lock.read():
            url = self._get(alias)
            stats = self._get_stats(alias)
        if url is None and stats is None:
            return None
        if url is None or stats is None:
            raise StorageError(f"mapping and statistics out of sync for {alias}")
        return URLRecord(short_url=alias, original_url=url, stats=stats)

    def update_url(self, alias: str, new_url: str) -> None:
        """
        Point an existing alias at a new URL; statistics are kept.

        Raises:
            ShortCodeNotFoundError: If the alias does not exist
        """
        with self._lock.write():
            self._update_url(alias, new_url)

    def update_stats(self, alias: str, ip: str, referrer: str, geo_location: str) -> None:
        """
        Record one redirect of an alias.

        Raises:
            ShortCodeNotFoundError: If the alias does not exist
        """
        with self._lock.write():
            self._update_stats(alias, ip, referrer, geo_location)

    def flush(self) -> URLMapping:
        """Remove every mapping and its statistics; return what was removed."""
        with self._lock.write():
            return self._flush()

    def backup(self) -> bytes:
        """Return the current mapping as a JSON document without changing it."""
        with self._lock.read():
            mapping = self._snapshot()
        return dump_url_document(mapping)

    def import_urls(self, document: Union[bytes, str]) -> int:
        """
        Save every entry of a JSON mapping document, overwriting existing aliases.

        The document is validated as a whole before anything is written. A
        single entry that fails to save is logged and skipped.

        Returns:
            Number of entries saved

        Raises:
            ImportParseError: If the document is malformed
        """
        entries = parse_url_document(document)
        imported = 0
        with self._lock.write():
            for alias, url in entries.items():
                if not alias:
                    logger.error("Failed to import URL: empty alias")
                    continue
                try:
                    self._save(alias, url)
                except StorageError as e:
                    logger.error(f"Failed to import URL {alias}: {e}")
                    continue
                imported += 1
        return imported

    def __len__(self) -> int:
        with self._lock.read():
            return self._count()

    def close(self) -> None:
        """Release backend resources."""

    # -- backend primitives, called with the lock held -------------------

    @abstractmethod
    def _save(self, alias: str, url: str) -> None:
        ...

    @abstractmethod
    def _get(self, alias: str) -> Optional[str]:
        ...

    @abstractmethod
    def _get_stats(self, alias: str) -> Optional[URLStats]:
        ...

    @abstractmethod
    def _update_url(self, alias: str, new_url: str) -> None:
        ...

    @abstractmethod
    def _update_stats(self, alias: str, ip: str, referrer: str, geo_location: str) -> None:
        ...

    @abstractmethod
    def _flush(self) -> URLMapping:
        ...

    @abstractmethod
    def _snapshot(self) -> URLMapping:
        ...

    @abstractmethod
    def _count(self) -> int:
        ...


def create_store(settings: Settings) -> URLStore:
    """
    Build the URL store selected by settings.STORE_BACKEND.

    Raises:
        StorageError: If the durable backend cannot be opened
    """
    if settings.STORE_BACKEND == StoreBackend.sqlite:
        from shorturl.services.sqlite_store import SQLiteURLStore
        return SQLiteURLStore(settings.DATABASE_URL)

    from shorturl.services.memory_store import MemoryURLStore
    return MemoryURLStore()
