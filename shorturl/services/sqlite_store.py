"""
SQLite URL store.

Durable backend over two tables, "urls" and "url_stats". Every mutation
touching both tables runs inside one transaction, so a mapping and its
statistics row appear and disappear together. Database failures are
rolled back and surfaced as StorageError.
"""

import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from shorturl.core.exceptions import ShortCodeNotFoundError, StorageError
from shorturl.db.models import ShortURL, ShortURLStats, join_values, split_values
from shorturl.db.session import build_engine, build_session_factory, create_tables, session_scope
from shorturl.services.url_store import URLMapping, URLStats, URLStore

logger = logging.getLogger(__name__)


def _to_stats(row: ShortURLStats) -> URLStats:
    return URLStats(
        count=row.count,
        last_ips=split_values(row.last_ips),
        referrers=split_values(row.referrers),
        last_geo_location=row.last_geo_location,
    )


class SQLiteURLStore(URLStore):
    """URL store persisted in a SQLite database."""

    def __init__(self, database_url: str = "sqlite:///./shorturl.db"):
        """
        Open the database and create the tables if needed.

        Raises:
            StorageError: If the database cannot be opened or initialized
        """
        super().__init__()
        self.database_url = database_url
        try:
            self.engine = build_engine(database_url)
            create_tables(self.engine)
        except SQLAlchemyError as e:
            raise StorageError(f"failed to open {database_url}", original_error=e) from e
        self._session_factory = build_session_factory(self.engine)

    def _save(self, alias: str, url: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                session.merge(ShortURL(short_url=alias, original_url=url))
                # the parent row must exist before the stats row references it
                session.flush()
                session.merge(ShortURLStats(
                    short_url=alias, count=0, last_ips="", referrers="", last_geo_location=""
                ))
        except SQLAlchemyError as e:
            raise StorageError(f"failed to save {alias}", original_error=e) from e

    def _get(self, alias: str) -> Optional[str]:
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(ShortURL, alias)
                return row.original_url if row is not None else None
        except SQLAlchemyError as e:
            logger.error(f"Failed to get original URL for {alias}: {e}")
            raise StorageError(f"failed to read {alias}", original_error=e) from e

    def _get_stats(self, alias: str) -> Optional[URLStats]:
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(ShortURLStats, alias)
                return _to_stats(row) if row is not None else None
        except SQLAlchemyError as e:
            raise StorageError(f"failed to read stats for {alias}", original_error=e) from e

    def _update_url(self, alias: str, new_url: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(ShortURL, alias)
                if row is None:
                    raise ShortCodeNotFoundError(alias)
                row.original_url = new_url
        except SQLAlchemyError as e:
            raise StorageError(f"failed to update {alias}", original_error=e) from e

    def _update_stats(self, alias: str, ip: str, referrer: str, geo_location: str) -> None:
        try:
            with session_scope(self._session_factory) as session:
                row = session.get(ShortURLStats, alias)
                if row is None:
                    raise ShortCodeNotFoundError(alias)
                stats = _to_stats(row).record_access(ip, referrer, geo_location)
                row.count = stats.count
                row.last_ips = join_values(stats.last_ips)
                row.referrers = join_values(stats.referrers)
                row.last_geo_location = stats.last_geo_location
        except SQLAlchemyError as e:
            raise StorageError(f"failed to update stats for {alias}", original_error=e) from e

    def _flush(self) -> URLMapping:
        try:
            with session_scope(self._session_factory) as session:
                backup = dict(session.execute(select(ShortURL.short_url, ShortURL.original_url)).all())
                session.execute(delete(ShortURLStats))
                session.execute(delete(ShortURL))
        except SQLAlchemyError as e:
            raise StorageError("failed to flush URLs", original_error=e) from e
        return backup

    def _snapshot(self) -> URLMapping:
        try:
            with session_scope(self._session_factory) as session:
                return dict(session.execute(select(ShortURL.short_url, ShortURL.original_url)).all())
        except SQLAlchemyError as e:
            raise StorageError("failed to read URLs", original_error=e) from e

    def _count(self) -> int:
        try:
            with session_scope(self._session_factory) as session:
                return session.execute(select(func.count()).select_from(ShortURL)).scalar_one()
        except SQLAlchemyError as e:
            raise StorageError("failed to count URLs", original_error=e) from e

    def close(self) -> None:
        self.engine.dispose()
