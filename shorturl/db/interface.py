"""
Engine construction contract for the durable URL store.

The SQLite store only ever sees an Engine. Everything dialect-specific
(pooling, DBAPI arguments, per-connection setup) lives behind an adapter
picked from the database URL by get_database_adapter().
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.pool import Pool


class DatabaseAdapter(ABC):
    """Builds a configured Engine for one database dialect."""

    @abstractmethod
    def create_engine(self, database_url: str, **kwargs) -> Engine:
        """
        Build an engine for database_url.

        Keyword arguments override get_engine_kwargs().
        """

    @abstractmethod
    def get_pool_class(self, database_url: str) -> Optional[type[Pool]]:
        """Pool class for this URL, or None for the dialect default."""

    @abstractmethod
    def get_connect_args(self) -> dict[str, Any]:
        """DBAPI connect() arguments."""

    @abstractmethod
    def get_engine_kwargs(self) -> dict[str, Any]:
        ...

    @abstractmethod
    def get_dialect_name(self) -> str:
        ...
