"""
SQLite Database Adapter

This module implements the DatabaseAdapter interface for SQLite.
All SQLite-specific configuration is encapsulated here.

Key characteristics:
- File-based (single .db file), no server required
- Single writer at a time (file locking); the URL store serializes its
  writes anyway
- In-memory databases live inside one connection, so they get a StaticPool
"""

from typing import Any, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import NullPool, Pool, StaticPool

from shorturl.db.interface import DatabaseAdapter


def is_memory_database(database_url: str) -> bool:
    database = make_url(database_url).database
    return database in (None, "", ":memory:")


class SQLiteAdapter(DatabaseAdapter):
    """SQLite database adapter implementation."""

    def create_engine(self, database_url: str, **kwargs) -> Engine:
        """
        Create a SQLite engine.

        SQLite-specific configuration:
        - check_same_thread=False: connections are used from worker threads
        - foreign keys enforced on every new connection
        """
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        engine = create_engine(
            database_url,
            poolclass=self.get_pool_class(database_url),
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    def get_pool_class(self, database_url: str) -> Optional[type[Pool]]:
        """
        NullPool for file databases (a fresh connection per session),
        StaticPool for in-memory ones so every session sees the same data.
        """
        if is_memory_database(database_url):
            return StaticPool
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def get_dialect_name(self) -> str:
        return "sqlite"


def get_database_adapter(database_url: str) -> DatabaseAdapter:
    """
    Factory function to get the database adapter for a connection string.

    Only SQLite is supported; add an adapter and a branch here for others.
    """
    dialect = make_url(database_url).get_backend_name()
    if dialect != "sqlite":
        raise ValueError(f"Unsupported database dialect: {dialect}")
    return SQLiteAdapter()
