"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter: SQLite-specific implementation (default)
- Table models for the durable URL store
- Engine/session helpers with one transaction per scope
"""

from shorturl.db.interface import DatabaseAdapter
from shorturl.db.session import build_engine, build_session_factory, create_tables, session_scope

__all__ = [
    "DatabaseAdapter",
    "build_engine",
    "build_session_factory",
    "create_tables",
    "session_scope",
]
