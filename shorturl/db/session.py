"""
Database Session Management

This module builds the engine and session factory for a database URL and
provides a transactional session scope.

Key Features:
- Database abstraction: the engine comes from the adapter for the URL
- One transaction per scope: commit on success, rollback on any exception
- Tables are created if missing (the same schema ships as an Alembic revision)
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import Session, SQLModel

from shorturl.db import models  # noqa: F401  (registers tables on SQLModel.metadata)
from shorturl.db.sqlite_adapter import get_database_adapter


def build_engine(database_url: str) -> Engine:
    """Create an engine through the adapter for this database URL."""
    return get_database_adapter(database_url).create_engine(database_url)


def create_tables(engine: Engine) -> None:
    """Create the urls and url_stats tables if they do not exist."""
    SQLModel.metadata.create_all(engine)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        engine,
        class_=Session,
        expire_on_commit=False,  # Rows stay readable after commit
        autoflush=False,
    )


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Provide a session wrapped in a single transaction.

    Commits when the block completes, rolls back on any exception and
    re-raises it. The session is closed either way.
    """
    with session_factory() as session:
        with session.begin():
            yield session
