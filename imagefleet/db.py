"""Build cache database helpers.

This module handles:
- The declarative base of the cache models
- Engine creation (file-backed SQLite gets its directory created)
- Schema creation and the session factory for a cache database
- The transactional session scope used per CLI invocation
"""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def get_engine(db_url: str) -> Engine:
    """Create an engine for a cache database URL.

    Args:
        db_url: Database URL.

    Returns:
        SQLAlchemy Engine instance.
    """
    connect_args: dict[str, Any] = {}
    url = make_url(db_url)
    if url.get_backend_name() == "sqlite":
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args)


def create_all_tables(engine: Engine) -> None:
    """Create the cache tables if they do not exist."""
    # Registers the models with the metadata
    from imagefleet.cache import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to an engine."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_cache_db(db_url: str) -> sessionmaker[Session]:
    """Prepare a cache database and return its session factory.

    Args:
        db_url: Database URL.

    Returns:
        Session factory for the database.
    """
    engine = get_engine(db_url)
    create_all_tables(engine)
    return get_session_factory(engine)


@contextmanager
def get_session(
    session_factory: sessionmaker[Session],
) -> Generator[Session, None, None]:
    """Provide a transactional scope around a series of operations.

    Commits when the block succeeds and rolls back when it raises.

    Args:
        session_factory: Session factory.

    Yields:
        SQLAlchemy Session instance.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = [
    "Base",
    "create_all_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    "init_cache_db",
]
