"""Tests for db module."""

import pytest
from sqlalchemy import inspect, select

from imagefleet.cache.models import ImageCacheEntry
from imagefleet.db import get_engine, get_session, init_cache_db


@pytest.fixture
def factory(tmp_path):
    """Session factory of a file-backed cache in a nested directory."""
    factory = init_cache_db(f"sqlite:///{tmp_path / 'state' / 'cache.sqlite'}")
    yield factory
    factory.kw["bind"].dispose()


class TestInitCacheDb:
    """Tests for cache database setup."""

    def test_creates_parent_directory(self, tmp_path, factory) -> None:
        """The SQLite file's directory should be created."""
        assert (tmp_path / "state").is_dir()

    def test_tables_created(self, factory) -> None:
        """The cache table should exist."""
        engine = factory.kw["bind"]
        assert "image_cache_entries" in inspect(engine).get_table_names()

    def test_idempotent(self, tmp_path, factory) -> None:
        """Preparing an existing database should keep its rows."""
        url = f"sqlite:///{tmp_path / 'state' / 'cache.sqlite'}"
        with get_session(factory) as session:
            session.add(ImageCacheEntry(namespace="default", image_config_name="api"))

        again = init_cache_db(url)
        with again() as session:
            assert session.execute(select(ImageCacheEntry)).first() is not None

    def test_memory_engine(self) -> None:
        """In-memory SQLite should not touch the filesystem."""
        engine = get_engine("sqlite:///:memory:")
        assert engine.url.database == ":memory:"


class TestGetSession:
    """Tests for the transactional session scope."""

    def test_commits(self, factory) -> None:
        """Changes should be committed when the block succeeds."""
        with get_session(factory) as session:
            session.add(ImageCacheEntry(namespace="default", image_config_name="api"))

        with factory() as session:
            rows = session.execute(select(ImageCacheEntry)).scalars().all()
            assert [r.image_config_name for r in rows] == ["api"]

    def test_rolls_back(self, factory) -> None:
        """Changes should be discarded when the block raises."""
        with pytest.raises(RuntimeError):
            with get_session(factory) as session:
                session.add(
                    ImageCacheEntry(namespace="default", image_config_name="api")
                )
                session.flush()
                raise RuntimeError("build failed")

        with factory() as session:
            assert session.execute(select(ImageCacheEntry)).first() is None
