"""Build cache store.

This module provides the in-memory view of the build cache used during one
build invocation:
- load_active_cache(): load every entry of the active namespace
- BuildCache.lookup(): read-only access used by rebuild decisions
- BuildCache.get_image_cache_entry(): writable access, creating on demand

Changes are persisted when the caller commits the session.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from imagefleet.cache.models import ImageCacheEntry

logger = logging.getLogger(__name__)


class CacheLoadError(Exception):
    """Raised when the build cache cannot be loaded."""

    def __init__(self, message: str, code: str = "cache_load_error") -> None:
        super().__init__(message)
        self.code = code


class BuildCache:
    """Build cache entries of one namespace, keyed by image config name.

    A BuildCache is not thread-safe. Only the thread running the build
    orchestration may use it.

    Args:
        session: Session the entries are attached to.
        namespace: Cache namespace.
        entries: Entries already loaded for the namespace.
    """

    def __init__(
        self,
        session: Session,
        namespace: str,
        entries: dict[str, ImageCacheEntry] | None = None,
    ) -> None:
        self.session = session
        self.namespace = namespace
        self._entries: dict[str, ImageCacheEntry] = dict(entries or {})

    def __contains__(self, image_config_name: object) -> bool:
        return image_config_name in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, image_config_name: str) -> ImageCacheEntry | None:
        """Return the entry for an image without creating it.

        Args:
            image_config_name: Name of the image entry.

        Returns:
            ImageCacheEntry or None.
        """
        return self._entries.get(image_config_name)

    def get_image_cache_entry(self, image_config_name: str) -> ImageCacheEntry:
        """Return the entry for an image, creating it on first access.

        Args:
            image_config_name: Name of the image entry.

        Returns:
            ImageCacheEntry attached to the session.
        """
        entry = self._entries.get(image_config_name)
        if entry is None:
            entry = ImageCacheEntry(
                namespace=self.namespace,
                image_config_name=image_config_name,
            )
            self.session.add(entry)
            self._entries[image_config_name] = entry
            logger.debug("Created cache entry for %s", image_config_name)
        return entry


def load_active_cache(session: Session, namespace: str = "default") -> BuildCache:
    """Load the build cache of a namespace.

    Args:
        session: Database session.
        namespace: Cache namespace to load.

    Returns:
        BuildCache with every entry of the namespace.

    Raises:
        CacheLoadError: If the entries cannot be read.
    """
    stmt = select(ImageCacheEntry).where(ImageCacheEntry.namespace == namespace)
    try:
        rows = session.execute(stmt).scalars().all()
    except SQLAlchemyError as e:
        raise CacheLoadError(
            f"Failed to load build cache '{namespace}': {e}",
            code="cache_read_error",
        ) from e

    logger.debug("Loaded %d cache entries for namespace %s", len(rows), namespace)
    return BuildCache(
        session,
        namespace,
        {row.image_config_name: row for row in rows},
    )


def list_cache_entries(
    session: Session,
    namespace: str | None = None,
) -> list[ImageCacheEntry]:
    """List cache entries, optionally for a single namespace.

    Args:
        session: Database session.
        namespace: Filter by namespace.

    Returns:
        Entries ordered by namespace and image config name.
    """
    stmt = select(ImageCacheEntry)
    if namespace is not None:
        stmt = stmt.where(ImageCacheEntry.namespace == namespace)
    stmt = stmt.order_by(ImageCacheEntry.namespace, ImageCacheEntry.image_config_name)
    return list(session.execute(stmt).scalars().all())


def clear_cache(
    session: Session,
    namespace: str,
    image_config_names: list[str] | None = None,
) -> int:
    """Delete cache entries so the affected images are rebuilt next time.

    Args:
        session: Database session.
        namespace: Namespace to clear.
        image_config_names: Only clear these entries (all when omitted).

    Returns:
        Number of deleted entries.
    """
    stmt = delete(ImageCacheEntry).where(ImageCacheEntry.namespace == namespace)
    if image_config_names:
        stmt = stmt.where(ImageCacheEntry.image_config_name.in_(image_config_names))
    result = session.execute(stmt)
    deleted: int = result.rowcount or 0
    logger.info("Cleared %d cache entries from namespace %s", deleted, namespace)
    return deleted


__all__ = [
    "BuildCache",
    "CacheLoadError",
    "clear_cache",
    "list_cache_entries",
    "load_active_cache",
]
