"""Build cache module.

This module handles:
- ORM model for per-image cache entries
- Loading the active namespace for a build invocation
- Listing and clearing entries
"""

from imagefleet.cache.models import ImageCacheEntry
from imagefleet.cache.store import (
    BuildCache,
    CacheLoadError,
    clear_cache,
    list_cache_entries,
    load_active_cache,
)

__all__ = [
    "BuildCache",
    "CacheLoadError",
    "ImageCacheEntry",
    "clear_cache",
    "list_cache_entries",
    "load_active_cache",
]
