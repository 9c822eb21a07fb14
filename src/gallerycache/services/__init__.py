"""
Services module for gallerycache.

Provides the cache tiers, connectivity observation, image resolution and
pagination services that make up the image pipeline.
"""

from __future__ import annotations

from .connectivity import ConnectivityMonitor, HttpReachabilityProbe
from .disk_cache import DiskCacheStore
from .image_resolver import ImageResolver
from .memory_cache import MemoryCache
from .pagination import PaginationController, SequentialPageSource

__all__ = [
    "ConnectivityMonitor",
    "DiskCacheStore",
    "HttpReachabilityProbe",
    "ImageResolver",
    "MemoryCache",
    "PaginationController",
    "SequentialPageSource",
]
