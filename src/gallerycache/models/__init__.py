"""
Data models module for gallerycache.

Defines Pydantic models for image references, cache bookkeeping, connectivity
state and pagination snapshots.
"""

from __future__ import annotations

from .cache import CacheEntry, CacheIndex, CacheStats, ConnectivityState
from .enums import InterfaceKind, LoadState, ResolveOutcome
from .image import (
    DEFAULT_IMAGE_BASE_URL,
    DEFAULT_IMAGE_SIZE,
    ImageRef,
    PageState,
    ResolvedImage,
)

__all__ = [
    "CacheEntry",
    "CacheIndex",
    "CacheStats",
    "ConnectivityState",
    "DEFAULT_IMAGE_BASE_URL",
    "DEFAULT_IMAGE_SIZE",
    "ImageRef",
    "InterfaceKind",
    "LoadState",
    "PageState",
    "ResolveOutcome",
    "ResolvedImage",
]
