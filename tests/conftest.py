"""
Pytest configuration and fixtures for gallerycache tests.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from gallerycache.config.settings import Settings
from gallerycache.services.connectivity import ConnectivityMonitor
from gallerycache.services.disk_cache import DiskCacheStore
from gallerycache.services.memory_cache import MemoryCache


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary cache directory."""
    return Settings(
        cache_dir=tmp_path / "cache",
        image_base_url="https://img.test",
        reachability_url="https://img.test",
    )


@pytest.fixture
def store_factory(tmp_path: Path) -> Callable[..., DiskCacheStore]:
    """Build disk cache stores sharing one temporary directory."""

    def factory(**kwargs: object) -> DiskCacheStore:
        return DiskCacheStore(
            blob_dir=tmp_path / "cache" / "images",
            index_path=tmp_path / "cache" / "cache_index.json",
            **kwargs,  # type: ignore[arg-type]
        )

    return factory


@pytest.fixture
def disk_cache(store_factory: Callable[..., DiskCacheStore]) -> DiskCacheStore:
    return store_factory()


@pytest.fixture
def memory_cache() -> MemoryCache:
    return MemoryCache(max_entries=10, max_bytes=1024 * 1024)


@pytest.fixture
def monitor() -> ConnectivityMonitor:
    """Probe-less monitor driven through ``report``."""
    return ConnectivityMonitor()
