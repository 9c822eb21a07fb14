"""
Dependency Injection Container for gallerycache.

This module is the composition root of the image pipeline. It decides which
services live for the whole process and wires them together explicitly,
instead of each service reaching for a global instance:

- The disk cache, memory cache, connectivity monitor and image resolver are
  singletons, cached via ``@cached_property`` (lazy initialization)
- Pagination controllers are transient; each gallery screen gets its own
- Settings can be injected, and the container can be reset for tests

Usage
-----
    >>> from gallerycache.container import Container
    >>> container = Container()
    >>> resolver = container.image_resolver
    >>> controller = container.create_pagination_controller()
"""

from __future__ import annotations

from functools import cached_property
from typing import Optional

from gallerycache.config.settings import Settings, get_settings
from gallerycache.services.connectivity import (
    ConnectivityMonitor,
    HttpReachabilityProbe,
)
from gallerycache.services.disk_cache import DiskCacheStore
from gallerycache.services.image_resolver import ImageResolver
from gallerycache.services.interfaces import PageSourceInterface
from gallerycache.services.memory_cache import MemoryCache
from gallerycache.services.pagination import (
    PaginationController,
    SequentialPageSource,
)

_SINGLETONS = (
    "disk_cache",
    "memory_cache",
    "connectivity_monitor",
    "image_resolver",
)


class Container:
    """
    Dependency injection container for gallerycache.

    Parameters
    ----------
    settings : Settings | None
        Settings to build services from; loaded from the environment when
        omitted.

    Examples
    --------
    Singletons return the same instance on repeated access:

        >>> container = Container()
        >>> container.disk_cache is container.disk_cache
        True

    Controllers are transient:

        >>> c1 = container.create_pagination_controller()
        >>> c2 = container.create_pagination_controller()
        >>> c1 is c2
        False
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    # -------------------------------------------------------------------------
    # Singleton Service Properties (Cached - same instance on repeated access)
    # -------------------------------------------------------------------------

    @cached_property
    def disk_cache(self) -> DiskCacheStore:
        """
        Get the singleton DiskCacheStore.

        Construction loads the index, reconciles it with the blob directory
        and evicts expired blobs.
        """
        return self.open_disk_cache()

    @cached_property
    def memory_cache(self) -> MemoryCache:
        """Get the singleton MemoryCache."""
        s = self.settings
        return MemoryCache(
            max_entries=s.memory_cache_max_entries,
            max_bytes=s.memory_cache_max_bytes,
        )

    @cached_property
    def connectivity_monitor(self) -> ConnectivityMonitor:
        """
        Get the singleton ConnectivityMonitor.

        The monitor is not started here; call ``start()`` from a running
        event loop.
        """
        s = self.settings
        probe = HttpReachabilityProbe(
            url=s.reachability_url,
            timeout=s.reachability_timeout,
        )
        return ConnectivityMonitor(probe, interval=s.reachability_interval)

    @cached_property
    def image_resolver(self) -> ImageResolver:
        """Get the singleton ImageResolver wired to both cache tiers."""
        s = self.settings
        return ImageResolver(
            memory_cache=self.memory_cache,
            disk_cache=self.disk_cache,
            connectivity=self.connectivity_monitor,
            timeout=s.request_timeout,
            max_concurrent_fetches=s.max_concurrent_fetches,
            image_base_url=s.image_base_url,
        )

    # -------------------------------------------------------------------------
    # Factory Methods (Transient - new instance per call)
    # -------------------------------------------------------------------------

    def open_disk_cache(self, *, evict_on_open: bool = True) -> DiskCacheStore:
        """
        Open a new DiskCacheStore on the configured cache directory.

        Parameters
        ----------
        evict_on_open : bool
            Whether construction sweeps expired blobs. Turn off to run and
            report the sweep explicitly.

        Returns
        -------
        DiskCacheStore
            A store independent of the ``disk_cache`` singleton.
        """
        s = self.settings
        return DiskCacheStore(
            blob_dir=s.images_dir,
            index_path=s.index_path,
            max_size_bytes=s.max_cache_size,
            max_age=s.max_cache_age,
            trim_ratio=s.trim_ratio,
            evict_on_open=evict_on_open,
        )

    def create_pagination_controller(
        self, page_source: Optional[PageSourceInterface] = None
    ) -> PaginationController:
        """
        Create a new PaginationController wired to the shared services.

        Parameters
        ----------
        page_source : PageSourceInterface | None
            Listing backend; defaults to a ``SequentialPageSource``.

        Returns
        -------
        PaginationController
            A new controller, not yet attached to connectivity changes.
        """
        s = self.settings
        return PaginationController(
            disk_cache=self.disk_cache,
            connectivity=self.connectivity_monitor,
            page_source=page_source or SequentialPageSource(s.default_image_size),
            page_size=s.page_size,
            prefetch_threshold=s.prefetch_threshold,
            cached_image_size=s.default_image_size,
        )

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close network resources held by instantiated singletons."""
        if "image_resolver" in self.__dict__:
            await self.image_resolver.aclose()
        if "connectivity_monitor" in self.__dict__:
            await self.connectivity_monitor.aclose()

    def reset(self) -> None:
        """
        Clear all cached singleton instances.

        Primarily for tests: lets a test inject mocks and then restore the
        container to a clean state.
        """
        for prop in _SINGLETONS:
            self.__dict__.pop(prop, None)
