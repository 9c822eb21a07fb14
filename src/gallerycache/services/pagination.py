"""
Paginated, offline-aware image listing.

The controller owns the ordered list of image references shown by the UI.
It grows the list one page at a time while online and falls back to the
keys already in the disk cache while offline.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from gallerycache.exceptions import GalleryCacheError
from gallerycache.models import (
    DEFAULT_IMAGE_SIZE,
    ConnectivityState,
    ImageRef,
    LoadState,
    PageState,
)
from gallerycache.services.connectivity import ConnectivityMonitor, Subscription
from gallerycache.services.disk_cache import DiskCacheStore
from gallerycache.services.interfaces import PageSourceInterface

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
DEFAULT_PREFETCH_THRESHOLD = 5

PageListener = Callable[[PageState], None]


class SequentialPageSource(PageSourceInterface):
    """Page source yielding sequential numeric ids.

    Page ``n`` holds ids ``(n-1)*page_size+1`` through ``n*page_size``
    inclusive.
    """

    def __init__(self, image_size: int = DEFAULT_IMAGE_SIZE) -> None:
        self.image_size = image_size

    async def fetch_page(self, page: int, page_size: int) -> List[ImageRef]:
        if page < 1 or page_size < 1:
            raise ValueError("page and page_size must be positive")
        first = (page - 1) * page_size + 1
        return [
            ImageRef(id=str(i), width=self.image_size, height=self.image_size)
            for i in range(first, page * page_size + 1)
        ]


class PaginationController:
    """Manage the growable, ordered list of images shown in the gallery.

    State machine: ``idle`` -> ``loading_initial`` (via :meth:`load_images`)
    or ``loading_more`` (via :meth:`load_more_images`) -> ``idle``. Only one
    load is in flight at a time; the state changes before the first
    suspension point, so overlapping calls are rejected.

    Parameters
    ----------
    disk_cache : DiskCacheStore
        Source of cached keys for the offline-visible page.
    connectivity : ConnectivityMonitor
        Consulted before every network page load.
    page_source : PageSourceInterface | None
        Listing backend; defaults to :class:`SequentialPageSource`.
    page_size : int
        Number of references per page.
    prefetch_threshold : int
        How close to the end of the list a visible index must be for
        :meth:`should_load_more` to request the next page.
    cached_image_size : int
        Width and height given to references rebuilt from cached keys.
    """

    def __init__(
        self,
        disk_cache: DiskCacheStore,
        connectivity: ConnectivityMonitor,
        *,
        page_source: Optional[PageSourceInterface] = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        prefetch_threshold: int = DEFAULT_PREFETCH_THRESHOLD,
        cached_image_size: int = DEFAULT_IMAGE_SIZE,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be positive")
        self._disk = disk_cache
        self._connectivity = connectivity
        self._page_source = page_source or SequentialPageSource(cached_image_size)
        self._page_size = page_size
        self._prefetch_threshold = prefetch_threshold
        self._cached_image_size = cached_image_size

        self._state = LoadState.IDLE
        self._current_page = 1
        self._has_loaded_initial = False
        self._images: List[ImageRef] = []
        self._listeners: List[PageListener] = []
        self._subscription: Optional[Subscription] = None

    # ------------------------------------------------------------------
    # State access
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def is_loading(self) -> bool:
        return self._state is not LoadState.IDLE

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def page_size(self) -> int:
        return self._page_size

    def snapshot(self) -> PageState:
        """Return a copy of the current page state."""
        return PageState(
            current_page=self._current_page,
            is_loading=self.is_loading,
            has_loaded_initial=self._has_loaded_initial,
            images=list(self._images),
        )

    def get_image_count(self) -> int:
        return len(self._images)

    def get_image(self, index: int) -> Optional[ImageRef]:
        """Return the reference at *index*, or ``None`` when out of range."""
        if 0 <= index < len(self._images):
            return self._images[index]
        return None

    def is_offline(self) -> bool:
        return not self._connectivity.is_connected

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: PageListener) -> Callable[[], None]:
        """Register *listener* for "images updated" notifications.

        Returns
        -------
        Callable[[], None]
            Function that removes the listener again.
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.error("Images-updated listener raised", exc_info=True)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _cached_refs(self) -> List[ImageRef]:
        return [
            ImageRef(
                id=key, width=self._cached_image_size, height=self._cached_image_size
            )
            for key in self._disk.list_keys()
        ]

    async def load_images(self) -> None:
        """Reset the list and load the first page.

        Cached keys are published first as an offline-visible page. When
        connected, page 1 then replaces them; when disconnected the cached
        set is kept.
        """
        if self.is_loading:
            logger.debug("load_images ignored; a load is already in flight")
            return

        self._state = LoadState.LOADING_INITIAL
        self._current_page = 1
        self._images = []

        try:
            cached = self._cached_refs()
            if cached:
                logger.info("Showing %d cached images before first page", len(cached))
                self._images = cached
                self._publish()

            if self._connectivity.is_connected:
                page = await self._page_source.fetch_page(1, self._page_size)
                self._images = list(page)
                self._current_page = 2
                logger.info("Loaded page 1 (%d images)", len(page))
            else:
                logger.info(
                    "App is in offline mode - showing %d cached images only",
                    len(self._images),
                )
        except GalleryCacheError as exc:
            logger.warning("Failed to load first page: %s", exc.message)
        finally:
            self._state = LoadState.IDLE
            self._has_loaded_initial = True

        self._publish()

    async def load_more_images(self) -> bool:
        """Append the next page.

        No-op while another load is in flight or while disconnected.

        Returns
        -------
        bool
            ``True`` if a page was appended.
        """
        if self.is_loading:
            logger.debug("load_more_images ignored; state=%s", self._state.value)
            return False
        if not self._connectivity.is_connected:
            logger.debug("load_more_images ignored; offline")
            return False

        self._state = LoadState.LOADING_MORE
        page_number = self._current_page
        try:
            page = await self._page_source.fetch_page(page_number, self._page_size)
        except GalleryCacheError as exc:
            logger.warning("Failed to load page %d: %s", page_number, exc.message)
            return False
        finally:
            self._state = LoadState.IDLE

        self._images.extend(page)
        self._current_page = page_number + 1
        logger.info(
            "Loaded page %d (%d images, %d total)",
            page_number,
            len(page),
            len(self._images),
        )
        self._publish()
        return True

    def should_load_more(self, index: int) -> bool:
        """Whether displaying *index* should trigger :meth:`load_more_images`."""
        return (
            self._connectivity.is_connected
            and not self.is_loading
            and index >= len(self._images) - self._prefetch_threshold
        )

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    def handle_offline_transition(self) -> None:
        """Make sure something is visible after losing the network.

        Already-loaded references stay valid offline, since each one
        resolves from cache or to a placeholder. An empty list is rebuilt
        from the cached keys.
        """
        if self._images:
            return
        cached = self._cached_refs()
        if not cached:
            logger.info("Offline with no cached images")
            return
        self._images = cached
        logger.info("Offline; showing %d cached images", len(cached))
        self._publish()

    async def handle_connectivity_change(self, state: ConnectivityState) -> None:
        """React to a connected/disconnected transition.

        On reconnect, reloads when nothing from the network has been loaded
        yet. On disconnect, falls back to cached images.
        """
        if state.is_connected:
            if not self._images or self._current_page == 1:
                logger.info("Network reconnected, loading images...")
                await self.load_images()
        else:
            logger.info("Network disconnected, handling offline transition...")
            self.handle_offline_transition()

    def attach(self) -> None:
        """Subscribe to the connectivity monitor's transitions."""
        if self._subscription is None:
            self._subscription = self._connectivity.subscribe(
                self.handle_connectivity_change
            )

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
