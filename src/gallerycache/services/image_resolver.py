"""
Image resolution through memory, disk and network tiers.

Provides the read path used by the gallery: memory cache first, then the
disk cache, then (when online) an HTTP fetch that writes through to both
cache tiers. Offline misses and failed fetches resolve to SVG placeholders
instead of raising.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

import httpx

from gallerycache.exceptions import DecodeError, NetworkError
from gallerycache.models import (
    DEFAULT_IMAGE_BASE_URL,
    ImageRef,
    ResolvedImage,
    ResolveOutcome,
)
from gallerycache.services.connectivity import ConnectivityMonitor
from gallerycache.services.disk_cache import DiskCacheStore
from gallerycache.services.memory_cache import MemoryCache

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Placeholder SVGs
# ---------------------------------------------------------------------------
_OFFLINE_PLACEHOLDER_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="180" height="180" '
    b'viewBox="0 0 180 180">'
    b'<rect width="180" height="180" fill="#e2e8f0" rx="8"/>'
    b'<path d="M50 80a60 60 0 0 1 80 0M64 96a38 38 0 0 1 52 0" '
    b'stroke="#94a3b8" stroke-width="8" fill="none" stroke-linecap="round"/>'
    b'<circle cx="90" cy="114" r="7" fill="#94a3b8"/>'
    b'<line x1="52" y1="52" x2="128" y2="128" stroke="#94a3b8" '
    b'stroke-width="8" stroke-linecap="round"/>'
    b"</svg>"
)

_ERROR_PLACEHOLDER_SVG = (
    b'<svg xmlns="http://www.w3.org/2000/svg" width="180" height="180" '
    b'viewBox="0 0 180 180">'
    b'<rect width="180" height="180" fill="#e2e8f0" rx="8"/>'
    b'<polygon points="90,48 136,128 44,128" fill="#94a3b8"/>'
    b'<rect x="86" y="74" width="8" height="30" fill="#e2e8f0"/>'
    b'<circle cx="90" cy="115" r="5" fill="#e2e8f0"/>'
    b"</svg>"
)

_PLACEHOLDER_MEDIA_TYPE = "image/svg+xml"
_FALLBACK_MEDIA_TYPE = "image/jpeg"

DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_CONCURRENT_FETCHES = 6


def detect_image_type(data: bytes) -> str | None:
    """Detect an image MIME type from magic bytes.

    Returns
    -------
    str | None
        ``image/jpeg``, ``image/png``, ``image/webp`` or ``image/gif``, or
        ``None`` when *data* does not start like a supported image.
    """
    header = data[:12]
    if header[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if header[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if header[:4] == b"RIFF" and header[8:12] == b"WEBP":
        return "image/webp"
    if header[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return None


class ImageResolver:
    """Resolve image keys to bytes or placeholders.

    Parameters
    ----------
    memory_cache : MemoryCache
        Fast in-process tier.
    disk_cache : DiskCacheStore
        Durable tier, accessed on worker threads.
    connectivity : ConnectivityMonitor
        Consulted before any network fetch.
    client : httpx.AsyncClient | None
        HTTP client to fetch with. When omitted the resolver creates and
        owns one, closed by :meth:`aclose`.
    timeout : float
        Request timeout for an owned client.
    max_concurrent_fetches : int
        Maximum simultaneous HTTP requests.
    image_base_url : str
        Base URL used by :meth:`resolve_ref` to build source URLs.
    """

    def __init__(
        self,
        memory_cache: MemoryCache,
        disk_cache: DiskCacheStore,
        connectivity: ConnectivityMonitor,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_concurrent_fetches: int = DEFAULT_MAX_CONCURRENT_FETCHES,
        image_base_url: str = DEFAULT_IMAGE_BASE_URL,
    ) -> None:
        self._memory = memory_cache
        self._disk = disk_cache
        self._connectivity = connectivity
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout
        self._semaphore = asyncio.Semaphore(max_concurrent_fetches)
        self._image_base_url = image_base_url
        self._inflight: dict[str, asyncio.Future[bytes]] = {}

    # ------------------------------------------------------------------
    # Result construction
    # ------------------------------------------------------------------

    @staticmethod
    def _resolved(key: str, outcome: ResolveOutcome, data: bytes) -> ResolvedImage:
        return ResolvedImage(
            key=key,
            outcome=outcome,
            content=data,
            media_type=detect_image_type(data) or _FALLBACK_MEDIA_TYPE,
        )

    @staticmethod
    def _placeholder(
        key: str, outcome: ResolveOutcome, error: str | None = None
    ) -> ResolvedImage:
        svg = (
            _OFFLINE_PLACEHOLDER_SVG
            if outcome is ResolveOutcome.OFFLINE
            else _ERROR_PLACEHOLDER_SVG
        )
        return ResolvedImage(
            key=key,
            outcome=outcome,
            content=svg,
            media_type=_PLACEHOLDER_MEDIA_TYPE,
            error=error,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def resolve(self, key: str, source_url: str) -> ResolvedImage:
        """Resolve *key*, fetching from *source_url* when no tier has it.

        Flow:
        1. Memory cache HIT -> return bytes.
        2. Disk cache HIT -> populate memory, return bytes.
        3. Offline -> offline placeholder, nothing cached.
        4. Fetch -> write through to memory and disk, trim the disk cache.
        5. Fetch or decode failure -> error placeholder, nothing cached.
        """
        data = self._memory.get(key)
        if data is not None:
            logger.debug("Memory cache HIT: %s", key)
            return self._resolved(key, ResolveOutcome.MEMORY, data)

        data = await asyncio.to_thread(self._disk.get, key)
        if data is not None:
            self._memory.put(key, data)
            return self._resolved(key, ResolveOutcome.DISK, data)

        if not self._connectivity.is_connected:
            logger.info("No network connection, cannot load image: %s", key)
            return self._placeholder(key, ResolveOutcome.OFFLINE)

        try:
            data = await self._fetch_coalesced(key, source_url)
        except (NetworkError, DecodeError) as exc:
            logger.warning("Error loading image %s: %s", key, exc.message)
            return self._placeholder(key, ResolveOutcome.ERROR, error=exc.message)

        return self._resolved(key, ResolveOutcome.NETWORK, data)

    async def resolve_ref(self, ref: ImageRef) -> ResolvedImage:
        """Resolve an :class:`ImageRef` against the configured image service."""
        return await self.resolve(
            ref.cache_key, ref.build_source_url(self._image_base_url)
        )

    async def prefetch(self, refs: Iterable[ImageRef]) -> list[ResolvedImage]:
        """Resolve several references concurrently, preserving order."""
        return list(await asyncio.gather(*(self.resolve_ref(ref) for ref in refs)))

    # ------------------------------------------------------------------
    # Fetch pipeline
    # ------------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                follow_redirects=True,
                timeout=self._timeout,
            )
        return self._client

    async def fetch(self, url: str) -> bytes:
        """Download *url* and check that the body is an image.

        Raises
        ------
        NetworkError
            On transport failure, timeout or a non-2xx status.
        DecodeError
            If the body is not a recognisable image.
        """
        async with self._semaphore:
            try:
                response = await self._get_client().get(url)
            except httpx.TimeoutException as exc:
                raise NetworkError(
                    f"Timeout fetching image: {url}", url=url, original_error=exc
                ) from exc
            except httpx.HTTPError as exc:
                raise NetworkError(
                    f"HTTP error fetching image {url}: {exc}",
                    url=url,
                    original_error=exc,
                ) from exc

        if not response.is_success:
            raise NetworkError(
                f"Unexpected status {response.status_code} fetching image {url}",
                url=url,
                status_code=response.status_code,
            )

        body = response.content
        if detect_image_type(body) is None:
            raise DecodeError(
                f"Failed to create image from data ({len(body)} bytes) from {url}",
                url=url,
            )
        return body

    async def _fetch_coalesced(self, key: str, url: str) -> bytes:
        pending = self._inflight.get(key)
        if pending is not None:
            logger.debug("Joining in-flight fetch for %s", key)
            return await asyncio.shield(pending)

        task = asyncio.ensure_future(self._fetch_and_cache(key, url))
        task.add_done_callback(_consume_result)
        self._inflight[key] = task
        try:
            return await asyncio.shield(task)
        finally:
            if self._inflight.get(key) is task:
                del self._inflight[key]

    async def _fetch_and_cache(self, key: str, url: str) -> bytes:
        logger.info("Downloading image from network: %s", url)
        data = await self.fetch(url)
        self._memory.put(key, data)
        await asyncio.to_thread(self._store_on_disk, key, data)
        return data

    def _store_on_disk(self, key: str, data: bytes) -> None:
        self._disk.put(key, data)
        self._disk.enforce_size_limit()

    async def aclose(self) -> None:
        """Close the HTTP client if the resolver created it."""
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def _consume_result(task: asyncio.Future[bytes]) -> None:
    # Retrieve the exception so an abandoned shared fetch is not reported
    # as "never retrieved".
    if not task.cancelled():
        task.exception()
