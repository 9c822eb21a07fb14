"""
In-process LRU cache for image bytes.

Sits in front of the disk cache as an accelerator only: contents are never
persisted and a miss always falls through to the next tier.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100
DEFAULT_MAX_BYTES = 50 * 1024 * 1024  # 50MB


class MemoryCache:
    """Least-recently-used key/blob cache bounded by entry count and bytes.

    Parameters
    ----------
    max_entries : int
        Maximum number of cached blobs.
    max_bytes : int
        Maximum total size of cached blobs. A single blob larger than this
        is not cached.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        max_bytes: int = DEFAULT_MAX_BYTES,
    ) -> None:
        if max_entries <= 0 or max_bytes <= 0:
            raise ValueError("Memory cache bounds must be positive")
        self._max_entries = max_entries
        self._max_bytes = max_bytes
        self._items: OrderedDict[str, bytes] = OrderedDict()
        self._size_bytes = 0
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> bytes | None:
        """Return cached bytes for *key* and mark it most recently used."""
        with self._lock:
            data = self._items.get(key)
            if data is None:
                self.misses += 1
                return None
            self._items.move_to_end(key)
            self.hits += 1
            return data

    def put(self, key: str, data: bytes) -> None:
        """Cache *data* under *key*, evicting least recently used entries."""
        size = len(data)
        with self._lock:
            old = self._items.pop(key, None)
            if old is not None:
                self._size_bytes -= len(old)

            if size > self._max_bytes:
                logger.debug(
                    "Not caching %s in memory (%d bytes exceeds %d)",
                    key,
                    size,
                    self._max_bytes,
                )
                return

            self._items[key] = data
            self._size_bytes += size

            while (
                len(self._items) > self._max_entries
                or self._size_bytes > self._max_bytes
            ):
                evicted_key, evicted = self._items.popitem(last=False)
                self._size_bytes -= len(evicted)
                logger.debug("Memory cache evicted %s", evicted_key)

    def remove(self, key: str) -> None:
        with self._lock:
            old = self._items.pop(key, None)
            if old is not None:
                self._size_bytes -= len(old)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()
            self._size_bytes = 0

    @property
    def size_bytes(self) -> int:
        return self._size_bytes

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, key: object) -> bool:
        return key in self._items
