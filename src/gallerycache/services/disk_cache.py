"""
Durable disk cache for image blobs.

Stores one file per cached image in a blob directory and keeps a persisted
index of known keys beside it. Existence is always decided by the
filesystem; the index is an enumeration aid that every mutating operation
keeps in step with the blob files.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Iterator, NamedTuple
from urllib.parse import quote, unquote
from uuid import uuid4

from pydantic import ValidationError

from gallerycache.exceptions import CacheIOError
from gallerycache.models import CacheEntry, CacheIndex, CacheStats

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Blob naming
# ---------------------------------------------------------------------------
_BLOB_SUFFIX = ".jpg"
_TMP_MARKER = ".tmp."
_HASHED_PREFIX = "@"
# Stays well under the common 255-byte NAME_MAX
_MAX_NAME_LENGTH = 200

DEFAULT_MAX_SIZE_BYTES = 100 * 1024 * 1024  # 100MB
DEFAULT_MAX_AGE = timedelta(days=7)
DEFAULT_TRIM_RATIO = 0.75


def key_to_filename(key: str) -> str:
    """Map a cache key to its blob file name.

    The key is percent-encoded with no safe characters so that any key maps
    to a single path component, and the mapping is reversible. A leading dot
    is escaped so blob names never collide with temporary files.

    Keys whose encoded name would be too long for the filesystem (full URLs,
    for example) map to ``@<sha256>.jpg`` instead. Percent-encoding never
    emits ``@``, so the two forms cannot collide. Hashed names are not
    reversible; the store resolves them through its index.

    Raises
    ------
    ValueError
        If *key* is empty.
    """
    if not key:
        raise ValueError("Cache key must not be empty")
    quoted = quote(key, safe="")
    if quoted.startswith("."):
        quoted = "%2E" + quoted[1:]
    name = f"{quoted}{_BLOB_SUFFIX}"
    if len(name) > _MAX_NAME_LENGTH:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return f"{_HASHED_PREFIX}{digest}{_BLOB_SUFFIX}"
    return name


def is_hashed_filename(name: str) -> bool:
    """Whether *name* is a hashed blob name for an over-long key."""
    return name.startswith(_HASHED_PREFIX) and name.endswith(_BLOB_SUFFIX)


def filename_to_key(name: str) -> str | None:
    """Reverse :func:`key_to_filename`.

    Returns ``None`` for non-blob files and for hashed names, which only the
    index can resolve.
    """
    if name.startswith((".", _HASHED_PREFIX)) or not name.endswith(_BLOB_SUFFIX):
        return None
    stem = name[: -len(_BLOB_SUFFIX)]
    if not stem:
        return None
    return unquote(stem)


class _Blob(NamedTuple):
    key: str
    path: Path
    size: int
    mtime: float


class DiskCacheStore:
    """Size- and age-bounded key/blob store on local storage.

    Mutating operations (``put``, ``remove``, ``clear_all``, the eviction
    passes and ``reconcile``) are serialised by one lock per store so that
    the index and the blob directory stay in lockstep. Every filesystem
    failure is logged and recovered; nothing here raises ``OSError`` to the
    caller.

    Parameters
    ----------
    blob_dir : Path
        Directory holding one file per cached image.
    index_path : Path
        JSON file listing known keys, outside ``blob_dir``.
    max_size_bytes : int
        Hard cap checked by :meth:`enforce_size_limit`.
    max_age : timedelta
        Age after which :meth:`evict_expired` removes a blob.
    trim_ratio : float
        Fraction of ``max_size_bytes`` to trim down to once the cap is
        exceeded.
    clock : Callable[[], float]
        Source of the current POSIX time, used for expiry.
    evict_on_open : bool
        Run :meth:`evict_expired` once during construction. Maintenance
        tools that report what they remove turn this off.
    """

    def __init__(
        self,
        blob_dir: Path,
        index_path: Path,
        *,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        max_age: timedelta = DEFAULT_MAX_AGE,
        trim_ratio: float = DEFAULT_TRIM_RATIO,
        clock: Callable[[], float] = time.time,
        evict_on_open: bool = True,
    ) -> None:
        self._blob_dir = blob_dir
        self._index_path = index_path
        self._max_size_bytes = max_size_bytes
        self._max_age = max_age
        self._trim_ratio = trim_ratio
        self._clock = clock
        self._lock = threading.RLock()
        self._passthrough = False
        self._keys: list[str] = []
        # Hashed blob name -> key, for keys too long to encode in a name
        self._hashed_names: dict[str, str] = {}

        self.ensure_directories()
        if self._passthrough:
            return

        self._keys = self._load_index()
        for key in self._keys:
            self._remember_name(key)
        self.reconcile()
        if evict_on_open:
            self.evict_expired()
        logger.info(
            "Disk cache ready at %s (%d indexed keys)", self._blob_dir, len(self._keys)
        )

    @property
    def blob_dir(self) -> Path:
        return self._blob_dir

    @property
    def index_path(self) -> Path:
        return self._index_path

    @property
    def max_size_bytes(self) -> int:
        return self._max_size_bytes

    @property
    def passthrough(self) -> bool:
        """True when the cache directory is unusable and every lookup misses."""
        return self._passthrough

    # ------------------------------------------------------------------
    # Directory and index management
    # ------------------------------------------------------------------

    def ensure_directories(self) -> None:
        """Create the blob and index directories if they do not exist.

        If directory creation fails, the store falls back to passthrough
        mode where reads miss and writes are skipped.
        """
        try:
            self._blob_dir.mkdir(parents=True, exist_ok=True)
            self._index_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            logger.error(
                "Failed to create disk cache directories; "
                "falling back to passthrough mode",
                exc_info=True,
            )
            self._passthrough = True

    def _load_index(self) -> list[str]:
        if not self._index_path.is_file():
            return []
        try:
            index = CacheIndex.model_validate_json(self._index_path.read_bytes())
        except OSError:
            logger.warning(
                "Failed to read cache index %s; rebuilding from disk",
                self._index_path,
                exc_info=True,
            )
            return []
        except ValidationError:
            logger.warning(
                "Corrupt cache index %s; rebuilding from disk", self._index_path
            )
            return []
        # Preserve first-seen order, drop duplicates and empty keys
        return [k for k in dict.fromkeys(index.keys) if k]

    def _save_index(self) -> None:
        payload = CacheIndex(keys=self._keys).model_dump_json().encode("utf-8")
        try:
            self._write_atomic(self._index_path, payload)
        except CacheIOError:
            logger.error(
                "Failed to persist cache index to %s", self._index_path, exc_info=True
            )

    def _drop_keys(self, keys: list[str]) -> None:
        if not keys:
            return
        removed = set(keys)
        self._keys = [k for k in self._keys if k not in removed]
        self._save_index()

    # ------------------------------------------------------------------
    # Filesystem helpers
    # ------------------------------------------------------------------

    def _blob_path(self, key: str) -> Path:
        return self._blob_dir / key_to_filename(key)

    def _remember_name(self, key: str) -> None:
        name = key_to_filename(key)
        if is_hashed_filename(name):
            self._hashed_names[name] = key

    def _key_for_name(self, name: str) -> str | None:
        if is_hashed_filename(name):
            return self._hashed_names.get(name)
        return filename_to_key(name)

    @staticmethod
    def _write_atomic(path: Path, data: bytes) -> None:
        """Write *data* to a temporary sibling then rename it over *path*."""
        tmp_path = path.with_name(f".{path.stem}{_TMP_MARKER}{uuid4().hex}")
        try:
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError as exc:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.debug("Could not remove temporary file %s", tmp_path)
            raise CacheIOError(
                f"Failed to write {path.name}", key=path.stem, original_error=exc
            ) from exc

    def _scan(self) -> Iterator[_Blob]:
        """Yield every blob file currently in the blob directory."""
        try:
            children = list(self._blob_dir.iterdir())
        except OSError:
            logger.warning(
                "Failed to list disk cache directory %s", self._blob_dir, exc_info=True
            )
            return
        for path in children:
            key = self._key_for_name(path.name)
            if key is None:
                continue
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue
            except OSError:
                logger.warning("Failed to stat cached file %s", path, exc_info=True)
                continue
            if not path.is_file():
                continue
            yield _Blob(key=key, path=path, size=stat.st_size, mtime=stat.st_mtime)

    @staticmethod
    def _delete_blob(blob: _Blob) -> bool:
        try:
            blob.path.unlink()
        except FileNotFoundError:
            return True
        except OSError:
            logger.warning(
                "Failed to delete cached file: %s", blob.path, exc_info=True
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Public API: blob access
    # ------------------------------------------------------------------

    def put(self, key: str, data: bytes) -> None:
        """Write *data* under *key* and record the key in the index.

        Re-adding an existing key overwrites the blob and leaves the index
        unchanged. Write failures are logged and the entry stays absent. An
        empty key is ignored.
        """
        if self._passthrough:
            logger.debug("Passthrough mode; not caching %s", key)
            return
        if not key:
            logger.warning("Ignoring image with an empty cache key")
            return

        path = self._blob_path(key)
        with self._lock:
            self._remember_name(key)
            try:
                self._write_atomic(path, data)
            except CacheIOError:
                logger.error(
                    "Failed to cache image to disk: %s", key, exc_info=True
                )
                return

            if key not in self._keys:
                self._keys.append(key)
                self._save_index()

        logger.info("Image cached to disk: %s (%d bytes)", key, len(data))

    def get(self, key: str) -> bytes | None:
        """Return the cached bytes for *key*, or ``None`` on a miss.

        Only the filesystem is consulted; a key missing from the index is
        still served if its blob exists. An empty key is a miss.
        """
        if self._passthrough or not key:
            return None

        path = self._blob_path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            logger.debug("Disk cache MISS: %s", key)
            return None
        except OSError:
            logger.warning("Failed to read cached image %s", key, exc_info=True)
            return None

        logger.debug("Disk cache HIT: %s", key)
        return data

    def exists(self, key: str) -> bool:
        """Check whether a blob exists for *key*."""
        if self._passthrough or not key:
            return False
        path = self._blob_path(key)
        try:
            return path.is_file()
        except OSError:
            logger.warning("Failed to check cached file %s", path, exc_info=True)
            return False

    def remove(self, key: str) -> bool:
        """Delete the blob for *key* and drop it from the index.

        Returns
        -------
        bool
            ``True`` if the key is gone afterwards.
        """
        if self._passthrough or not key:
            return False

        path = self._blob_path(key)
        with self._lock:
            if not self._delete_blob(_Blob(key, path, 0, 0.0)):
                return False
            self._drop_keys([key])
        logger.info("Removed cached image: %s", key)
        return True

    def list_keys(self) -> list[str]:
        """Return the persisted index contents in insertion order."""
        with self._lock:
            return list(self._keys)

    def total_size(self) -> int:
        """Sum of all blob file sizes in bytes."""
        if self._passthrough:
            return 0
        return sum(blob.size for blob in self._scan())

    def entries(self) -> list[CacheEntry]:
        """Describe every blob on disk, oldest first."""
        if self._passthrough:
            return []
        blobs = sorted(self._scan(), key=lambda b: (b.mtime, b.key))
        return [
            CacheEntry(
                key=blob.key,
                byte_length=blob.size,
                created_at=datetime.fromtimestamp(blob.mtime, tz=timezone.utc),
            )
            for blob in blobs
        ]

    def stats(self) -> CacheStats:
        """Compute statistics about the disk cache contents."""
        entries = self.entries()
        return CacheStats(
            entry_count=len(entries),
            indexed_count=len(self.list_keys()),
            total_size_bytes=sum(e.byte_length for e in entries),
            max_size_bytes=self._max_size_bytes,
            oldest_entry=entries[0].created_at if entries else None,
            newest_entry=entries[-1].created_at if entries else None,
        )

    # ------------------------------------------------------------------
    # Public API: maintenance
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        """Delete every blob and empty the index.

        Keys whose blob could not be deleted stay in the index.
        """
        if self._passthrough:
            return

        with self._lock:
            survivors: set[str] = set()
            removed = 0
            for blob in self._scan():
                if self._delete_blob(blob):
                    removed += 1
                else:
                    survivors.add(blob.key)
            self._keys = [k for k in self._keys if k in survivors]
            self._save_index()

        logger.info("All cache cleared (%d files removed)", removed)

    def evict_expired(self, max_age: timedelta | None = None) -> list[str]:
        """Remove blobs created more than *max_age* ago.

        Parameters
        ----------
        max_age : timedelta | None
            Age limit; defaults to the store's configured ``max_age``.

        Returns
        -------
        list[str]
            Keys that were removed.
        """
        if self._passthrough:
            return []

        limit = self._max_age if max_age is None else max_age
        cutoff = self._clock() - limit.total_seconds()

        with self._lock:
            removed = [
                blob.key
                for blob in self._scan()
                if blob.mtime < cutoff and self._delete_blob(blob)
            ]
            self._drop_keys(removed)

        for key in removed:
            logger.info("Removed old cached image: %s", key)
        return removed

    def evict_to_fit(self, target_size: int) -> list[str]:
        """Delete oldest-created blobs until the total size is <= *target_size*.

        Returns
        -------
        list[str]
            Keys that were removed, oldest first.
        """
        if self._passthrough:
            return []

        with self._lock:
            blobs = sorted(self._scan(), key=lambda b: (b.mtime, b.key))
            total = sum(blob.size for blob in blobs)
            removed: list[str] = []
            for blob in blobs:
                if total <= target_size:
                    break
                if self._delete_blob(blob):
                    total -= blob.size
                    removed.append(blob.key)
            self._drop_keys(removed)

        if removed:
            logger.info(
                "Evicted %d cached images to fit %d bytes (now %d bytes)",
                len(removed),
                target_size,
                total,
            )
        return removed

    def enforce_size_limit(self) -> bool:
        """Trim the cache to ``trim_ratio`` of the cap once the cap is exceeded.

        Returns
        -------
        bool
            ``True`` if an eviction pass ran.
        """
        if self._passthrough:
            return False

        with self._lock:
            current = self.total_size()
            if current <= self._max_size_bytes:
                return False
            logger.info(
                "Cache size (%d) exceeds limit (%d), cleaning...",
                current,
                self._max_size_bytes,
            )
            self.evict_to_fit(int(self._max_size_bytes * self._trim_ratio))
        return True

    def reconcile(self) -> None:
        """Bring the index back in step with the blob directory.

        Removes leftover temporary files and hashed blobs whose key is
        unknown, drops index keys whose blob is gone and indexes blobs the
        index does not know about.
        """
        if self._passthrough:
            return

        with self._lock:
            try:
                strays = [
                    p
                    for p in self._blob_dir.iterdir()
                    if (p.name.startswith(".") and _TMP_MARKER in p.name)
                    or (
                        is_hashed_filename(p.name)
                        and self._key_for_name(p.name) is None
                    )
                ]
            except OSError:
                strays = []
            for stray in strays:
                try:
                    stray.unlink()
                    logger.debug("Removed stray file %s", stray)
                except OSError:
                    logger.warning(
                        "Failed to remove stray file %s", stray, exc_info=True
                    )

            blobs = sorted(self._scan(), key=lambda b: (b.mtime, b.key))
            on_disk = {blob.key for blob in blobs}
            keys = [k for k in self._keys if k in on_disk]
            known = set(keys)
            keys.extend(blob.key for blob in blobs if blob.key not in known)

            if keys != self._keys:
                logger.info(
                    "Reconciled cache index: %d -> %d keys", len(self._keys), len(keys)
                )
                self._keys = keys
                self._save_index()
            elif not self._index_path.exists():
                self._save_index()
