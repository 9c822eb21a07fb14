"""
Shared test helpers for gallerycache tests.
"""

from __future__ import annotations

import os

from gallerycache.models import ConnectivityState, InterfaceKind
from gallerycache.services.disk_cache import DiskCacheStore, key_to_filename

# Minimal valid-looking image payloads (magic bytes + padding)
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"\x00" * 2048
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 2048

OFFLINE = ConnectivityState(is_connected=False, interface_kind=InterfaceKind.UNKNOWN)
ONLINE_WIFI = ConnectivityState(is_connected=True, interface_kind=InterfaceKind.WIFI)


def make_jpeg(size: int) -> bytes:
    """Build a JPEG-prefixed payload of exactly *size* bytes."""
    header = b"\xff\xd8\xff\xe0"
    return header + b"\x00" * (size - len(header))


def set_created(store: DiskCacheStore, key: str, timestamp: float) -> None:
    """Backdate a blob's creation (modification) time."""
    path = store.blob_dir / key_to_filename(key)
    os.utime(path, (timestamp, timestamp))


def assert_index_matches_disk(store: DiskCacheStore) -> None:
    """Every indexed key has a blob and every blob is indexed."""
    blobs = {
        p.name
        for p in store.blob_dir.iterdir()
        if p.name.endswith(".jpg") and not p.name.startswith(".")
    }
    indexed = store.list_keys()
    assert len(indexed) == len(set(indexed))
    assert {key_to_filename(key) for key in indexed} == blobs
    assert {entry.key for entry in store.entries()} == set(indexed)
