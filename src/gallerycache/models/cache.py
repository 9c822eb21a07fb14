"""
Disk cache and connectivity models.

Defines Pydantic models describing cached blobs, cache statistics and the
observed network state.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import InterfaceKind


class CacheEntry(BaseModel):
    """One cached blob on disk."""

    key: str = Field(..., description="Cache key")
    byte_length: int = Field(..., ge=0, description="Blob size in bytes")
    created_at: datetime = Field(..., description="When the blob was written")


class CacheIndex(BaseModel):
    """Persisted, insertion-ordered list of known cache keys."""

    keys: List[str] = Field(default_factory=list)


class CacheStats(BaseModel):
    """Statistics about the disk cache contents.

    Attributes
    ----------
    entry_count : int
        Number of blob files on disk.
    indexed_count : int
        Number of keys in the persisted index.
    total_size_bytes : int
        Sum of blob file sizes.
    max_size_bytes : int
        Configured hard cap.
    oldest_entry : datetime | None
        Creation time of the oldest blob.
    newest_entry : datetime | None
        Creation time of the newest blob.
    """

    entry_count: int
    indexed_count: int
    total_size_bytes: int
    max_size_bytes: int
    oldest_entry: Optional[datetime] = None
    newest_entry: Optional[datetime] = None


class ConnectivityState(BaseModel):
    """Current network reachability."""

    is_connected: bool = True
    interface_kind: InterfaceKind = InterfaceKind.UNKNOWN

    model_config = ConfigDict(frozen=True)
