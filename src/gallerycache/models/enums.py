"""
Enums for gallerycache models.

Defines enumeration types shared by the cache, connectivity and pagination
services.
"""

from __future__ import annotations

from enum import Enum


class InterfaceKind(str, Enum):
    """Kind of network interface carrying the current connection."""

    WIFI = "wifi"
    CELLULAR = "cellular"
    ETHERNET = "ethernet"
    LOOPBACK = "loopback"
    OTHER = "other"
    UNKNOWN = "unknown"


class LoadState(str, Enum):
    """Pagination controller states."""

    IDLE = "idle"
    LOADING_INITIAL = "loading_initial"
    LOADING_MORE = "loading_more"


class ResolveOutcome(str, Enum):
    """Where a resolved image came from, or which placeholder replaced it."""

    MEMORY = "memory"
    DISK = "disk"
    NETWORK = "network"
    OFFLINE = "offline"  # Placeholder: no connection and nothing cached
    ERROR = "error"  # Placeholder: fetch or decode failed
