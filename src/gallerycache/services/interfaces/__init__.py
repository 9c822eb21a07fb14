"""
Service interfaces for gallerycache.

Abstract base classes describing collaborators that can be swapped for
tests or alternative backends.
"""

from __future__ import annotations

from .page_source_interface import PageSourceInterface

__all__ = ["PageSourceInterface"]
