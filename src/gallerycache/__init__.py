"""
gallerycache - Image acquisition and caching pipeline for photo galleries.

Resolves logical image references through a memory cache, a size- and
age-bounded disk cache and the network, and keeps a paginated image list
usable while the device is offline.
"""

from __future__ import annotations

__version__ = "0.3.0"
__author__ = "gallerycache"
__license__ = "AGPL-3.0-or-later"

__all__ = ["__version__", "__author__", "__license__"]
