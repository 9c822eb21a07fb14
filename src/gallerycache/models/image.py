"""
Image models for the gallery pipeline.

Defines the logical image identity, resolution results and the pagination
snapshot handed to the UI layer.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import ResolveOutcome

DEFAULT_IMAGE_BASE_URL = "https://picsum.photos"
DEFAULT_IMAGE_SIZE = 400


class ImageRef(BaseModel):
    """Logical image identity.

    ``id`` is caller-assigned, stable across runs and used as the cache key.
    The source URL is derived from ``(id, width, height)`` and is only used
    for network fetches.
    """

    id: str = Field(..., min_length=1, description="Stable image identifier")
    width: int = Field(default=DEFAULT_IMAGE_SIZE, gt=0, description="Width in px")
    height: int = Field(default=DEFAULT_IMAGE_SIZE, gt=0, description="Height in px")

    model_config = ConfigDict(frozen=True)

    def build_source_url(self, base_url: str = DEFAULT_IMAGE_BASE_URL) -> str:
        """Build the fetch URL for this image against *base_url*."""
        return f"{base_url.rstrip('/')}/{self.width}/{self.height}?random={self.id}"

    @property
    def source_url(self) -> str:
        """Fetch URL against the default image service."""
        return self.build_source_url()

    @property
    def cache_key(self) -> str:
        """Key used for memory and disk cache lookups."""
        return self.id


class ResolvedImage(BaseModel):
    """Result of resolving one image key.

    Attributes
    ----------
    key : str
        Cache key that was resolved.
    outcome : ResolveOutcome
        Tier that served the bytes, or the placeholder kind.
    content : bytes
        Image bytes, or SVG placeholder bytes for placeholder outcomes.
    media_type : str
        MIME type of ``content``.
    error : str | None
        Failure reason for ``ResolveOutcome.ERROR``.
    """

    key: str
    outcome: ResolveOutcome
    content: bytes
    media_type: str
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_placeholder(self) -> bool:
        """True when ``content`` is a placeholder rather than the image."""
        return self.outcome in (ResolveOutcome.OFFLINE, ResolveOutcome.ERROR)


class PageState(BaseModel):
    """Snapshot of the pagination controller's state."""

    current_page: int = Field(default=1, ge=1)
    is_loading: bool = False
    has_loaded_initial: bool = False
    images: List[ImageRef] = Field(default_factory=list)
