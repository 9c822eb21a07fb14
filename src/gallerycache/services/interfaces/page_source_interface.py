"""
Abstract Base Class for paged image listings.

This interface defines the contract the pagination controller uses to
obtain successive pages of image references, enabling:
- Testability via scripted or slow implementations
- Swappable backends (synthetic listing, remote listing API)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from ...models import ImageRef


class PageSourceInterface(ABC):
    """
    Abstract interface for paged image listings.

    Pages are 1-indexed and fixed-size. Implementations may raise
    ``NetworkError`` when a listing cannot be fetched.

    Examples
    --------
    >>> class EmptySource(PageSourceInterface):
    ...     async def fetch_page(self, page: int, page_size: int) -> List[ImageRef]:
    ...         return []
    """

    @abstractmethod
    async def fetch_page(self, page: int, page_size: int) -> List[ImageRef]:
        """
        Fetch one page of image references.

        Parameters
        ----------
        page : int
            1-based page number.
        page_size : int
            Number of references per page.

        Returns
        -------
        List[ImageRef]
            References on the page, in display order.
        """
        pass
