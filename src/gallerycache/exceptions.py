"""
Custom exceptions for the gallerycache application.

This module defines domain-specific exceptions raised by the disk cache and
the image fetch pipeline. Cache misses are not exceptions; lookups return
``None``.
"""

from __future__ import annotations

# CLI exit codes
EXIT_CODE_SUCCESS = 0
EXIT_CODE_GENERAL_ERROR = 1
EXIT_CODE_INVALID_ARGS = 2
EXIT_CODE_INTERRUPTED = 130


class GalleryCacheError(Exception):
    """Base exception for all gallerycache errors."""

    def __init__(self, message: str) -> None:
        """
        Initialize GalleryCacheError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        """
        self.message = message
        super().__init__(message)


class CacheIOError(GalleryCacheError):
    """
    Exception raised when a disk cache read, write or delete fails.

    Disk cache operations recover from this locally: the failure is logged
    and the entry is treated as absent.

    Attributes
    ----------
    message : str
        Human-readable error message.
    key : str | None
        Cache key involved in the failed operation, if any.
    original_error : Exception | None
        The underlying ``OSError``.
    """

    def __init__(
        self,
        message: str = "Disk cache I/O failed",
        key: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize CacheIOError.

        Parameters
        ----------
        message : str, optional
            Human-readable error message (default: "Disk cache I/O failed").
        key : str | None, optional
            Cache key involved (default: None).
        original_error : Exception | None, optional
            The underlying exception (default: None).
        """
        self.key = key
        self.original_error = original_error
        super().__init__(message)


class DecodeError(GalleryCacheError):
    """
    Exception raised when fetched bytes are not a recognisable image.

    Attributes
    ----------
    message : str
        Human-readable error message.
    url : str | None
        URL the bytes were fetched from.
    """

    def __init__(
        self,
        message: str = "Response body is not a valid image",
        url: str | None = None,
    ) -> None:
        """
        Initialize DecodeError.

        Parameters
        ----------
        message : str, optional
            Human-readable error message.
        url : str | None, optional
            Source URL (default: None).
        """
        self.url = url
        super().__init__(message)


class NetworkError(GalleryCacheError):
    """
    Exception raised for network-related failures.

    Wraps transport failures (connection errors, timeouts) and non-2xx
    responses. The resolver does not retry; it converts this exception into
    an error placeholder.

    Attributes
    ----------
    message : str
        Human-readable error message.
    url : str | None
        Requested URL.
    status_code : int | None
        HTTP status for non-2xx responses, ``None`` for transport failures.
    original_error : Exception | None
        The original exception that caused this error.

    Examples
    --------
    >>> try:
    ...     data = await resolver.fetch(url)
    ... except NetworkError as e:
    ...     print(f"Fetch failed ({e.status_code}): {e.message}")
    """

    def __init__(
        self,
        message: str = "Network error occurred",
        url: str | None = None,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ) -> None:
        """
        Initialize NetworkError.

        Parameters
        ----------
        message : str, optional
            Human-readable error message (default: "Network error occurred").
        url : str | None, optional
            Requested URL (default: None).
        status_code : int | None, optional
            HTTP status code for non-2xx responses (default: None).
        original_error : Exception | None, optional
            The original exception that caused this error (default: None).
        """
        self.url = url
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(message)
