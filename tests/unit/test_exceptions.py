"""
Tests for custom exceptions module.

This module tests all custom exception classes, their attributes,
inheritance hierarchy, and exit codes.
"""

from __future__ import annotations

import pytest

from gallerycache.exceptions import (
    EXIT_CODE_GENERAL_ERROR,
    EXIT_CODE_INTERRUPTED,
    EXIT_CODE_INVALID_ARGS,
    EXIT_CODE_SUCCESS,
    CacheIOError,
    DecodeError,
    GalleryCacheError,
    NetworkError,
)


class TestGalleryCacheError:
    """Tests for base GalleryCacheError exception."""

    def test_base_error_with_message(self) -> None:
        """Test base error stores message correctly."""
        error = GalleryCacheError("Test error message")
        assert error.message == "Test error message"
        assert str(error) == "Test error message"

    def test_base_error_can_be_raised(self) -> None:
        """Test GalleryCacheError can be raised and caught."""
        with pytest.raises(GalleryCacheError, match="Test error"):
            raise GalleryCacheError("Test error")

    @pytest.mark.parametrize("cls", [CacheIOError, DecodeError, NetworkError])
    def test_subclasses_share_base(self, cls: type) -> None:
        """Test every domain error is a GalleryCacheError."""
        assert issubclass(cls, GalleryCacheError)


class TestCacheIOError:
    """Tests for CacheIOError."""

    def test_default_values(self) -> None:
        error = CacheIOError()
        assert error.message == "Disk cache I/O failed"
        assert error.key is None
        assert error.original_error is None

    def test_custom_values(self) -> None:
        cause = OSError("disk full")
        error = CacheIOError("write failed", key="42", original_error=cause)
        assert error.key == "42"
        assert error.original_error is cause


class TestDecodeError:
    """Tests for DecodeError."""

    def test_default_values(self) -> None:
        error = DecodeError()
        assert error.message == "Response body is not a valid image"
        assert error.url is None

    def test_with_url(self) -> None:
        error = DecodeError("bad bytes", url="https://img.test/1")
        assert error.url == "https://img.test/1"


class TestNetworkError:
    """Tests for NetworkError."""

    def test_default_values(self) -> None:
        error = NetworkError()
        assert error.message == "Network error occurred"
        assert error.url is None
        assert error.status_code is None
        assert error.original_error is None

    def test_with_status_code(self) -> None:
        error = NetworkError("Not found", url="https://img.test", status_code=404)
        assert error.status_code == 404
        assert error.url == "https://img.test"


class TestExitCodes:
    """Tests for CLI exit code constants."""

    def test_exit_codes(self) -> None:
        assert EXIT_CODE_SUCCESS == 0
        assert EXIT_CODE_GENERAL_ERROR == 1
        assert EXIT_CODE_INVALID_ARGS == 2
        assert EXIT_CODE_INTERRUPTED == 130
