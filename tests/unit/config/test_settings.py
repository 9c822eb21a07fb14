"""
Tests for application settings.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest
from pydantic import ValidationError

from gallerycache.config.settings import Settings, get_settings


class TestSettingsDefaults:
    """Tests for default values."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        settings = Settings()

        assert settings.max_cache_size == 100 * 1024 * 1024
        assert settings.max_cache_age == timedelta(days=7)
        assert settings.trim_ratio == 0.75
        assert settings.image_base_url == "https://picsum.photos"
        assert settings.default_image_size == 400
        assert settings.page_size == 20
        assert settings.prefetch_threshold == 5
        assert settings.log_level == "INFO"

    def test_derived_paths(self, tmp_path: Path) -> None:
        settings = Settings(cache_dir=tmp_path)

        assert settings.images_dir == tmp_path / "images"
        assert settings.index_path == tmp_path / "cache_index.json"
        assert settings.index_path.parent != settings.images_dir


class TestSettingsEnvironment:
    """Tests for GALLERY_* environment variables."""

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setenv("GALLERY_CACHE_DIR", str(tmp_path / "c"))
        monkeypatch.setenv("GALLERY_MAX_CACHE_SIZE", "2048")
        monkeypatch.setenv("GALLERY_PAGE_SIZE", "10")

        settings = get_settings()

        assert settings.cache_dir == tmp_path / "c"
        assert settings.max_cache_size == 2048
        assert settings.page_size == 10

    def test_log_level_normalised(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GALLERY_LOG_LEVEL", "debug")

        assert Settings().log_level == "DEBUG"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ValidationError, match="Invalid log level"):
            Settings(log_level="LOUD")

    @pytest.mark.parametrize(
        "field,value",
        [("max_cache_size", 0), ("trim_ratio", 1.5), ("page_size", 0)],
    )
    def test_rejects_out_of_range(self, field: str, value: object) -> None:
        with pytest.raises(ValidationError):
            Settings(**{field: value})
