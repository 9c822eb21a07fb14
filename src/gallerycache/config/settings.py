"""
Application settings and configuration management.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gallerycache import __version__


class Settings(BaseSettings):
    """Application settings loaded from ``GALLERY_*`` environment variables."""

    # Application
    app_name: str = Field(default="gallerycache")
    app_version: str = Field(default=__version__)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Disk cache
    cache_dir: Path = Field(default=Path("./cache"))
    max_cache_size: int = Field(default=100 * 1024 * 1024, gt=0)  # 100MB
    max_cache_age_days: float = Field(default=7.0, gt=0)
    trim_ratio: float = Field(default=0.75, gt=0, le=1)

    # Memory cache
    memory_cache_max_entries: int = Field(default=100, gt=0)
    memory_cache_max_bytes: int = Field(default=50 * 1024 * 1024, gt=0)

    # Network
    image_base_url: str = Field(default="https://picsum.photos")
    default_image_size: int = Field(default=400, gt=0)
    request_timeout: float = Field(default=15.0, gt=0)
    max_concurrent_fetches: int = Field(default=6, gt=0)

    # Connectivity
    reachability_url: str = Field(default="https://picsum.photos")
    reachability_interval: float = Field(default=5.0, gt=0)
    reachability_timeout: float = Field(default=3.0, gt=0)

    # Pagination
    page_size: int = Field(default=20, gt=0)
    prefetch_threshold: int = Field(default=5, ge=0)

    @field_validator("cache_dir", mode="before")
    @classmethod
    def ensure_path(cls, v: str | Path) -> Path:
        """Ensure directory paths are Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @property
    def images_dir(self) -> Path:
        """Directory holding one blob file per cached image."""
        return self.cache_dir / "images"

    @property
    def index_path(self) -> Path:
        """Persisted key index, kept outside the blob directory."""
        return self.cache_dir / "cache_index.json"

    @property
    def max_cache_age(self) -> timedelta:
        """Maximum blob age before expiry."""
        return timedelta(days=self.max_cache_age_days)

    model_config = SettingsConfigDict(
        env_prefix="GALLERY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
