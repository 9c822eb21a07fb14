"""
Unit tests for cache CLI commands.

Covers ``status``, ``list``, ``prune``, ``purge`` and ``warm``. Commands run
against a real container rooted in a temporary directory; only the image
service is replaced with an ``httpx.MockTransport``.
"""

from __future__ import annotations

import time
from functools import cached_property
from typing import Callable, Iterator, List
from unittest.mock import patch

import httpx
import pytest
import typer
from typer.testing import CliRunner

from gallerycache.cli.commands import cache as cache_module
from gallerycache.config.settings import Settings
from gallerycache.container import Container
from gallerycache.services.image_resolver import ImageResolver
from tests.helpers import JPEG_BYTES, make_jpeg, set_created

# Create test apps that wrap each command
test_status_app = typer.Typer()
test_status_app.command(name="status")(cache_module.status)

test_list_app = typer.Typer()
test_list_app.command(name="list")(cache_module.list_entries)

test_prune_app = typer.Typer()
test_prune_app.command(name="prune")(cache_module.prune)

test_purge_app = typer.Typer()
test_purge_app.command(name="purge")(cache_module.purge)

test_warm_app = typer.Typer()
test_warm_app.command(name="warm")(cache_module.warm)

runner = CliRunner()


# ═══════════════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def image_requests() -> List[httpx.Request]:
    return []


@pytest.fixture
def image_status() -> List[int]:
    """Mutable status code served by the fake image service."""
    return [200]


@pytest.fixture
def build_container(
    test_settings: Settings,
    image_requests: List[httpx.Request],
    image_status: List[int],
) -> Iterator[Callable[[], Container]]:
    """Patch the command module to build containers from test settings."""

    def handler(request: httpx.Request) -> httpx.Response:
        image_requests.append(request)
        return httpx.Response(image_status[0], content=JPEG_BYTES)

    class _TestContainer(Container):
        # Built lazily so that opening the container does not touch disk_cache
        @cached_property
        def image_resolver(self) -> ImageResolver:
            return ImageResolver(
                self.memory_cache,
                self.disk_cache,
                self.connectivity_monitor,
                client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
                image_base_url=test_settings.image_base_url,
            )

    def factory() -> Container:
        return _TestContainer(settings=test_settings)

    with patch.object(cache_module, "_build_container", side_effect=factory):
        yield factory


@pytest.fixture
def seeded(build_container: Callable[[], Container]) -> Container:
    """Container whose disk cache holds two images."""
    container = build_container()
    container.disk_cache.put("a", make_jpeg(1024))
    container.disk_cache.put("b", make_jpeg(2048))
    return container


# ═══════════════════════════════════════════════════════════════════════════
# format_size
# ═══════════════════════════════════════════════════════════════════════════


class TestFormatSize:
    """Tests for human-readable sizes."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (512, "512 B"),
            (2048, "2.0 KB"),
            (5 * 1024 * 1024, "5.0 MB"),
            (3 * 1024 * 1024 * 1024, "3.0 GB"),
        ],
    )
    def test_format_size(self, size: int, expected: str) -> None:
        assert cache_module.format_size(size) == expected


# ═══════════════════════════════════════════════════════════════════════════
# status / list
# ═══════════════════════════════════════════════════════════════════════════


class TestStatusCommand:
    """Tests for `cache status`."""

    def test_status_shows_counts(self, seeded: Container) -> None:
        result = runner.invoke(test_status_app, [])

        assert result.exit_code == 0
        assert "Image Cache Status" in result.stdout
        assert "Cached files" in result.stdout
        assert "3.0 KB" in result.stdout
        assert "Oldest file" in result.stdout

    def test_status_empty_cache(self, build_container: Callable[[], Container]) -> None:
        result = runner.invoke(test_status_app, [])

        assert result.exit_code == 0
        assert "Oldest file" not in result.stdout


class TestListCommand:
    """Tests for `cache list`."""

    def test_list_empty(self, build_container: Callable[[], Container]) -> None:
        result = runner.invoke(test_list_app, [])

        assert result.exit_code == 0
        assert "The image cache is empty" in result.stdout

    def test_list_entries(self, seeded: Container) -> None:
        result = runner.invoke(test_list_app, [])

        assert result.exit_code == 0
        assert "Cached Images (2)" in result.stdout
        assert "1.0 KB" in result.stdout

    def test_list_invalid_limit(self, seeded: Container) -> None:
        result = runner.invoke(test_list_app, ["--limit", "0"])

        assert result.exit_code == 2
        assert "--limit must be a positive integer" in result.stdout


# ═══════════════════════════════════════════════════════════════════════════
# prune / purge
# ═══════════════════════════════════════════════════════════════════════════


class TestPruneCommand:
    """Tests for `cache prune`."""

    def test_prune_trims_to_size_limit(
        self, test_settings: Settings, build_container: Callable[[], Container]
    ) -> None:
        test_settings.max_cache_size = 5000
        container = build_container()
        store = container.disk_cache
        now = time.time()
        for i in range(3):
            store.put(f"k{i}", make_jpeg(2000))
            set_created(store, f"k{i}", now - 100 + i)

        result = runner.invoke(test_prune_app, [])

        assert result.exit_code == 0
        assert "Trimmed cache to fit its size limit" in result.stdout
        assert store.total_size() <= 3750
        assert store.get("k0") is None
        assert store.get("k2") is not None

    def test_prune_nothing_to_do(self, seeded: Container) -> None:
        result = runner.invoke(test_prune_app, [])

        assert result.exit_code == 0
        assert "Removed 0 expired image(s)" in result.stdout
        assert "Trimmed" not in result.stdout
        assert seeded.disk_cache.list_keys() == ["a", "b"]

    def test_prune_reports_expired_images(
        self, build_container: Callable[[], Container]
    ) -> None:
        store = build_container().disk_cache
        store.put("old", make_jpeg(1024))
        store.put("fresh", make_jpeg(2048))
        set_created(store, "old", time.time() - 30 * 24 * 3600)

        result = runner.invoke(test_prune_app, [])

        assert result.exit_code == 0
        assert "Removed 1 expired image(s)" in result.stdout
        assert "Freed 1.0 KB (2.0 KB remaining)" in result.stdout
        assert build_container().disk_cache.list_keys() == ["fresh"]


class TestPurgeCommand:
    """Tests for `cache purge`."""

    def test_purge_force(
        self, seeded: Container, build_container: Callable[[], Container]
    ) -> None:
        result = runner.invoke(test_purge_app, ["--force"])

        assert result.exit_code == 0
        assert "Purged cache, freed 3.0 KB" in result.stdout
        assert build_container().disk_cache.list_keys() == []
        assert seeded.disk_cache.get("a") is None

    def test_purge_confirmed(self, seeded: Container) -> None:
        result = runner.invoke(test_purge_app, [], input="y\n")

        assert result.exit_code == 0
        assert seeded.disk_cache.get("b") is None

    def test_purge_cancelled(self, seeded: Container) -> None:
        result = runner.invoke(test_purge_app, [], input="n\n")

        assert result.exit_code == 1
        assert "Purge cancelled by user" in result.stdout
        assert seeded.disk_cache.get("a") is not None


# ═══════════════════════════════════════════════════════════════════════════
# warm
# ═══════════════════════════════════════════════════════════════════════════


class TestWarmCommand:
    """Tests for `cache warm`."""

    def test_warm_downloads_pages(
        self,
        build_container: Callable[[], Container],
        image_requests: List[httpx.Request],
    ) -> None:
        result = runner.invoke(test_warm_app, ["--pages", "2"])

        assert result.exit_code == 0
        assert "Cache Warm Summary" in result.stdout
        assert "Downloaded" in result.stdout
        assert len(image_requests) == 40
        assert {r.url.path for r in image_requests} == {"/400/400"}
        assert build_container().disk_cache.exists("40")

    def test_warm_second_run_served_from_disk(
        self,
        build_container: Callable[[], Container],
        image_requests: List[httpx.Request],
    ) -> None:
        runner.invoke(test_warm_app, [])
        image_requests.clear()

        result = runner.invoke(test_warm_app, [])

        assert result.exit_code == 0
        assert image_requests == []
        assert "Already cached" in result.stdout

    def test_warm_failed_downloads_exit_with_error(
        self,
        build_container: Callable[[], Container],
        image_status: List[int],
    ) -> None:
        image_status[0] = 500

        result = runner.invoke(test_warm_app, [])

        assert result.exit_code == 1
        assert "Failed" in result.stdout
        assert build_container().disk_cache.list_keys() == []

    def test_warm_invalid_pages(
        self, build_container: Callable[[], Container]
    ) -> None:
        result = runner.invoke(test_warm_app, ["--pages", "0"])

        assert result.exit_code == 2
        assert "--pages must be a positive integer" in result.stdout

    def test_warm_interrupted(self, build_container: Callable[[], Container]) -> None:
        def interrupt(coro):
            coro.close()
            raise KeyboardInterrupt

        with patch.object(cache_module.asyncio, "run", side_effect=interrupt):
            result = runner.invoke(test_warm_app, [])

        assert result.exit_code == 130
        assert "interrupted" in result.stdout
