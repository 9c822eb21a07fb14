"""
Tests for CLI main functionality.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from gallerycache import __version__
from gallerycache.cli.main import app


@pytest.fixture
def runner():
    """CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def mock_configure_logging():
    """Keep CLI invocations from installing real log handlers."""
    with patch("gallerycache.cli.main.configure_logging") as mock:
        yield mock


def test_cli_version(runner):
    """Test --version flag."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert f"gallerycache v{__version__}" in result.stdout


def test_cli_help(runner):
    """Test help output lists the cache commands."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Image cache pipeline for photo galleries" in result.stdout
    assert "cache" in result.stdout


def test_cli_version_command(runner):
    """Test explicit version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "gallerycache" in result.stdout
    assert "Version" in result.stdout


def test_cli_verbose_configures_debug_logging(runner, mock_configure_logging):
    """Test --verbose switches logging to DEBUG."""
    result = runner.invoke(app, ["--verbose", "version"])
    assert result.exit_code == 0
    mock_configure_logging.assert_called_once_with("DEBUG")


def test_cli_uses_configured_log_level(runner, mock_configure_logging, monkeypatch):
    """Test the log level comes from GALLERY_LOG_LEVEL by default."""
    monkeypatch.setenv("GALLERY_LOG_LEVEL", "warning")
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    mock_configure_logging.assert_called_once_with("WARNING")


def test_cli_invalid_subcommand(runner):
    """Test an unknown command is rejected."""
    result = runner.invoke(app, ["invalid-command"])
    assert result.exit_code != 0
