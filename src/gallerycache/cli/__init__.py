"""
CLI interface module for gallerycache.

Provides a Typer-based command-line interface for inspecting, pruning and
warming the local image cache.
"""

from __future__ import annotations

__all__: list[str] = []
