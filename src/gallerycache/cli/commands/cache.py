"""
CLI commands for managing the local image cache.

Provides ``gallerycache cache status``, ``list``, ``prune``, ``purge`` and
``warm``. Warming walks the gallery's pages and resolves every image through
the normal memory -> disk -> network pipeline.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from typing import Optional

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from gallerycache.container import Container
from gallerycache.exceptions import (
    EXIT_CODE_GENERAL_ERROR,
    EXIT_CODE_INTERRUPTED,
    EXIT_CODE_INVALID_ARGS,
)
from gallerycache.models import ResolveOutcome

console = Console()

app = typer.Typer(
    name="cache",
    help="Manage the local image cache.",
    no_args_is_help=True,
)


def _build_container() -> Container:
    """Build a service container from application settings."""
    return Container()


def format_size(size_bytes: int) -> str:
    """Convert bytes to human-readable format."""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"


@app.command(name="status")
def status() -> None:
    """
    Display cache statistics.

    Examples:
        gallerycache cache status
    """
    container = _build_container()
    store = container.disk_cache
    stats = store.stats()

    table = Table(title="Image Cache Status")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")

    table.add_row("Cached files", f"{stats.entry_count:,}")
    table.add_row("Indexed keys", f"{stats.indexed_count:,}")
    table.add_row("Size", format_size(stats.total_size_bytes))
    table.add_row("Limit", format_size(stats.max_size_bytes))

    console.print()
    console.print(table)
    console.print()
    console.print(f"  Cache directory: {store.blob_dir}")
    if store.passthrough:
        console.print(
            "  [yellow]Cache directory unavailable; running in passthrough mode[/yellow]"
        )
    if stats.oldest_entry is not None:
        console.print(f"  Oldest file:     {stats.oldest_entry.strftime('%Y-%m-%d')}")
    if stats.newest_entry is not None:
        console.print(f"  Newest file:     {stats.newest_entry.strftime('%Y-%m-%d')}")
    console.print()


@app.command(name="list")
def list_entries(
    limit: Optional[int] = typer.Option(
        None,
        "--limit",
        "-l",
        help="Maximum number of entries to show",
    ),
) -> None:
    """
    List cached images, oldest first.

    Examples:
        gallerycache cache list
        gallerycache cache list --limit 20
    """
    if limit is not None and limit <= 0:
        console.print("[red]Error: --limit must be a positive integer[/red]")
        raise typer.Exit(code=EXIT_CODE_INVALID_ARGS)

    entries = _build_container().disk_cache.entries()
    if not entries:
        console.print("[yellow]The image cache is empty[/yellow]")
        return

    table = Table(title=f"Cached Images ({len(entries)})")
    table.add_column("Key", style="cyan")
    table.add_column("Size", style="blue", justify="right")
    table.add_column("Created", style="green")

    for entry in entries[:limit]:
        table.add_row(
            entry.key,
            format_size(entry.byte_length),
            entry.created_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@app.command(name="prune")
def prune() -> None:
    """
    Evict expired images and trim the cache to its size limit.

    Examples:
        gallerycache cache prune
    """
    store = _build_container().open_disk_cache(evict_on_open=False)
    before = store.total_size()
    expired = store.evict_expired()
    trimmed = store.enforce_size_limit()
    after = store.total_size()

    console.print(f"[green]Removed {len(expired)} expired image(s)[/green]")
    if trimmed:
        console.print("[green]Trimmed cache to fit its size limit[/green]")
    console.print(f"Freed {format_size(before - after)} ({format_size(after)} remaining)")


@app.command(name="purge")
def purge(
    force: bool = typer.Option(
        False,
        "--force",
        help="Skip confirmation prompt",
    ),
) -> None:
    """
    Delete every cached image and empty the index.

    Examples:
        gallerycache cache purge
        gallerycache cache purge --force
    """
    store = _build_container().disk_cache

    if not force:
        confirmation = typer.confirm(
            "Are you sure you want to purge all cached images?",
            default=False,
        )
        if not confirmation:
            console.print("[yellow]Purge cancelled by user[/yellow]")
            raise typer.Exit(code=EXIT_CODE_GENERAL_ERROR)

    bytes_before = store.total_size()
    store.clear_all()
    bytes_freed = bytes_before - store.total_size()
    console.print(f"[green]Purged cache, freed {format_size(bytes_freed)}[/green]")


@app.command(name="warm")
def warm(
    pages: int = typer.Option(
        1,
        "--pages",
        "-p",
        help="Number of gallery pages to download",
    ),
) -> None:
    """
    Pre-download the first gallery pages into the cache.

    Images already cached are served from disk and not downloaded again.

    Examples:
        gallerycache cache warm
        gallerycache cache warm --pages 5
    """
    if pages <= 0:
        console.print("[red]Error: --pages must be a positive integer[/red]")
        raise typer.Exit(code=EXIT_CODE_INVALID_ARGS)

    try:
        outcomes = asyncio.run(_warm_async(pages=pages))
    except KeyboardInterrupt:
        console.print("\n[yellow]Cache warming interrupted by user[/yellow]")
        raise typer.Exit(code=EXIT_CODE_INTERRUPTED)

    _display_summary(outcomes)

    if outcomes[ResolveOutcome.ERROR] or outcomes[ResolveOutcome.OFFLINE]:
        raise typer.Exit(code=EXIT_CODE_GENERAL_ERROR)


async def _warm_async(*, pages: int) -> Counter[ResolveOutcome]:
    """Load *pages* pages and resolve each image, counting outcomes."""
    container = _build_container()
    controller = container.create_pagination_controller()
    resolver = container.image_resolver
    outcomes: Counter[ResolveOutcome] = Counter()

    try:
        await controller.load_images()
        for _ in range(pages - 1):
            if not await controller.load_more_images():
                break

        images = controller.snapshot().images
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Images", total=len(images))

            async def resolve_one(index: int) -> None:
                result = await resolver.resolve_ref(images[index])
                outcomes[result.outcome] += 1
                progress.update(task, advance=1)

            await asyncio.gather(*(resolve_one(i) for i in range(len(images))))
    finally:
        await container.aclose()

    return outcomes


def _display_summary(outcomes: Counter[ResolveOutcome]) -> None:
    """Display a summary table of warming results."""
    table = Table(title="Cache Warm Summary")
    table.add_column("Source", style="cyan")
    table.add_column("Images", style="bold", justify="right")

    labels = {
        ResolveOutcome.NETWORK: "Downloaded",
        ResolveOutcome.DISK: "Already cached",
        ResolveOutcome.MEMORY: "In memory",
        ResolveOutcome.OFFLINE: "Offline",
        ResolveOutcome.ERROR: "Failed",
    }
    for outcome, label in labels.items():
        table.add_row(label, str(outcomes[outcome]))
    table.add_row("[bold]Total[/bold]", f"[bold]{sum(outcomes.values())}[/bold]")

    console.print()
    console.print(table)
