"""
Main CLI entry point for gallerycache.
"""

from __future__ import annotations

import typer
from rich.console import Console
from rich.panel import Panel

from gallerycache import __version__
from gallerycache.cli.commands.cache import app as cache_app
from gallerycache.config.logging import configure_logging
from gallerycache.config.settings import get_settings

console = Console()

app = typer.Typer(
    name="gallerycache",
    help="Image cache pipeline for photo galleries",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(cache_app, name="cache", help="Local image cache commands")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(
        Panel(
            f"[bold blue]gallerycache[/bold blue] v{__version__}",
            title="Version",
            border_style="blue",
        )
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: bool = typer.Option(
        False, "--version", "-v", help="Show version and exit"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", help="Log at DEBUG level to the console"
    ),
) -> None:
    """
    gallerycache - Memory, disk and network image resolution.

    Inspect, prune and warm the on-disk image cache used by the gallery.
    """
    if version:
        console.print(f"gallerycache v{__version__}")
        raise typer.Exit(code=0)

    configure_logging("DEBUG" if verbose else get_settings().log_level)

    if ctx.invoked_subcommand is None:
        console.print(
            "[yellow]Use 'gallerycache --help' for available commands[/yellow]"
        )
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
