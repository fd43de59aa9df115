"""
CLI for cache maintenance.

Commands:
    simplecache keys - List cached keys
    simplecache info - Show entry counts by type tag
    simplecache vacuum - Remove expired entries and reclaim space
    simplecache clear - Invalidate all entries, or one type tag
    simplecache config - Show current configuration
    simplecache version - Print version
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Any, Awaitable, Callable, Optional, TypeVar

import orjson
import typer
from rich.console import Console
from rich.table import Table

from simplecache import __version__
from simplecache.cache import ObjectCache
from simplecache.config import Settings, clear_settings_cache, get_settings
from simplecache.exceptions import CacheError
from simplecache.logging import setup_logging

R = TypeVar("R")

app = typer.Typer(
    name="simplecache",
    help="SimpleCache - persistent asynchronous object cache maintenance",
    no_args_is_help=True,
)

console = Console()
error_console = Console(stderr=True)

_db_override: Path | None = None


@app.callback()
def main_callback(
    db: Annotated[
        Optional[Path],
        typer.Option("--db", "-d", help="Database file (overrides CACHE_DB_PATH)"),
    ] = None,
) -> None:
    """Maintenance commands for a SimpleCache database."""
    global _db_override
    _db_override = db


def _get_settings_safe() -> Settings | None:
    """Get settings, returning None if configuration is invalid."""
    try:
        clear_settings_cache()
        return get_settings()
    except Exception:
        return None


def _run(operation: Callable[[ObjectCache], Awaitable[R]]) -> R:
    """Open the configured cache, run one operation and close it."""
    settings = _get_settings_safe()
    if settings is None:
        error_console.print(
            "[red]Error:[/red] Configuration is invalid. "
            "Run 'simplecache config' to see what's wrong."
        )
        raise typer.Exit(1)

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    if _db_override is not None:
        settings = settings.model_copy(update={"CACHE_DB_PATH": _db_override})

    async def runner() -> R:
        async with ObjectCache.from_settings(settings) as cache:
            return await operation(cache)

    try:
        return asyncio.run(runner())
    except CacheError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


@app.command()
def keys() -> None:
    """List every cached key."""
    for key in _run(lambda cache: cache.get_all_keys()):
        console.print(key, markup=False, highlight=False)


@app.command()
def info(
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print statistics as JSON"),
    ] = False,
) -> None:
    """Show entry totals and counts per type tag."""
    stats: dict[str, Any] = _run(lambda cache: cache.backend.stats())

    if as_json:
        typer.echo(orjson.dumps(stats, option=orjson.OPT_INDENT_2).decode("utf-8"))
        return

    table = Table(title="Entries by type tag", show_header=True)
    table.add_column("Type tag", style="cyan")
    table.add_column("Entries", style="green", justify="right")
    for tag, count in stats["by_type_tag"].items():
        table.add_row(tag, str(count))

    console.print(table)
    console.print(
        f"[bold]Total:[/bold] {stats['total']}  "
        f"[bold]Never expiring:[/bold] {stats['never_expiring']}"
    )


@app.command()
def vacuum() -> None:
    """Remove expired entries and reclaim space."""
    deleted = _run(lambda cache: cache.vacuum())
    console.print(f"[green]Vacuum complete:[/green] {deleted} expired entries removed")


@app.command()
def clear(
    type_tag: Annotated[
        Optional[str],
        typer.Option("--type", "-t", help="Only invalidate entries with this type tag"),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not ask for confirmation"),
    ] = False,
) -> None:
    """Invalidate every entry, or every entry with one type tag."""
    scope = f"entries with type tag '{type_tag}'" if type_tag else "all entries"
    if not yes and not typer.confirm(f"Invalidate {scope}?"):
        raise typer.Abort()

    deleted = _run(lambda cache: cache.invalidate_all(type_tag))
    console.print(f"[green]Invalidated[/green] {deleted} entries")


@app.command()
def config() -> None:
    """Show current configuration.

    Displays all configuration values with the encryption key redacted.
    """
    settings = _get_settings_safe()

    if settings is None:
        error_console.print("[red]Configuration is invalid or incomplete.[/red]")
        error_console.print()
        error_console.print("Check these environment variables:")
        error_console.print("  - CACHE_DB_PATH (database file)")
        error_console.print("  - CACHE_COMPRESSION_LEVEL (0-9)")
        error_console.print("  - CACHE_ENCRYPTION_KEY (Fernet key)")
        raise typer.Exit(1)

    table = Table(title="Settings", show_header=True)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    for key, value in settings.redacted_display().items():
        display_value = str(value) if value is not None else "[dim]not set[/dim]"
        table.add_row(key, display_value)

    console.print(table)


@app.command()
def version() -> None:
    """Print the version number."""
    console.print(f"simplecache version {__version__}")


def main() -> None:
    """Entry point for the CLI."""
    app()
