"""Command line entry point for catalog-sync."""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Sequence

import click
from rich.console import Console
from rich.table import Table

from catalog_sync.dependencies import get_orchestrator, get_settings, reset_cached_dependencies
from catalog_sync.logging_config import configure_application_logging
from catalog_sync.repositories.catalog_repository import CatalogRecord
from catalog_sync.services.duration import format_compact_count
from catalog_sync.services.errors import ConfigurationError
from catalog_sync.services.sync_orchestrator import CatalogSyncOrchestrator, describe_error

console = Console()


def _orchestrator() -> CatalogSyncOrchestrator:
    try:
        settings = get_settings()
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    configure_application_logging(settings, console=False)
    try:
        return get_orchestrator()
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc


def _records_table(records: Sequence[CatalogRecord], *, title: str) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title")
    table.add_column("Published", no_wrap=True)
    table.add_column("Duration", justify="right")
    table.add_column("Views", justify="right")
    table.add_column("Likes", justify="right")
    table.add_column("Fav", justify="center")
    for record in records:
        table.add_row(
            record.content_id,
            record.title,
            record.published_at[:10],
            record.duration,
            format_compact_count(record.view_count),
            format_compact_count(record.like_count),
            "*" if record.favorite else "",
        )
    return table


@click.group()
@click.version_option(version="0.1.0")
def main() -> None:
    """catalog-sync - keep a local copy of a remote video catalog."""
    reset_cached_dependencies()


@main.command()
@click.option("--pages", default=1, show_default=True, type=click.IntRange(min=1))
def sync(pages: int) -> None:
    """Fetch catalog pages into the local cache."""
    orchestrator = _orchestrator()

    async def _run() -> int:
        fetched = 0
        for _ in range(pages):
            await orchestrator.fetch_next_page()
            if orchestrator.status.state == "error":
                break
            fetched += 1
            if orchestrator.catalog_exhausted:
                break
        return fetched

    fetched = asyncio.run(_run())
    status = orchestrator.status
    if status.state == "error":
        console.print(f"[red]Sync failed:[/red] {status.reason}")
        sys.exit(1)

    console.print(f"Synced [bold]{fetched}[/bold] page(s).")
    console.print(f"  Cached records: {orchestrator.snapshot().record_count}")
    if orchestrator.catalog_exhausted:
        console.print("  [yellow]No further pages.[/yellow]")


@main.command()
@click.argument("text")
def search(text: str) -> None:
    """Search the cache, falling back to the remote catalog."""
    orchestrator = _orchestrator()
    try:
        records = asyncio.run(orchestrator.search(text))
    except Exception as exc:
        console.print(f"[red]Search failed:[/red] {describe_error(exc)}")
        sys.exit(1)

    if not records:
        console.print("[yellow]No results found[/yellow]")
        return
    console.print(_records_table(records, title=f"Results for {text!r}"))


@main.command(name="list")
@click.option("--limit", default=20, show_default=True, type=click.IntRange(min=1))
@click.option("--favorites", is_flag=True, help="Only list favorite records.")
def list_records(limit: int, favorites: bool) -> None:
    """List cached records, newest first."""
    orchestrator = _orchestrator()
    records = asyncio.run(orchestrator.list_records(limit=limit, favorites_only=favorites))
    if not records:
        console.print("[yellow]The cache is empty[/yellow]")
        return
    console.print(_records_table(records, title="Favorites" if favorites else "Catalog"))


@main.command()
@click.argument("content_id")
@click.argument("seconds", type=click.FloatRange(min=0))
def position(content_id: str, seconds: float) -> None:
    """Record the playback position for a cached record."""
    orchestrator = _orchestrator()
    asyncio.run(orchestrator.mark_position(content_id, seconds))
    console.print(f"Position for [cyan]{content_id}[/cyan] set to {seconds:g}s")


@main.command()
@click.argument("content_id")
def favorite(content_id: str) -> None:
    """Toggle the favorite flag of a cached record."""
    orchestrator = _orchestrator()
    record = asyncio.run(orchestrator.toggle_favorite(content_id))
    if record is None:
        console.print(f"[red]Unknown content id:[/red] {content_id}")
        sys.exit(1)
    state = "added to" if record.favorite else "removed from"
    console.print(f"[cyan]{record.title}[/cyan] {state} favorites")


@main.command()
def status() -> None:
    """Show cache totals."""
    orchestrator = _orchestrator()
    settings = get_settings()
    total = asyncio.run(orchestrator.count())
    favorites = asyncio.run(orchestrator.list_records(limit=total or 1, favorites_only=True))

    console.print("\n[bold cyan]Catalog Sync Status[/bold cyan]\n")
    console.print(f"  Database: {settings.db_path}")
    console.print(f"  Cached records: {total}")
    console.print(f"  Favorites: {len(favorites)}")
    console.print()


if __name__ == "__main__":
    main()
