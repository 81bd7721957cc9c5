#!/usr/bin/env python3
"""
Command-line front end for Telescope.

Usage:
    tele search "query"         - Search local files in plain language
    tele access list            - Show granted folders
    tele access grant           - Replace granted folders
    tele access add             - Grant additional folders
    tele access revoke NAME     - Revoke one folder
    tele access revoke-all      - Revoke every folder
"""

import asyncio
from pathlib import Path
from typing import Optional

import click
from loguru import logger
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ..core.access import AccessScopeManager, JsonFileGrantStore, PromptDirectoryPicker
from ..core.bus import EventBus
from ..core.config import Config, setup_logging
from ..core.errors import (
    DecodingError, IndexQueryError, IndexUnavailable, InvalidEndpoint,
    MissingCommand, NoConnectivity, ServerError, TelescopeError, Timeout,
    UnknownTransport, UserCancelled
)
from ..core.filetypes import type_emoji
from ..core.index import SpotlightIndex
from ..core.models import SearchOutcome
from ..core.search import SearchEngine
from ..core.translation import TranslationClient

console = Console()


def build_access_manager(config: Config) -> AccessScopeManager:
    return AccessScopeManager(
        store=JsonFileGrantStore(config.access.store_path),
        picker=PromptDirectoryPicker(),
        key=config.access.store_key,
        grant_message=config.access.picker_message,
        add_message=config.access.add_message
    )


@click.group()
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to config YAML")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output")
@click.pass_context
def cli(ctx, config_path: Optional[Path], verbose: bool):
    """Telescope - natural-language local file search."""
    try:
        config = Config.load(config_path)
    except FileNotFoundError as e:
        raise click.ClickException(f"Configuration error: {e}")
    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config)
    ctx.obj = config


@cli.command()
@click.argument("query")
@click.option("--limit", "-l", type=click.IntRange(min=1), help="Max results")
@click.option("--endpoint", "-e", help="Translation endpoint URL")
@click.pass_obj
def search(config: Config, query: str, limit: Optional[int], endpoint: Optional[str]):
    """Search local files in plain language."""
    if limit is not None:
        config.search.max_results = limit
    if endpoint:
        config.translation.endpoint = endpoint

    access = build_access_manager(config)
    try:
        outcome = asyncio.run(run_search(config, access, query))
    except TelescopeError as e:
        report_error(e)
        raise SystemExit(1)
    finally:
        access.close()

    display_results(outcome)


async def run_search(config: Config, access: AccessScopeManager, query: str) -> SearchOutcome:
    if query.strip():
        # settle grants before the live spinner owns the terminal
        access.resolve_or_request()
        access.release_all()

    bus = EventBus()
    await bus.start()
    try:
        async with TranslationClient(config.translation) as translator:
            engine = SearchEngine(
                translator=translator,
                access=access,
                index=SpotlightIndex(config.index.mdfind_path),
                config=config.search,
                event_bus=bus
            )

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                transient=True,
                console=console
            ) as progress:
                task_id = progress.add_task(description="Searching...", total=None)

                def on_state(event):
                    progress.update(task_id, description=event.data["state"].replace("_", " ").capitalize() + "...")

                bus.subscribe("search.state", on_state)
                return await engine.search(query)
    finally:
        await bus.stop()


def report_error(error: TelescopeError) -> None:
    """Print one message per error kind."""
    if isinstance(error, InvalidEndpoint):
        console.print("[red]Translation endpoint is not configured correctly.[/red]")
        console.print("Set [cyan]translation.endpoint[/cyan] in telescope.yaml or pass --endpoint")
    elif isinstance(error, NoConnectivity):
        console.print("[red]Cannot reach the translation service. Check your connection.[/red]")
    elif isinstance(error, Timeout):
        console.print("[red]The translation service timed out.[/red]")
    elif isinstance(error, ServerError):
        console.print(f"[red]Translation service error:[/red] HTTP {error.status_code}")
    elif isinstance(error, DecodingError):
        console.print("[red]Could not understand the translation service response.[/red]")
    elif isinstance(error, UnknownTransport):
        console.print(f"[red]Unexpected network error:[/red] {error.cause}")
    elif isinstance(error, MissingCommand):
        console.print("[yellow]The query could not be turned into a search.[/yellow]")
    elif isinstance(error, UserCancelled):
        console.print("[yellow]No folders granted; search cancelled.[/yellow]")
    elif isinstance(error, IndexUnavailable):
        console.print(f"[red]File index unavailable:[/red] {error}")
    elif isinstance(error, IndexQueryError):
        console.print(f"[red]File index query failed:[/red] {error}")
    else:
        console.print(f"[red]Error:[/red] {error}")
    logger.debug(f"Search failed with {type(error).__name__}: {error}")


def display_results(outcome: SearchOutcome) -> None:
    """Display search results in a table."""
    if not outcome.files:
        console.print("[yellow]No results found[/yellow]")
        return

    table = Table(title=f"Results ({outcome.total_results}{'+' if outcome.has_more else ''})")
    table.add_column("", no_wrap=True)
    table.add_column("Name", style="cyan", no_wrap=False)
    table.add_column("Path", no_wrap=False)
    table.add_column("Created", style="magenta")
    table.add_column("Modified", style="magenta")

    for f in outcome.files:
        table.add_row(
            type_emoji(f.type, f.path),
            f.name,
            f.path,
            f.created_display,
            f.modified_display
        )

    console.print(table)
    if outcome.has_more:
        console.print("[dim]More matches exist; raise --limit to see them.[/dim]")


@cli.group()
def access():
    """Manage the folders Telescope may search."""


@access.command(name="list")
@click.pass_obj
def list_grants(config: Config):
    """Show granted folders."""
    manager = build_access_manager(config)
    try:
        roots = manager.resolve_granted_roots()
        if not roots:
            console.print("[yellow]No folders granted[/yellow]")
            return
        for root in roots:
            console.print(f"  • [cyan]{root.name}[/cyan]  {root.path}")
    finally:
        manager.close()


@access.command()
@click.pass_obj
def grant(config: Config):
    """Replace granted folders with a new selection."""
    _run_picker(config, replace=True)


@access.command()
@click.pass_obj
def add(config: Config):
    """Grant additional folders."""
    _run_picker(config, replace=False)


def _run_picker(config: Config, replace: bool) -> None:
    manager = build_access_manager(config)
    try:
        roots = manager.request_new_grant() if replace else manager.add_to_grant()
    except UserCancelled:
        console.print("[yellow]Cancelled[/yellow]")
        return
    except OSError as e:
        raise click.ClickException(f"Cannot grant folder: {e}")
    finally:
        manager.close()
    console.print(f"[green]✓[/green] {len(roots)} folder(s) granted")


@access.command()
@click.argument("name")
@click.pass_obj
def revoke(config: Config, name: str):
    """Revoke the folder called NAME."""
    manager = build_access_manager(config)
    try:
        manager.revoke(name)
    finally:
        manager.close()
    console.print(f"[green]✓[/green] Revoked {name} (if granted)")


@access.command(name="revoke-all")
@click.confirmation_option(prompt="Revoke access to every folder?")
@click.pass_obj
def revoke_all(config: Config):
    """Revoke every granted folder."""
    manager = build_access_manager(config)
    manager.revoke_all()
    console.print("[green]✓[/green] All folder grants revoked")


def main():
    cli()


if __name__ == "__main__":
    main()
