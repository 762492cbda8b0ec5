"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import math
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from reelcache import __version__
from reelcache.core import AdmissionOutcome, MediaCacheService, Readiness
from reelcache.exceptions import ReelCacheError
from reelcache.models.config import CacheConfig
from reelcache.models.target import PARTIAL_SUFFIX
from reelcache.storage.config_manager import ConfigManager

from .formatters import format_error_with_suggestions, print_config, print_index_table
from .progress_manager import ProgressManager

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("reelcache")

app = typer.Typer(
    name="reelcache",
    help=(
        "A local download cache for streamed videos, with resume positions. Use"
        " 'reelcache <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "reelcache"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

OUTCOME_LABELS = {
    AdmissionOutcome.ALREADY_COMPLETE: "[green]✓ Already cached[/green]",
    AdmissionOutcome.ALREADY_IN_FLIGHT: "[cyan]↻ Already downloading[/cyan]",
    AdmissionOutcome.START_NEW: "[cyan]▶ Download started[/cyan]",
}

READINESS_LABELS = {
    Readiness.READY: "[green]✓ ready[/green]",
    Readiness.DOWNLOADING: "[cyan]↻ downloading[/cyan]",
    Readiness.FAILED: "[red]✗ failed[/red]",
    Readiness.MISSING: "[yellow]○ missing[/yellow]",
}


def _load_config() -> CacheConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config()
    except ReelCacheError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Debug output for reelcache (-v), plus its libraries (-vv).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """Reelcache media download cache"""
    if version:
        console.print(f"[bold]reelcache[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    logging.getLogger("reelcache").setLevel("DEBUG" if verbose >= 1 else "INFO")
    if verbose >= 2:
        logging.getLogger().setLevel("DEBUG")

    if show_config:
        config = _load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Write a configuration file with the default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()
    try:
        ConfigManager(CONFIG_FILE).save_new_config()
    except ReelCacheError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def fetch(
    origin: str = typer.Argument(..., help="The page URL the video was requested from."),
    source_url: str = typer.Argument(..., help="The resolved media URL to download."),
):
    """Return the cached copy of a video, downloading it first if needed."""
    config = _load_config()

    async def _fetch_async():
        async with ProgressManager(console) as progress_manager:
            async with MediaCacheService(config, reporter=progress_manager) as service:
                resolution = await service.resolve_or_start_download(
                    origin, source_url
                )
                console.print(
                    f"{OUTCOME_LABELS[resolution.outcome]} "
                    f"[dim]{escape(resolution.path)}[/dim]"
                )
                if resolution.task:
                    await resolution.task
                return resolution, service.readiness(resolution.path), (
                    service.transfer_failure(resolution.path)
                )

    try:
        resolution, readiness, failure = asyncio.run(_fetch_async())
    except ReelCacheError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    if readiness is Readiness.FAILED:
        reason = failure.reason if failure else "unknown error"
        console.print(f"[red]✗ Download failed:[/red] {escape(reason)}")
        raise typer.Exit(code=1)
    console.print(escape(resolution.reference))


@app.command()
def lookup(
    origin: str = typer.Argument(..., help="The page URL to look up."),
):
    """Check whether a page already has a cached video."""
    config = _load_config()

    async def _lookup_async():
        async with MediaCacheService(config) as service:
            return await service.lookup(origin)

    reference = asyncio.run(_lookup_async())
    if reference is None:
        console.print("[yellow]○ Not cached.[/yellow]")
        raise typer.Exit(code=1)
    console.print(escape(reference))


@app.command()
def status(
    path: str = typer.Argument(..., help="Path of a cached video."),
):
    """Show whether a cached video is ready to play."""
    config = _load_config()
    service = MediaCacheService(config)
    path = service.media_path(path)
    readiness = service.readiness(path)
    console.print(f"{READINESS_LABELS[readiness]} [dim]{escape(path)}[/dim]")
    if readiness is Readiness.MISSING and Path(path).with_suffix(PARTIAL_SUFFIX).exists():
        console.print(
            "[dim]A partial file exists: the download is running elsewhere or "
            "was interrupted (see 'reelcache clean-partials').[/dim]"
        )


@app.command()
def position(
    path: str = typer.Argument(..., help="Path of a cached video."),
    set_time: float | None = typer.Option(
        None, "--set", help="Store a new playback position, in seconds."
    ),
):
    """Show or update the last playback position of a video."""
    if set_time is not None and not math.isfinite(set_time):
        raise typer.BadParameter("must be a finite number of seconds", param_hint="--set")
    config = _load_config()

    async def _position_async():
        async with MediaCacheService(config) as service:
            media_path = service.media_path(path)
            if set_time is not None:
                await service.record_playback_position(media_path, set_time)
            return media_path, await service.last_playback_position(media_path)

    media_path, seconds = asyncio.run(_position_async())
    console.print(f"{escape(media_path)}: [cyan]{seconds:g}s[/cyan]")


@app.command()
def index():
    """List the cache index."""
    config = _load_config()

    async def _index_async():
        async with MediaCacheService(config) as service:
            return await service.cache_entries(), await service.playback_positions()

    entries, positions = asyncio.run(_index_async())
    print_index_table(entries, positions)


@app.command(name="clean-partials")
def clean_partials(
    force: bool = typer.Option(
        False, "--force", "-f", help="Bypass the confirmation prompt."
    ),
):
    """Delete partial files left behind by interrupted downloads."""
    if not force and not typer.confirm(
        "Delete every partial file under the media root? Downloads running in "
        "other processes will fail."
    ):
        console.print("[yellow]Operation cancelled.[/yellow]")
        raise typer.Abort()

    config = _load_config()
    removed = MediaCacheService(config).discard_orphaned_partials()
    for path in removed:
        console.print(f"[dim]  removed {escape(str(path))}[/dim]")
    console.print(f"[green]✓ Removed {len(removed)} partial files.[/green]")
