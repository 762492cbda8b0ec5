"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from reelcache.models.target import CacheEntry, PlaybackPosition
from reelcache.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "UnrecognizedURLShapeError": [
            "• The download URL must look like scheme://host/<prefix>/<kind>/<series>/<file.ext>.",
            "• Make sure you passed the resolved media URL, not the page URL.",
        ],
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• Run `reelcache init --force` to write a fresh default configuration.",
        ],
        "ClientResponseError": [
            "• The media host refused the request.",
            "• The resolved URL may have expired; resolve it again.",
        ],
        "TimeoutError": [
            "• The media host did not answer in time.",
            "• Raise `probe_timeout` or `read_timeout` in the configuration.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in sorted(config_data.items()))
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_index_table(
    entries: list[CacheEntry], positions: list[PlaybackPosition]
) -> None:
    """Displays the cache index with file sizes and playback positions."""
    console = Console()
    if not entries:
        console.print("[yellow]The cache index is empty.[/yellow]")
        return

    watched = {p.path: p.time for p in positions}
    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Origin", overflow="fold")
    table.add_column("File", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Watched", justify="right")

    total_size = 0
    for entry in entries:
        path = Path(entry.path)
        if path.is_file():
            size = path.stat().st_size
            total_size += size
            size_str = format_size(size)
        else:
            size_str = "[red]missing[/red]"
        position = watched.get(entry.path)
        table.add_row(
            entry.origin,
            entry.path,
            size_str,
            format_duration(position) if position else "[dim]-[/dim]",
        )

    console.print(
        Panel(
            table,
            title=f"[bold]📼 Cache Index ({len(entries)} entries, "
            f"{format_size(total_size)})[/bold]",
            border_style="blue",
        )
    )
