"""
Entry point for `reelcache` and `python -m reelcache`.

Errors that escape a command end up here and are rendered as a panel.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from reelcache.cli.app import app
from reelcache.cli.formatters import format_error_with_suggestions
from reelcache.exceptions import ReelCacheError

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _force_utf8_streams() -> None:
    # Progress bars and status glyphs are not encodable in legacy Windows code pages.
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass


def main() -> None:
    if os.name == "nt":
        _force_utf8_streams()

    console = Console(stderr=True)

    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print(
            "\n[yellow]⚠️  Interrupted. Unfinished downloads were discarded; run "
            "'reelcache clean-partials' if any partial files remain.[/yellow]"
        )
        sys.exit(EXIT_INTERRUPTED)
    except ReelCacheError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(EXIT_FAILURE)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        logging.getLogger("reelcache").debug("Full traceback:", exc_info=True)
        sys.exit(EXIT_FAILURE)


if __name__ == "__main__":
    main()
