"""
Entry point for `python -m songbox` and the `songbox` console script.

Errors that escape a command are rendered as a panel with suggestions
instead of a traceback.
"""

import asyncio
import logging
import os
import sys

import typer
from rich.console import Console

from songbox.cli.app import app
from songbox.cli.formatters import format_error_with_suggestions
from songbox.exceptions import SongboxError

log = logging.getLogger("songbox")


def _use_utf8_console() -> None:
    """Windows consoles default to a legacy code page that cannot print ♥ or ✓."""
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.reconfigure(encoding="utf-8")
        except (TypeError, AttributeError):
            pass


def main() -> None:
    if os.name == "nt":
        _use_utf8_console()

    console = Console(stderr=True)
    try:
        app()
    except (typer.Exit, typer.Abort):
        pass
    except (KeyboardInterrupt, asyncio.CancelledError):
        console.print("\n[yellow]⚠️  Interrupted, pending downloads were paused.[/yellow]")
        sys.exit(130)
    except SongboxError as e:
        console.print(format_error_with_suggestions(e))
        sys.exit(1)
    except Exception as e:
        console.print(format_error_with_suggestions(e, {"type": "Unexpected"}))
        log.debug("Full traceback:", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
