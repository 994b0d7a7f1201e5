"""Rich console singleton for CLI output."""

from __future__ import annotations

import sys
from typing import Optional

from rich.console import Console

# Windows cp1252 cannot draw Unicode box characters
_safe_box = sys.platform == "win32"

console = Console(safe_box=_safe_box)


def print_error(message: str, details: Optional[dict] = None) -> None:
    """Print an error message, with optional key/value details."""
    console.print(f"[red]Error: {message}[/red]")
    if details:
        for key, value in details.items():
            console.print(f"  [dim]{key}:[/dim] [yellow]{value}[/yellow]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]Warning: {message}[/yellow]")


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")
