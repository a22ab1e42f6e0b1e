"""CLI utility functions shared across commands.

This module contains generic CLI utilities for:
- Path validation
- Option parsing
- Console output
"""

from pathlib import Path

import typer
from rich.console import Console

from runtime_core.data_client.errors import ApiError

console = Console()


def validate_path_exists(path: Path, description: str = "Path") -> None:
    """Validate that a path exists.

    Args:
        path: Path to validate
        description: Human-readable description for error message

    Raises:
        typer.Exit: If path does not exist
    """
    if not path.exists():
        console.print(f"[red]Error: {description} does not exist: {path}[/red]")
        raise typer.Exit(1)


def parse_key_values(items: list[str] | None, description: str = "parameter") -> dict[str, str]:
    """Parse ``key=value`` command line items into a dictionary.

    Args:
        items: Raw option values
        description: Human-readable description for error message

    Returns:
        Parsed mapping (later items win)

    Raises:
        typer.Exit: If an item has no ``=``
    """
    parsed: dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            console.print(f"[red]Error: invalid {description} '{item}', expected key=value[/red]")
            raise typer.Exit(1)
        parsed[key] = value
    return parsed


def print_api_error(error: ApiError) -> None:
    """Print a normalized data client error."""
    status = f" (status {error.status})" if error.status is not None else ""
    console.print(f"[red]{error.code}: {error.message}{status}[/red]")
    console.print(f"[dim]{error.timestamp}[/dim]")
