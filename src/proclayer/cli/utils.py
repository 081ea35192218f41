"""
CLI utility helpers: consoles, discovery and error rendering.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from proclayer.core.errors import ConstructionError, DiscoveryError
from proclayer.core.settings import get_settings
from proclayer.discovery import DiscoveryOptions, DiscoveryResult, discover_procedures_verbose

console = Console()
err_console = Console(stderr=True)


def discover_or_exit(
    path: Path,
    *,
    recursive: bool | None = None,
    on_invalid_export: str | None = None,
) -> DiscoveryResult:
    """Run discovery with settings defaults; print the error and exit 1 on failure."""
    settings = get_settings()
    options = DiscoveryOptions(
        recursive=settings.discovery_recursive if recursive is None else recursive,
        on_invalid_export=on_invalid_export or settings.discovery_on_invalid_export,
    )
    try:
        return discover_procedures_verbose(path, options)
    except DiscoveryError as e:
        err_console.print(f"[bold red]{escape(e.format())}[/bold red]", highlight=False)
        raise typer.Exit(code=1) from e


def print_warnings(result: DiscoveryResult) -> None:
    for warning in result.warnings:
        err_console.print(
            f"[yellow]Warning[/yellow] ({warning.code.value}): {escape(warning.message)}",
            highlight=False,
        )


@contextmanager
def exit_on_construction_error() -> Iterator[None]:
    """Print a ConstructionError (e.g. a route conflict) and exit 1."""
    try:
        yield
    except ConstructionError as e:
        err_console.print(f"[bold red]{escape(e.message)}[/bold red]", highlight=False)
        if e.fix:
            err_console.print(f"  Fix: {escape(e.fix)}", highlight=False)
        raise typer.Exit(code=1) from e
