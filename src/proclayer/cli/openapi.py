"""
CLI: ``proclayer openapi``: write the API description for a directory.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer

from proclayer.cli.utils import console, discover_or_exit, exit_on_construction_error, print_warnings
from proclayer.core.settings import get_settings
from proclayer.openapi import generate_openapi


def openapi(
    path: Path = typer.Argument(..., help="Directory containing procedure modules"),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write to file instead of stdout"),
    title: str | None = typer.Option(None, "--title", help="API title"),
    version: str | None = typer.Option(None, "--version", help="API version"),
    prefix: str | None = typer.Option(None, "--prefix", help="URL prefix for every path"),
    recursive: bool | None = typer.Option(None, "--recursive/--no-recursive", "-r", help="Scan subdirectories"),
) -> None:
    """Generate an OpenAPI 3.0.3 document from discovered procedures."""
    settings = get_settings()
    result = discover_or_exit(path, recursive=recursive)
    print_warnings(result)

    with exit_on_construction_error():
        document = generate_openapi(
            result.collections,
            title=title or settings.api_title,
            version=version or settings.api_version,
            prefix=settings.api_prefix if prefix is None else prefix,
        )
    text = json.dumps(document, indent=2)
    if output is None:
        typer.echo(text)
        return
    output.write_text(text + "\n", encoding="utf-8")
    console.print(f"[green]Wrote[/green] {output} ({len(document['paths'])} paths)")
