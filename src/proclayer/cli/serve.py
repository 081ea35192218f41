"""
CLI: ``proclayer serve``: discover procedures and start the API server.
"""

from __future__ import annotations

from pathlib import Path

import typer

from proclayer.cli.utils import console, discover_or_exit, exit_on_construction_error, print_warnings


def serve(
    path: Path = typer.Argument(..., help="Directory containing procedure modules"),
    host: str = typer.Option("127.0.0.1", "--host", "-h", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Bind port"),
    recursive: bool | None = typer.Option(None, "--recursive/--no-recursive", "-r", help="Scan subdirectories"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start a REST + RPC server for the discovered procedures."""
    import uvicorn

    from proclayer.api import create_app

    result = discover_or_exit(path, recursive=recursive)
    print_warnings(result)
    with exit_on_construction_error():
        application = create_app(result.collections)

    console.print(
        f"[bold green]Serving {len(result.collections)} collection(s)[/bold green] on {host}:{port}"
    )
    uvicorn.run(application, host=host, port=port, log_level=log_level)
