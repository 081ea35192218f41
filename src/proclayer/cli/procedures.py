"""
CLI: ``proclayer procedures``: inspect discovered procedure collections.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.table import Table

from proclayer.cli.utils import (
    console,
    discover_or_exit,
    err_console,
    exit_on_construction_error,
    print_warnings,
)
from proclayer.core.errors import ConstructionError
from proclayer.procedures.naming import analyze_naming_convention
from proclayer.procedures.registry import ProcedureRouter

app = typer.Typer(no_args_is_help=True)


@app.command("list")
def list_procedures(
    path: Path = typer.Argument(..., help="Directory containing procedure modules"),
    recursive: bool | None = typer.Option(None, "--recursive/--no-recursive", "-r", help="Scan subdirectories"),
    as_json: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List every discovered procedure with its REST route."""
    result = discover_or_exit(path, recursive=recursive)
    print_warnings(result)
    with exit_on_construction_error():
        router = ProcedureRouter(result.collections)
        routes = router.routes()

    rows = []
    for (namespace, name, proc), route in zip(router, routes):
        rows.append(
            {
                "namespace": namespace,
                "name": name,
                "kind": proc.type.value,
                "method": route.method.value,
                "path": route.path,
                "guards": len(proc.guards),
                "deprecated": proc.deprecated,
            }
        )

    if as_json:
        console.print_json(json.dumps(rows))
        return

    table = Table(title=f"Procedures ({len(rows)})")
    table.add_column("Namespace", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Kind")
    table.add_column("Method", style="green")
    table.add_column("Path")
    table.add_column("Guards", justify="right")
    table.add_column("Deprecated")
    for row in rows:
        table.add_row(
            row["namespace"],
            row["name"],
            row["kind"],
            row["method"],
            row["path"],
            str(row["guards"]),
            "yes" if row["deprecated"] else "",
        )
    console.print(table)


@app.command("check")
def check_procedures(
    path: Path = typer.Argument(..., help="Directory containing procedure modules"),
    recursive: bool | None = typer.Option(None, "--recursive/--no-recursive", "-r", help="Scan subdirectories"),
) -> None:
    """Report naming-convention issues, route conflicts and invalid exports; exit 1 if any."""
    result = discover_or_exit(path, recursive=recursive, on_invalid_export="silent")
    print_warnings(result)
    issues = len(result.warnings)

    try:
        ProcedureRouter(result.collections).routes()
    except ConstructionError as e:
        issues += 1
        err_console.print(e.message, markup=False, highlight=False)

    for collection in result.collections:
        for name, proc in collection.procedures.items():
            if proc.rest_override is not None and proc.rest_override.is_complete:
                continue
            warning = analyze_naming_convention(name, proc.type, collection.namespace)
            if warning is not None:
                issues += 1
                err_console.print(warning.format(), markup=False, highlight=False)

    if issues:
        err_console.print(f"[bold red]{issues} issue(s) found[/bold red]")
        raise typer.Exit(code=1)
    console.print("[green]All procedures follow naming conventions[/green]")
