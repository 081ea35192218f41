"""
Root Typer application for the proclayer CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from proclayer.core.logging import configure_logging
from proclayer.core.settings import get_settings

app = Typer(
    name="proclayer",
    help="proclayer: declarative procedures served as REST and RPC.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from proclayer import __version__

        typer.echo(f"proclayer {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    log_level: str | None = typer.Option(None, "--log-level", help="Override PROCLAYER_LOG_LEVEL"),
) -> None:
    """proclayer CLI: list, describe and serve procedure collections."""
    settings = get_settings()
    json_format = {"json": True, "console": False}.get(settings.log_format)
    configure_logging(level=log_level or settings.log_level, json_format=json_format)


# ── Sub-command registration ─────────────────────────────────────────────

from proclayer.cli.openapi import openapi  # noqa: E402
from proclayer.cli.procedures import app as procedures_app  # noqa: E402
from proclayer.cli.serve import serve  # noqa: E402

app.add_typer(procedures_app, name="procedures", help="Inspect discovered procedures.")
app.command("openapi")(openapi)
app.command("serve")(serve)
