"""
CLI layer for proclayer.

Provides a Typer application whose sub-commands discover procedure
collections on disk and render them: a route table, an API description,
or a running server. All behaviour lives in the library; this package
handles only terminal transport.

Entry point::

    proclayer --help
"""

from proclayer.cli.app import app

__all__ = ["app"]
