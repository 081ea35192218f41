"""``python -m proclayer``"""

from proclayer.cli.app import app

app()
