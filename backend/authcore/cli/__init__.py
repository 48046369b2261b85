"""Command-line interface registration for the Flask application."""

from __future__ import annotations

from flask import Flask

from .sessions import sessions_cli
from .users import users_cli


def init_app(app: Flask) -> None:
    """Register the ``sessions`` and ``users`` command groups."""
    app.cli.add_command(sessions_cli)
    app.cli.add_command(users_cli)
