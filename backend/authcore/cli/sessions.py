"""Flask CLI commands for session maintenance."""

from __future__ import annotations

import logging

import click
from flask.cli import with_appcontext

from authcore.core.wiring import get_auth_service

LOGGER = logging.getLogger(__name__)


@click.group("sessions")
def sessions_cli() -> None:
    """Session maintenance commands."""


@sessions_cli.command("sweep")
@with_appcontext
def sweep_command() -> None:
    """Delete expired sessions and revoked ones past the retention window."""
    result = get_auth_service().sweep_sessions()
    if not result.ok:
        raise click.ClickException(result.message)
    LOGGER.info("sessions.sweep", extra={"count": result.value})
    click.echo(f"Deleted {result.value} stale session(s).")
