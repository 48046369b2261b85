"""Flask CLI commands for operator account tasks."""

from __future__ import annotations

import click
from flask.cli import with_appcontext

from authcore.core.wiring import get_auth_service


@click.group("users")
def users_cli() -> None:
    """Account administration commands."""


@users_cli.command("activate")
@click.argument("email")
@with_appcontext
def activate_command(email: str) -> None:
    """Activate EMAIL and mark its address verified."""
    result = get_auth_service().activate_user(email)
    if not result.ok:
        raise click.ClickException(f"No account found for {email}.")
    click.echo(f"Activated {result.value.email} (status={result.value.status}).")


@users_cli.command("clear-rate-limit")
@click.argument("email")
@click.option("--ip", "ip_address", default=None, help="Client IP the counter is keyed by.")
@with_appcontext
def clear_rate_limit_command(email: str, ip_address: str | None) -> None:
    """Reset the failed-login counter of EMAIL (and IP)."""
    get_auth_service().clear_rate_limit(email, ip_address)
    click.echo(f"Cleared login rate limit for {email.strip().lower()}.")
