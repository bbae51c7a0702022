"""Auth CLI commands: issue access tokens for local development."""

import click

from crudforge.auth import JWTService
from crudforge.cli.metadata_cmd import _resolve_settings


@click.group()
def auth():
    """Access token commands."""
    pass


@auth.command()
@click.option("--user", "user_id", required=True, help="Token subject.")
@click.option("--level", "access_level", type=click.IntRange(min=0), default=0, help="Access level to grant.")
@click.option("--ttl", type=click.IntRange(min=1), default=None, help="Lifetime in seconds.")
def token(user_id: str, access_level: int, ttl: int | None):
    """Print a signed access token for CRUDFORGE_SECRET_KEY."""
    settings = _resolve_settings()
    jwt_service = JWTService(settings.secret_key)
    click.echo(jwt_service.create_access_token(user_id, access_level, ttl=ttl))
