"""Schema CLI commands: inspect compiled models."""

import json

import click

from crudforge.cli.metadata_cmd import _resolve_settings
from crudforge.errors import ConfigurationError, UnknownModelError
from crudforge.metadata.loader import MetadataLoader
from crudforge.schema import SchemaRegistry


def _load_registry() -> SchemaRegistry:
    settings = _resolve_settings()
    if not settings.metadata_path.exists():
        raise click.ClickException(f"Metadata directory not found at {settings.metadata_path}")
    try:
        loader = MetadataLoader(settings.metadata_path, default_store=settings.store_id)
        loader.load_all()
        return SchemaRegistry.build(
            loader.sources(),
            default_store=settings.store_id,
            max_header_depth=settings.max_header_depth,
        )
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from None


def _echo_json(data) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
def schema():
    """Inspect compiled model schemas."""
    pass


@schema.command()
@click.argument("model", required=False)
def show(model: str | None):
    """Print the decycled schema of MODEL (or of every model)."""
    registry = _load_registry()
    try:
        _echo_json(registry.get_schema(model))
    except UnknownModelError as e:
        raise click.ClickException(str(e)) from None


@schema.command()
@click.argument("model")
@click.option("--depth", type=click.IntRange(min=0), default=None, help="Maximum number of path segments.")
def keys(model: str, depth: int | None):
    """List the searchable dotted paths of MODEL."""
    registry = _load_registry()
    try:
        for key in registry.get_schema_keys(model, depth):
            click.echo(key)
    except UnknownModelError as e:
        raise click.ClickException(str(e)) from None


@schema.command()
@click.argument("model")
@click.option("--depth", type=click.IntRange(min=0), default=None, help="Maximum reference hops.")
def headers(model: str, depth: int | None):
    """Print the table headers of MODEL."""
    registry = _load_registry()
    try:
        _echo_json([header.to_dict() for header in registry.get_table_headers(model, depth)])
    except UnknownModelError as e:
        raise click.ClickException(str(e)) from None
