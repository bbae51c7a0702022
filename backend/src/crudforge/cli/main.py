"""CRUDForge CLI entry point."""

import click


@click.group()
def cli():
    """CRUDForge: schema-driven CRUD API CLI."""
    pass


# Register subcommand groups
from crudforge.cli.auth_cmd import auth  # noqa: E402
from crudforge.cli.metadata_cmd import metadata  # noqa: E402
from crudforge.cli.schema_cmd import schema  # noqa: E402

cli.add_command(auth)
cli.add_command(metadata)
cli.add_command(schema)
