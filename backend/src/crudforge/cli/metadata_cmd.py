"""Metadata CLI commands: validate."""

from pathlib import Path

import click

from crudforge.config import Settings
from crudforge.errors import ConfigurationError
from crudforge.metadata.loader import MetadataLoader
from crudforge.metadata.validator import validate_metadata_dir, validate_yaml_file
from crudforge.schema import SchemaRegistry


def _resolve_settings() -> Settings:
    """Resolve settings from the environment, relative to cwd."""
    cwd = Path.cwd()
    if cwd.name == "backend":
        base_path = cwd.parent
    else:
        base_path = cwd
    try:
        return Settings.from_env(base_path)
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from None


@click.group()
def metadata():
    """Metadata commands."""
    pass


@metadata.command()
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat warnings as errors.",
)
@click.option(
    "--path",
    "target_path",
    default=None,
    type=click.Path(exists=True, path_type=Path),
    help="Validate a single model YAML file instead of the whole metadata directory.",
)
def validate(strict: bool, target_path: Path | None):
    """Validate model YAML files against JSON Schemas, then compile them."""
    settings = _resolve_settings()
    metadata_path = settings.metadata_path

    # ── Schema (JSON Schema) validation ─────────────────────────────────────
    if target_path is not None:
        schema_issues = validate_yaml_file(target_path)
    else:
        if not metadata_path.exists():
            click.echo(f"Error: Metadata directory not found at {metadata_path}", err=True)
            raise SystemExit(1)
        schema_issues = validate_metadata_dir(
            metadata_path, strict=strict, default_store=settings.store_id
        )

    # Report schema issues
    errors = [i for i in schema_issues if i.severity == "error"]
    warnings = [i for i in schema_issues if i.severity == "warning"]

    for issue in schema_issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(
                f"\n{len(errors)} schema error(s) found"
                + (f", {len(warnings)} warning(s)" if warnings else ""),
                fg="red",
                bold=True,
            )
        )
        raise SystemExit(1)

    if warnings:
        click.echo(
            click.style(f"{len(warnings)} warning(s) found.", fg="yellow")
        )

    # ── Compilation ──────────────────────────────────────────────────────────
    # Only runs when validating the full directory (target_path is None)
    if target_path is None:
        try:
            loader = MetadataLoader(metadata_path, default_store=settings.store_id)
            loader.load_all()
            registry = SchemaRegistry.build(
                loader.sources(),
                default_store=settings.store_id,
                max_header_depth=settings.max_header_depth,
            )
        except ConfigurationError as e:
            click.echo(click.style(f"\nCompilation failed: {e}", fg="red"), err=True)
            raise SystemExit(1)

        models = registry.list_models()
        click.echo(f"\nCompiled {len(models)} models:")
        for name in models:
            field_count = len(registry.path_index(name))
            click.echo(f"  ✓ {name} ({field_count} paths)")

    click.echo(click.style("\nAll metadata is valid.", fg="green", bold=True))
