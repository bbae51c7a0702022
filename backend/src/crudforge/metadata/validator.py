"""
metadata/validator.py: JSON Schema validation for CRUDForge model YAML files.

Validates every ``models/*.yaml`` file against ``model.schema.json`` and then
cross-checks references between the files.

Usage:
    from crudforge.metadata.validator import validate_metadata_dir, validate_yaml_file

    issues = validate_metadata_dir(Path("metadata"))
    for issue in issues:
        print(issue)
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError
from referencing import Registry, Resource
from referencing.jsonschema import DRAFT202012

from crudforge.schema.files import FILE_MODEL_NAME

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Public data types
# ---------------------------------------------------------------------------

_SCHEMAS_DIR = Path(__file__).parent / "schemas"

MODEL_SCHEMA = "model.schema.json"


@dataclass
class ValidationIssue:
    """A single validation finding for a metadata YAML file."""

    file: Path
    message: str
    path: str = ""          # JSON pointer path within the document, e.g. "fields/office/ref"
    severity: str = "error" # "error" | "warning"

    def __str__(self) -> str:
        loc = f" at {self.path}" if self.path else ""
        return f"[{self.severity.upper()}] {self.file}{loc}: {self.message}"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_schema(name: str) -> dict[str, Any]:
    schema_path = _SCHEMAS_DIR / name
    with schema_path.open() as fh:
        return json.load(fh)


def _load_registry() -> Registry:
    """Build a jsonschema Registry containing all CRUDForge schemas."""
    resources = []
    for name in ("_defs.schema.json", MODEL_SCHEMA):
        schema = _load_schema(name)
        resources.append(
            (schema["$id"], Resource(contents=schema, specification=DRAFT202012))
        )
    return Registry().with_resources(resources)


def _json_path(error: ValidationError) -> str:
    """Convert a jsonschema ValidationError path to a readable string."""
    parts = []
    for p in error.absolute_path:
        if isinstance(p, int):
            parts.append(f"[{p}]")
        else:
            parts.append(str(p))
    return "/".join(parts).replace("/[", "[")


def _read_yaml(yaml_path: Path) -> tuple[Any, list[ValidationIssue]]:
    try:
        with yaml_path.open() as fh:
            raw = yaml.safe_load(fh)
    except yaml.YAMLError as exc:
        return None, [ValidationIssue(file=yaml_path, message=f"YAML parse error: {exc}")]

    if raw is None:
        return None, [
            ValidationIssue(file=yaml_path, message="File is empty or contains only whitespace")
        ]
    return raw, []


def _collect_refs(declarations: Any, prefix: str = "fields") -> list[tuple[str, Any]]:
    """Every ``ref`` value in a fields mapping, with its location."""
    refs: list[tuple[str, Any]] = []
    if isinstance(declarations, list):
        for item in declarations:
            refs.extend(_collect_refs(item, prefix))
    elif isinstance(declarations, dict):
        for key, value in declarations.items():
            if key == "ref":
                refs.append((f"{prefix}/ref", value))
            elif isinstance(value, (dict, list)):
                refs.extend(_collect_refs(value, f"{prefix}/{key}"))
    return refs


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def validate_yaml_file(
    yaml_path: Path,
    schema_name: str = MODEL_SCHEMA,
    *,
    registry: Registry | None = None,
) -> list[ValidationIssue]:
    """
    Validate a single YAML file against the named schema.

    Args:
        yaml_path:   Path to the YAML file to validate.
        schema_name: Filename of the schema (default ``"model.schema.json"``).
        registry:    Pre-built schema registry.  Built automatically if omitted.

    Returns:
        A list of :class:`ValidationIssue` objects (empty on success).
    """
    doc, issues = _read_yaml(yaml_path)
    if issues:
        return issues

    if registry is None:
        registry = _load_registry()

    schema = _load_schema(schema_name)
    validator = Draft202012Validator(schema, registry=registry)

    for error in sorted(validator.iter_errors(doc), key=lambda e: list(map(str, e.path))):
        issues.append(
            ValidationIssue(
                file=yaml_path,
                message=error.message,
                path=_json_path(error),
            )
        )

    return issues


def validate_metadata_dir(
    metadata_dir: Path,
    *,
    strict: bool = False,
    default_store: str = "default",
) -> list[ValidationIssue]:
    """
    Validate all model YAML files under *metadata_dir*.

    Schema violations are errors. References to models that no file declares
    are warnings: they compile to opaque leaf fields instead of failing.

    Args:
        metadata_dir: Root metadata directory (contains ``models/``).
        strict:       If ``True``, warnings are escalated to errors.
        default_store: Store of models that do not name one.

    Returns:
        A flat list of :class:`ValidationIssue` objects across all files.
        Empty list means all files are valid.
    """
    if not metadata_dir.is_dir():
        return [
            ValidationIssue(
                file=metadata_dir,
                message=f"Metadata directory does not exist: {metadata_dir}",
            )
        ]

    # Build registry once, shared across all file validations
    try:
        registry = _load_registry()
    except (FileNotFoundError, json.JSONDecodeError) as exc:
        return [
            ValidationIssue(
                file=_SCHEMAS_DIR,
                message=f"Failed to load JSON Schema files: {exc}",
            )
        ]

    all_issues: list[ValidationIssue] = []
    declared: set[tuple[str, str]] = set()
    valid_docs: list[tuple[Path, dict]] = []

    models_dir = metadata_dir / "models"
    yaml_files = sorted(models_dir.glob("*.yaml")) if models_dir.is_dir() else []

    for yaml_file in yaml_files:
        file_issues = validate_yaml_file(yaml_file, registry=registry)
        all_issues.extend(file_issues)
        if file_issues:
            continue

        doc, _ = _read_yaml(yaml_file)
        store = doc.get("store", default_store)
        if (store, doc["model"]) in declared:
            all_issues.append(
                ValidationIssue(
                    file=yaml_file,
                    message=f"Duplicate model '{doc['model']}' in store '{store}'",
                    path="model",
                )
            )
        declared.add((store, doc["model"]))
        valid_docs.append((yaml_file, doc))

    for yaml_file, doc in valid_docs:
        store = doc.get("store", default_store)
        for location, ref in _collect_refs(doc["fields"]):
            if isinstance(ref, dict):
                target = (ref.get("store", store), ref["model"])
            else:
                target = (store, ref)
            if target[1] == FILE_MODEL_NAME or target in declared:
                continue
            all_issues.append(
                ValidationIssue(
                    file=yaml_file,
                    message=f"Reference to unknown model '{target[1]}' in store '{target[0]}'",
                    path=location,
                    severity="warning",
                )
            )

    if strict:
        for issue in all_issues:
            if issue.severity == "warning":
                issue.severity = "error"

    logger.debug(
        "Validated %d model file(s) in %s: %d issue(s)",
        len(yaml_files),
        metadata_dir,
        len(all_issues),
    )
    return all_issues
