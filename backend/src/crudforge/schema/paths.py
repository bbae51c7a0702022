"""Dotted-path views over decycled field trees."""

from crudforge.core.types import UNSEARCHABLE_TYPES, wire_type
from crudforge.schema.fields import FieldDescriptor


def build_index(fields: list[FieldDescriptor], prefix: str = "") -> dict[str, FieldDescriptor]:
    """Map every dotted path of a decycled tree to its field, in tree order."""
    index: dict[str, FieldDescriptor] = {}
    _index_fields(fields, index, prefix)
    return index


def _index_fields(fields: list[FieldDescriptor], index: dict[str, FieldDescriptor], prefix: str) -> None:
    for field in fields:
        path = f"{prefix}{field.key}"
        index[path] = field
        if field.children is not None:
            _index_fields(field.children, index, f"{path}.")


def schema_keys(fields: list[FieldDescriptor], max_depth: int) -> list[str]:
    """Searchable dotted keys with at most ``max_depth`` segments.

    A field with children is descended into while its children stay within
    ``max_depth``; otherwise it is a key of its own unless its type is Object,
    Date or unknown. A reference cut off at the limit is therefore offered
    under its own key.
    """
    keys: list[str] = []
    _collect_keys(fields, keys, max_depth, "", 1)
    return keys


def _collect_keys(
    fields: list[FieldDescriptor],
    keys: list[str],
    max_depth: int,
    prefix: str,
    depth: int,
) -> None:
    if depth > max_depth:
        return

    for field in fields:
        path = f"{prefix}{field.key}"
        if field.children and depth < max_depth:
            _collect_keys(field.children, keys, max_depth, f"{path}.", depth + 1)
        elif field.value_type not in UNSEARCHABLE_TYPES:
            keys.append(path)


def wire_types(fields: list[FieldDescriptor]) -> dict[str, str]:
    """Top-level key to wire type; fields without a wire type are dropped."""
    result: dict[str, str] = {}
    for field in fields:
        field_wire_type = wire_type(field.value_type)
        if field_wire_type is not None:
            result[field.key] = field_wire_type
    return result
