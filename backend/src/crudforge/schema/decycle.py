"""Turn a possibly cyclic field tree into a finite, independent copy."""

from dataclasses import replace

from crudforge.schema.fields import FieldDescriptor


def decycle(
    fields: list[FieldDescriptor],
    seen: frozenset[str] = frozenset(),
) -> list[FieldDescriptor]:
    """Copy ``fields`` breaking reference cycles.

    ``seen`` holds the ``store:model`` ids of the references followed on the
    path from the root to this level. A reference field whose id is already on
    that path gets ``children = []``. Sibling branches never see each other's
    ids, so each keeps its own expansion budget.

    The output shares no mutable structure with the input.
    """
    return [_decycle_field(field, seen) for field in fields]


def _decycle_field(field: FieldDescriptor, seen: frozenset[str]) -> FieldDescriptor:
    if field.children is None:
        return replace(field)

    if field.reference is not None:
        ref_id = field.reference.ref_id
        if ref_id in seen:
            return replace(field, children=[])
        seen = seen | {ref_id}

    return replace(field, children=decycle(field.children, seen))
