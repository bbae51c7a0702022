"""Compile flattened store metadata into per-model field trees.

Compilation happens in two passes:

1. ``compile()`` turns every model's ``(dotted_path, RawField)`` list into a
   tree of FieldDescriptors and stores the root list in a shared registry
   keyed by store and model name.
2. ``plug_in_references()`` walks every compiled tree and attaches the root
   list of each referenced model as the referencing field's ``children``.
   Referenced trees are shared, not copied, so the result may be cyclic.

The second pass must only run once every model has been compiled.
"""

import logging
from collections.abc import Iterable

from crudforge.core.types import get_store_type, normalize_type
from crudforge.errors import ConfigurationError
from crudforge.metadata.types import ModelSource, RawField, Reference
from crudforge.schema.fields import FieldDescriptor
from crudforge.schema.files import FILE_MODEL_NAME, file_model_source

logger = logging.getLogger(__name__)

# Final path segments of store-internal paths (id, version counter, array positional marker)
SKIPPED_SEGMENTS = ("_id", "__v", "$")


def _find_sibling(siblings: list[FieldDescriptor], key: str) -> int | None:
    """Index of the sibling with ``key``, scanning in insertion order."""
    for index, sibling in enumerate(siblings):
        if sibling.key == key:
            return index
    return None


class SchemaCompiler:
    """Builds field trees and resolves references through a shared registry."""

    def __init__(self) -> None:
        # store_id -> model_name -> root field list
        self.schemas: dict[str, dict[str, list[FieldDescriptor]]] = {}
        self.file_fields: list[FieldDescriptor] = self.build_fields(file_model_source())

    def compile(self, store_id: str, model_name: str, paths: Iterable[tuple[str, RawField]]) -> list[FieldDescriptor]:
        """Compile one model and register its root field list.

        Raises:
            ConfigurationError: If the model is already registered in the store.
        """
        store = self.schemas.setdefault(store_id, {})
        if model_name in store:
            raise ConfigurationError(f"Duplicate model '{model_name}' in store '{store_id}'")

        fields = self.build_fields(ModelSource(store_id, model_name, list(paths)))
        store[model_name] = fields
        return fields

    def compile_all(self, sources: Iterable[ModelSource]) -> None:
        """Compile every source, then resolve references."""
        for source in sources:
            self.compile(source.store_id, source.model_name, source.paths)
        self.plug_in_references()

    def build_fields(self, source: ModelSource) -> list[FieldDescriptor]:
        fields: list[FieldDescriptor] = []
        for path, raw in source.paths:
            self._add_path(source.model_name, fields, path, raw)
        return fields

    def _add_path(self, model_name: str, cursor: list[FieldDescriptor], path: str, raw: RawField) -> None:
        segments = path.split(".")
        key = segments[-1]
        if key in SKIPPED_SEGMENTS:
            return

        for segment in segments[:-1]:
            index = _find_sibling(cursor, segment)
            if index is None:
                parent = FieldDescriptor.placeholder(segment)
                cursor.append(parent)
            else:
                parent = cursor[index]
                if parent.children is None:
                    parent.children = []
            cursor = parent.children

        field = self.build_field(model_name, path, key, raw)

        # Declared metadata overwrites an earlier node with the same key in place
        index = _find_sibling(cursor, key)
        if index is None:
            cursor.append(field)
            return
        existing = cursor[index]
        if existing.children:
            field.children = (field.children or []) + existing.children
        cursor[index] = field

    def build_field(self, model_name: str, path: str, key: str, raw: RawField) -> FieldDescriptor:
        """Build a FieldDescriptor from the metadata of a path's final segment."""
        annotations = raw.annotations
        field = FieldDescriptor(
            key=key,
            value_type=None,
            display_name=annotations.display_name,
            description=annotations.description,
            is_array=raw.is_array,
            required=raw.required,
            reference=raw.reference,
            default=annotations.default,
            min_read_access=annotations.min_read_access,
            min_write_access=annotations.min_write_access,
            primary=annotations.primary,
            hidden=annotations.hidden,
        )

        instance = raw.instance
        if raw.is_array and raw.element is not None:
            element = raw.element
            element_annotations = element.annotations
            instance = element.instance
            field.reference = element.reference or field.reference
            field.primary = field.primary or element_annotations.primary
            field.hidden = field.hidden or element_annotations.hidden
            field.display_name = field.display_name or element_annotations.display_name
            field.description = field.description or element_annotations.description
            if field.default is None:
                field.default = element_annotations.default
            # The array cannot be more permissive than its elements
            field.min_read_access = max(field.min_read_access, element_annotations.min_read_access)
            field.min_write_access = max(field.min_write_access, element_annotations.min_write_access)

        store_type = get_store_type(instance)
        if store_type is None:
            logger.debug("Field '%s.%s' has unknown store type '%s'", model_name, path, instance)
        elif store_type.structured:
            field.children = []
        elif not store_type.traceable:
            logger.warning(
                "Field '%s.%s' is untyped (%s): its subfields cannot be traced or "
                "access-controlled individually. Declare a 'schema' to expose them.",
                model_name,
                path,
                instance,
            )

        field.value_type = normalize_type(
            instance, field.reference.model_name if field.reference else None
        )
        return field

    def resolve(self, reference: Reference) -> list[FieldDescriptor] | None:
        """Root field list of a referenced model, None if never compiled."""
        if reference.model_name == FILE_MODEL_NAME:
            return self.file_fields
        return self.schemas.get(reference.store_id, {}).get(reference.model_name)

    def plug_in_references(self) -> None:
        """Attach referenced model trees to every reference field."""
        for store_id, models in self.schemas.items():
            for model_name, fields in models.items():
                for field in fields:
                    self._plug_in_field_ref(model_name, field)

    def _plug_in_field_ref(self, model_name: str, field: FieldDescriptor) -> None:
        if field.reference is not None:
            target = self.resolve(field.reference)
            if target is not None:
                field.children = target
                return
            logger.warning(
                "Field '%s.%s' references unknown model '%s'; it stays a leaf",
                model_name,
                field.key,
                field.reference.ref_id,
            )

        for child in field.children or []:
            self._plug_in_field_ref(model_name, child)
