"""Schema registry: compiled, decycled and indexed trees of every model."""

import logging
from collections.abc import Iterable

from crudforge.errors import UnknownModelError, UnknownPathError
from crudforge.metadata.types import ModelSource
from crudforge.schema.compiler import SchemaCompiler
from crudforge.schema.decycle import decycle
from crudforge.schema.fields import FieldDescriptor, HeaderNode
from crudforge.schema.headers import project
from crudforge.schema.paths import build_index, schema_keys, wire_types

logger = logging.getLogger(__name__)


class SchemaRegistry:
    """Read-only view of all compiled models.

    Built once at startup by ``build()``. Afterwards nothing mutates the
    trees or indexes, so any number of requests may read them concurrently.

    Example:
        registry = SchemaRegistry.build(loader.sources(), default_store="default")
        registry.get_table_headers("Project")
    """

    def __init__(
        self,
        compiler: SchemaCompiler,
        default_store: str = "default",
        max_header_depth: int = 2,
    ):
        self.default_store = default_store
        self.max_header_depth = max_header_depth
        self._raw = compiler.schemas
        self._decycled: dict[str, dict[str, list[FieldDescriptor]]] = {}
        self._indexes: dict[str, dict[str, dict[str, FieldDescriptor]]] = {}

        for store_id, models in self._raw.items():
            for model_name, fields in models.items():
                decycled = decycle(fields)
                self._decycled.setdefault(store_id, {})[model_name] = decycled
                self._indexes.setdefault(store_id, {})[model_name] = build_index(decycled)

    @classmethod
    def build(
        cls,
        sources: Iterable[ModelSource],
        default_store: str = "default",
        max_header_depth: int = 2,
    ) -> "SchemaRegistry":
        """Compile every model source and derive decycled trees and indexes.

        Raises:
            ConfigurationError: On duplicate models within a store.
        """
        compiler = SchemaCompiler()
        compiler.compile_all(sources)
        registry = cls(compiler, default_store=default_store, max_header_depth=max_header_depth)
        logger.info(
            "Schema registry built: %d model(s) in %d store(s)",
            sum(len(models) for models in registry._raw.values()),
            len(registry._raw),
        )
        return registry

    def _store(self, trees: dict, store_id: str | None) -> dict:
        return trees.get(store_id or self.default_store, {})

    def has_model(self, model_name: str, store_id: str | None = None) -> bool:
        return model_name in self._store(self._raw, store_id)

    def list_models(self, store_id: str | None = None) -> list[str]:
        return list(self._store(self._raw, store_id).keys())

    def fields(self, model_name: str, store_id: str | None = None) -> list[FieldDescriptor]:
        """Raw root fields of a model (references shared, possibly cyclic)."""
        try:
            return self._store(self._raw, store_id)[model_name]
        except KeyError:
            raise UnknownModelError(model_name, store_id) from None

    def decycled(self, model_name: str, store_id: str | None = None) -> list[FieldDescriptor]:
        try:
            return self._store(self._decycled, store_id)[model_name]
        except KeyError:
            raise UnknownModelError(model_name, store_id) from None

    def path_index(self, model_name: str, store_id: str | None = None) -> dict[str, FieldDescriptor]:
        try:
            return self._store(self._indexes, store_id)[model_name]
        except KeyError:
            raise UnknownModelError(model_name, store_id) from None

    def get_field(self, model_name: str, path: str, store_id: str | None = None) -> FieldDescriptor:
        """Field at a dotted path.

        Raises:
            UnknownModelError: If the model does not exist.
            UnknownPathError: If the path does not exist on the model.
        """
        index = self.path_index(model_name, store_id)
        if path not in index:
            raise UnknownPathError(model_name, path)
        return index[path]

    def validate_paths(self, model_name: str, paths: Iterable[str], store_id: str | None = None) -> list[str]:
        """Return ``paths`` unchanged if every one exists, else raise UnknownPathError."""
        checked = list(paths)
        for path in checked:
            self.get_field(model_name, path, store_id)
        return checked

    def get_schema(self, model_name: str | None = None, store_id: str | None = None) -> dict | list:
        """Serialized decycled schema of one model, or of every model in the store."""
        if model_name is not None:
            return [field.to_dict() for field in self.decycled(model_name, store_id)]
        return {
            name: [field.to_dict() for field in fields]
            for name, fields in self._store(self._decycled, store_id).items()
        }

    def get_schema_keys(self, model_name: str, max_depth: int | None = None, store_id: str | None = None) -> list[str]:
        depth = self.max_header_depth if max_depth is None else max_depth
        return schema_keys(self.decycled(model_name, store_id), depth)

    def get_table_headers(self, model_name: str, max_depth: int | None = None, store_id: str | None = None) -> list[HeaderNode]:
        depth = self.max_header_depth if max_depth is None else max_depth
        return project(self.fields(model_name, store_id), depth)

    def get_wire_types(self, model_name: str, store_id: str | None = None) -> dict[str, str]:
        return wire_types(self.fields(model_name, store_id))
