"""Load model definitions from YAML files and flatten them into store paths."""

import logging
from pathlib import Path
from typing import Any

import yaml

from crudforge.errors import ConfigurationError
from crudforge.metadata.types import FieldAnnotations, ModelSource, RawField, Reference

logger = logging.getLogger(__name__)

# Internal paths every document store reports alongside the declared ones
ID_PATH = "_id"
VERSION_PATH = "__v"
POSITIONAL_PATH = "$"


class MetadataLoader:
    """Loads model definitions from ``<metadata_path>/models/*.yaml``.

    Each model is flattened into the ordered ``(dotted_path, RawField)`` list a
    document store would report through its own schema introspection.
    """

    def __init__(self, metadata_path: Path, default_store: str = "default"):
        self.metadata_path = metadata_path
        self.default_store = default_store
        # store_id -> model_name -> source
        self.models: dict[str, dict[str, ModelSource]] = {}

    def load_all(self) -> None:
        """Load every model file.

        Raises:
            ConfigurationError: On unreadable files, malformed declarations or
                duplicate model names within a store.
        """
        models_path = self.metadata_path / "models"
        if not models_path.exists():
            return

        for yaml_file in sorted(models_path.glob("*.yaml")):
            try:
                with open(yaml_file) as f:
                    data = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Cannot read model file {yaml_file}: {e}") from e

            if not data:
                continue
            if not isinstance(data, dict) or "model" not in data:
                raise ConfigurationError(f"Model file {yaml_file} has no 'model' key")

            self.add_model(data)

    def add_model(self, data: dict) -> ModelSource:
        """Resolve and register a single model definition dict."""
        source = self._resolve_model(data)
        store_models = self.models.setdefault(source.store_id, {})
        if source.model_name in store_models:
            raise ConfigurationError(
                f"Duplicate model '{source.model_name}' in store '{source.store_id}'"
            )
        store_models[source.model_name] = source
        logger.debug(
            "Loaded model %s (%d paths) in store %s",
            source.model_name, len(source.paths), source.store_id,
        )
        return source

    def _resolve_model(self, data: dict) -> ModelSource:
        name = data["model"]
        store_id = data.get("store", self.default_store)
        fields = data.get("fields") or {}
        if not isinstance(fields, dict):
            raise ConfigurationError(f"Model '{name}': 'fields' must be a mapping")

        source = ModelSource(
            store_id=store_id,
            model_name=name,
            description=data.get("description"),
        )
        self._flatten(name, store_id, fields, "", source.paths)
        source.paths.append((ID_PATH, RawField(instance="ObjectId")))
        source.paths.append((VERSION_PATH, RawField(instance="Number")))
        return source

    def _flatten(
        self,
        model: str,
        store_id: str,
        declarations: dict,
        prefix: str,
        acc: list[tuple[str, RawField]],
    ) -> None:
        """Append every addressable path of ``declarations`` to ``acc``.

        Parents are emitted before their subpaths.
        """
        for key, decl in declarations.items():
            path = f"{prefix}{key}"

            if isinstance(decl, str):
                acc.append((path, RawField(instance=decl)))
            elif isinstance(decl, list):
                self._flatten_array(model, store_id, path, decl, {}, acc)
            elif isinstance(decl, dict):
                field_type = decl.get("type")
                if isinstance(field_type, list):
                    self._flatten_array(model, store_id, path, field_type, decl, acc)
                elif "schema" in decl:
                    acc.append((path, self._resolve_field(model, store_id, decl, "Embedded")))
                    self._flatten_subdocument(model, store_id, decl["schema"], f"{path}.", acc)
                elif field_type is not None:
                    # An inline mapping as type is untyped, like a store's Mixed
                    instance = field_type if isinstance(field_type, str) else "Mixed"
                    acc.append((path, self._resolve_field(model, store_id, decl, instance)))
                else:
                    # Plain nested path: only its subpaths are addressable
                    self._flatten(model, store_id, decl, f"{path}.", acc)
            else:
                raise ConfigurationError(
                    f"Model '{model}': invalid declaration for field '{path}'"
                )

    def _flatten_array(
        self,
        model: str,
        store_id: str,
        path: str,
        items: list,
        wrapper: dict,
        acc: list[tuple[str, RawField]],
    ) -> None:
        if len(items) != 1:
            raise ConfigurationError(
                f"Model '{model}': array field '{path}' must declare exactly one element"
            )
        element_decl = items[0]
        subschema: dict | None = None

        if isinstance(element_decl, str):
            element = RawField(instance=element_decl)
        elif isinstance(element_decl, dict) and isinstance(element_decl.get("type"), str):
            element = self._resolve_field(model, store_id, element_decl, element_decl["type"])
        elif isinstance(element_decl, dict) and "schema" in element_decl:
            subschema = element_decl["schema"]
            element = self._resolve_field(model, store_id, element_decl, "Embedded")
        elif isinstance(element_decl, dict):
            # Plain sub-document: its keys are field names, never annotations
            subschema = element_decl
            element = RawField(instance="Embedded")
        else:
            raise ConfigurationError(
                f"Model '{model}': invalid array element for field '{path}'"
            )

        array_field = self._resolve_field(model, store_id, wrapper, "Array")
        array_field.element = element
        acc.append((path, array_field))

        if subschema is not None:
            self._flatten_subdocument(model, store_id, subschema, f"{path}.", acc)
        else:
            acc.append((f"{path}.{POSITIONAL_PATH}", element))

    def _flatten_subdocument(
        self,
        model: str,
        store_id: str,
        schema: Any,
        prefix: str,
        acc: list[tuple[str, RawField]],
    ) -> None:
        if not isinstance(schema, dict):
            raise ConfigurationError(
                f"Model '{model}': sub-document schema at '{prefix[:-1]}' must be a mapping"
            )
        self._flatten(model, store_id, schema, prefix, acc)
        acc.append((f"{prefix}{ID_PATH}", RawField(instance="ObjectId")))

    def _resolve_field(self, model: str, store_id: str, decl: dict, instance: str) -> RawField:
        """Convert a field mapping to a RawField of the given store type."""
        return RawField(
            instance=instance,
            required=bool(decl.get("required", False)),
            reference=self._resolve_ref(model, store_id, decl.get("ref")),
            annotations=FieldAnnotations(
                display_name=decl.get("displayName"),
                description=decl.get("description"),
                default=decl.get("default"),
                min_read_access=self._access_level(model, decl, "minReadAccess"),
                min_write_access=self._access_level(model, decl, "minWriteAccess"),
                primary=bool(decl.get("primary", False)),
                hidden=bool(decl.get("hidden", False)),
            ),
        )

    def _resolve_ref(self, model: str, store_id: str, ref: Any) -> Reference | None:
        if ref is None:
            return None
        if isinstance(ref, str):
            return Reference(store_id=store_id, model_name=ref)
        if isinstance(ref, dict) and isinstance(ref.get("model"), str):
            return Reference(store_id=ref.get("store", store_id), model_name=ref["model"])
        raise ConfigurationError(f"Model '{model}': invalid ref {ref!r}")

    def _access_level(self, model: str, decl: dict, key: str) -> int:
        value = decl.get(key, 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise ConfigurationError(
                f"Model '{model}': {key} must be a non-negative integer, got {value!r}"
            )
        return value

    def get_model(self, name: str, store_id: str | None = None) -> ModelSource | None:
        """Get a resolved model by name (default store unless given)."""
        return self.models.get(store_id or self.default_store, {}).get(name)

    def list_models(self, store_id: str | None = None) -> list[str]:
        """List model names of a store."""
        return list(self.models.get(store_id or self.default_store, {}).keys())

    def sources(self) -> list[ModelSource]:
        """All loaded models across stores, in load order."""
        return [source for store in self.models.values() for source in store.values()]
