"""Typed intermediate representation of store field metadata.

A store adapter (see ``metadata.loader``) turns its own schema objects into
these types so the schema compiler never has to poke at store-specific shapes.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Reference:
    """Foreign-key target of a field: a model inside a given store."""

    store_id: str
    model_name: str

    @property
    def ref_id(self) -> str:
        return f"{self.store_id}:{self.model_name}"

    def to_dict(self) -> dict[str, str]:
        return {"store": self.store_id, "model": self.model_name}


@dataclass
class FieldAnnotations:
    """Free-form annotation bag attached to a field declaration."""

    display_name: str | None = None
    description: str | None = None
    default: Any = None
    min_read_access: int = 0
    min_write_access: int = 0
    primary: bool = False
    hidden: bool = False


@dataclass
class RawField:
    """Metadata of one addressable path as reported by the store.

    Attributes:
        instance: Store type name (String, Number, Date, Boolean, ObjectId,
            Array, Embedded, Mixed or anything the store reports)
        required: Whether the store enforces presence
        reference: Target model when values are foreign keys
        annotations: displayName/description/default/access/primary/hidden
        element: Element metadata when ``instance == "Array"``
    """

    instance: str
    required: bool = False
    reference: Reference | None = None
    annotations: FieldAnnotations = field(default_factory=FieldAnnotations)
    element: "RawField | None" = None

    @property
    def is_array(self) -> bool:
        return self.instance == "Array"


@dataclass
class ModelSource:
    """All flattened paths of one model, in store enumeration order."""

    store_id: str
    model_name: str
    paths: list[tuple[str, RawField]] = field(default_factory=list)
    description: str | None = None
