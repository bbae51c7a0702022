"""Store type registry with normalized value types and wire types."""

from dataclasses import dataclass

# Normalized value types. A reference field takes its target model name instead.
STRING = "String"
NUMBER = "Number"
DATE = "Date"
BOOLEAN = "Boolean"
OBJECT = "Object"


@dataclass
class StoreType:
    name: str
    value_type: str
    wire_type: str | None = None
    identifier: bool = False   # foreign-key capable id (becomes the ref target name)
    structured: bool = False   # embedded sub-document, subpaths are enumerated
    traceable: bool = True     # False when subfields cannot be derived statically


# Built-in store types
STORE_TYPES: dict[str, StoreType] = {
    "String": StoreType(name="String", value_type=STRING, wire_type="string"),
    "Number": StoreType(name="Number", value_type=NUMBER, wire_type="float"),
    "Date": StoreType(name="Date", value_type=DATE, wire_type="string"),
    "Boolean": StoreType(name="Boolean", value_type=BOOLEAN, wire_type="bool"),
    "ObjectId": StoreType(name="ObjectId", value_type=OBJECT, identifier=True),
    "Embedded": StoreType(name="Embedded", value_type=OBJECT, structured=True),
    "Mixed": StoreType(name="Mixed", value_type=OBJECT, traceable=False),
    "Object": StoreType(name="Object", value_type=OBJECT, traceable=False),
}

TYPE_ALIASES = {
    "ObjectID": "ObjectId",
    "Bool": "Boolean",
}

# Value types that are never offered as search keys
UNSEARCHABLE_TYPES = (OBJECT, DATE, None)


def get_store_type(type_name: str) -> StoreType | None:
    """Get store type definition, None if the store type is unknown."""
    return STORE_TYPES.get(TYPE_ALIASES.get(type_name, type_name))


def normalize_type(type_name: str, reference_model: str | None = None) -> str | None:
    """Normalize a store type name to a value type.

    Identifier types with a reference normalize to the referenced model name;
    unknown store types normalize to None.
    """
    store_type = get_store_type(type_name)
    if store_type is None:
        return None
    if store_type.identifier and reference_model:
        return reference_model
    return store_type.value_type


def wire_type(value_type: str | None) -> str | None:
    """Map a value type to its wire type (referenced model name for references)."""
    if value_type is None or value_type == OBJECT:
        return None
    store_type = STORE_TYPES.get(value_type)
    if store_type is None:
        # Only reference fields carry a model name as value type
        return value_type
    return store_type.wire_type
