"""Field tree node types."""

from dataclasses import dataclass
from typing import Any

from crudforge.metadata.types import Reference

# Field attributes an access level is compared against
READ = "minReadAccess"
WRITE = "minWriteAccess"


@dataclass
class FieldDescriptor:
    """One node of a model's field tree.

    ``children`` is None for leaves. It is a list for Object-typed fields, for
    fields whose reference has been resolved and for synthetic path parents.
    """

    key: str
    value_type: str | None
    display_name: str | None = None
    description: str | None = None
    is_array: bool = False
    required: bool = False
    reference: Reference | None = None
    default: Any = None
    min_read_access: int = 0
    min_write_access: int = 0
    primary: bool = False
    hidden: bool = False
    children: "list[FieldDescriptor] | None" = None

    @classmethod
    def placeholder(cls, key: str) -> "FieldDescriptor":
        """Synthetic Object parent created for an intermediate path segment."""
        return cls(key=key, value_type="Object", children=[])

    def access_level(self, auth_field: str) -> int:
        """Return the threshold stored under ``minReadAccess``/``minWriteAccess``."""
        if auth_field == READ:
            return self.min_read_access
        if auth_field == WRITE:
            return self.min_write_access
        raise ValueError(f"Unknown access field '{auth_field}'")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the subtree. Only safe on decycled trees."""
        data: dict[str, Any] = {
            "key": self.key,
            "name": self.display_name,
            "description": self.description,
            "type": self.value_type,
            "isArray": self.is_array,
            "required": self.required,
            "ref": self.reference.to_dict() if self.reference else None,
            "default": self.default,
            "minReadAccess": self.min_read_access,
            "minWriteAccess": self.min_write_access,
            "primary": self.primary,
            "hidden": self.hidden,
        }
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class HeaderNode:
    """UI-facing description of a field, independent of access levels."""

    key: str
    value_type: str | None
    display_name: str | None = None
    description: str | None = None
    is_array: bool = False
    primary: bool = False
    subheaders: "list[HeaderNode] | None" = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.display_name,
            "key": self.key,
            "description": self.description,
            "type": self.value_type,
            "isArray": self.is_array,
            "primary": self.primary,
        }
        if self.subheaders is not None:
            data["subheaders"] = [header.to_dict() for header in self.subheaders]
        return data
