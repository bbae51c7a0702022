"""Field-level access control driven by the compiled field trees.

Access levels are non-negative integers. A field's ``minReadAccess`` /
``minWriteAccess`` is the lowest caller level allowed to read / write it: the
higher the number on a field, the more privileged the caller must be. A caller
is denied a field when ``field level > caller level``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from crudforge.errors import PermissionDeniedError
from crudforge.schema.fields import READ, WRITE, FieldDescriptor

if TYPE_CHECKING:
    from crudforge.schema.registry import SchemaRegistry


def get_denied_paths(
    index: dict[str, FieldDescriptor],
    access_level: int,
    auth_field: str = READ,
    top_level_only: bool = False,
) -> list[str]:
    """Return the paths of ``index`` whose threshold exceeds ``access_level``.

    Args:
        index: Path index of a decycled tree
        access_level: The caller's access level
        auth_field: READ (``minReadAccess``) or WRITE (``minWriteAccess``)
        top_level_only: Skip nested (dotted) paths

    Returns:
        Denied dotted paths in index order
    """
    return [
        path
        for path, field in index.items()
        if (not top_level_only or "." not in path)
        and field.access_level(auth_field) > access_level
    ]


def prune_object(
    fields: list[FieldDescriptor],
    obj: dict[str, Any],
    access_level: int,
    auth_field: str = READ,
) -> dict[str, Any]:
    """Delete every key of ``obj`` the caller may not access, in place.

    Arrays of sub-documents are pruned element by element and nested
    documents are pruned recursively. Missing keys and values that are not
    documents (e.g. unpopulated reference ids) are left alone.

    Returns:
        The same ``obj``, for chaining
    """
    for field in fields:
        if field.key not in obj:
            continue
        if field.access_level(auth_field) > access_level:
            del obj[field.key]
            continue
        if not field.children:
            continue

        value = obj[field.key]
        if isinstance(value, list):
            for item in value:
                if isinstance(item, dict):
                    prune_object(field.children, item, access_level, auth_field)
        elif isinstance(value, dict):
            prune_object(field.children, value, access_level, auth_field)

    return obj


def _crosses_reference(index: dict[str, FieldDescriptor], path: str) -> bool:
    """True if a proper prefix of ``path`` is a reference field."""
    segments = path.split(".")
    for end in range(1, len(segments)):
        parent = index.get(".".join(segments[:end]))
        if parent is not None and parent.reference is not None:
            return True
    return False


class AccessFilter:
    """Request-time access checks over a SchemaRegistry.

    All methods allocate their own structures and are safe to call
    concurrently.
    """

    def __init__(self, registry: SchemaRegistry):
        self.registry = registry

    def get_denied_paths(
        self,
        model_name: str,
        access_level: int,
        auth_field: str = READ,
        top_level_only: bool = False,
    ) -> list[str]:
        """Denied paths of a model.

        Raises:
            UnknownModelError: If the model does not exist.
        """
        index = self.registry.path_index(model_name)
        return get_denied_paths(index, access_level, auth_field, top_level_only)

    def prune_object(
        self,
        model_name: str,
        obj: dict[str, Any],
        access_level: int,
        auth_field: str = READ,
    ) -> dict[str, Any]:
        return prune_object(self.registry.fields(model_name), obj, access_level, auth_field)

    def prune_documents(
        self,
        model_name: str,
        documents: list[dict[str, Any]],
        access_level: int,
        auth_field: str = READ,
    ) -> list[dict[str, Any]]:
        fields = self.registry.fields(model_name)
        for document in documents:
            prune_object(fields, document, access_level, auth_field)
        return documents

    def check_write(self, model_name: str, access_level: int, operation: str = "write") -> None:
        """Refuse a create/update when a required field is write-protected.

        A caller who cannot supply a mandatory field may not omit it either,
        so the whole write is rejected instead of stripping the field. Paths
        inside referenced models are not written through the reference and
        are ignored.

        Raises:
            PermissionDeniedError: Listing the required denied paths.
        """
        index = self.registry.path_index(model_name)
        blocking = [
            path
            for path in get_denied_paths(index, access_level, WRITE)
            if index[path].required and not _crosses_reference(index, path)
        ]
        if blocking:
            raise PermissionDeniedError(
                operation,
                model_name,
                blocking,
                f"Access level {access_level} cannot write required field(s): {', '.join(blocking)}",
            )

    def check_delete(self, model_name: str, access_level: int) -> None:
        """Refuse deletion when any top-level field is write-protected.

        Deletion is all-or-nothing at the row level, independent of which
        fields the particular document has populated.

        Raises:
            PermissionDeniedError: Listing the protected top-level paths.
        """
        denied = self.get_denied_paths(model_name, access_level, WRITE, top_level_only=True)
        if denied:
            raise PermissionDeniedError("delete", model_name, denied, "EPERM")

    def guard_write(
        self,
        model_name: str,
        body: dict[str, Any],
        access_level: int,
        operation: str = "write",
    ) -> dict[str, Any]:
        """Check a create/update body and strip the fields the caller may not write."""
        self.check_write(model_name, access_level, operation)
        return self.prune_object(model_name, body, access_level, WRITE)
