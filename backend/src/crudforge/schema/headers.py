"""Project field trees into UI table headers."""

from crudforge.schema.fields import FieldDescriptor, HeaderNode


def project(fields: list[FieldDescriptor], max_depth: int, depth: int = 0) -> list[HeaderNode]:
    """Build headers for every non-hidden field.

    A reference is expanded into subheaders while ``depth < max_depth`` and
    consumes one level. Plain nested objects are always expanded and consume
    nothing, so the raw (cyclic) tree can be passed in directly.
    """
    headers: list[HeaderNode] = []

    for field in fields:
        if field.hidden:
            continue

        header = HeaderNode(
            key=field.key,
            value_type=field.value_type,
            display_name=field.display_name,
            description=field.description,
            is_array=field.is_array,
            primary=field.primary,
        )
        if field.children is not None:
            if field.reference is None:
                header.subheaders = project(field.children, max_depth, depth)
            elif depth < max_depth:
                header.subheaders = project(field.children, max_depth, depth + 1)

        headers.append(header)

    return headers
