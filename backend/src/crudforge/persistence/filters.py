"""In-memory evaluation of document filters, sorts and projections.

Filters use the familiar document-store shape: ``{"path.to.field": value}``
for equality, or ``{"path": {"$gte": 1, "$lt": 5}}`` with operators, plus
``$and`` / ``$or`` lists at any level.
"""

import copy
from typing import Any

_MISSING = object()


def path_values(document: Any, path: str) -> list[Any]:
    """All values reachable at a dotted path, descending into lists."""
    current = [document]
    for segment in path.split("."):
        found: list[Any] = []
        for value in current:
            if isinstance(value, dict):
                if segment in value:
                    found.append(value[segment])
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, dict) and segment in item:
                        found.append(item[segment])
        current = found
    return current


def _flatten(values: list[Any]) -> list[Any]:
    flat: list[Any] = []
    for value in values:
        if isinstance(value, list):
            flat.extend(value)
        flat.append(value)
    return flat


def _compare(values: list[Any], operator: str, operand: Any) -> bool:
    candidates = [v for v in _flatten(values) if not isinstance(v, list)]
    try:
        if operator == "$gt":
            return any(v is not None and v > operand for v in candidates)
        if operator == "$gte":
            return any(v is not None and v >= operand for v in candidates)
        if operator == "$lt":
            return any(v is not None and v < operand for v in candidates)
        if operator == "$lte":
            return any(v is not None and v <= operand for v in candidates)
    except TypeError:
        return False
    raise ValueError(f"Unsupported filter operator '{operator}'")


def _matches_condition(values: list[Any], condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
        for operator, operand in condition.items():
            if operator == "$eq":
                ok = operand in _flatten(values)
            elif operator == "$ne":
                ok = operand not in _flatten(values)
            elif operator == "$in":
                ok = any(v in operand for v in _flatten(values))
            elif operator == "$nin":
                ok = not any(v in operand for v in _flatten(values))
            elif operator == "$exists":
                ok = bool(values) == bool(operand)
            else:
                ok = _compare(values, operator, operand)
            if not ok:
                return False
        return True
    return condition in _flatten(values)


def matches(document: dict[str, Any], filter: dict[str, Any] | None) -> bool:
    """True if ``document`` satisfies every condition of ``filter``.

    Raises:
        ValueError: On unsupported operators or malformed logical clauses.
    """
    if not filter:
        return True

    for key, condition in filter.items():
        if key in ("$and", "$or"):
            if not isinstance(condition, list):
                raise ValueError(f"'{key}' expects a list of filters")
            results = (matches(document, sub) for sub in condition)
            if not (all(results) if key == "$and" else any(results)):
                return False
        elif key.startswith("$"):
            raise ValueError(f"Unsupported filter operator '{key}'")
        elif not _matches_condition(path_values(document, key), condition):
            return False
    return True


def filter_paths(filter: dict[str, Any] | None) -> list[str]:
    """Field paths a filter refers to, including those inside ``$and`` / ``$or``."""
    paths: list[str] = []
    for key, condition in (filter or {}).items():
        if key in ("$and", "$or"):
            if isinstance(condition, list):
                for sub in condition:
                    if isinstance(sub, dict):
                        paths.extend(filter_paths(sub))
        elif not key.startswith("$"):
            paths.append(key)
    return paths


def _sort_key(value: Any) -> tuple:
    if value is None or value is _MISSING:
        return (0, 0)
    if isinstance(value, (bool, int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, str(value))


def sort_documents(documents: list[dict[str, Any]], sort: dict[str, int] | None) -> list[dict[str, Any]]:
    """Sort by ``{path: 1 | -1}``; earlier keys take precedence."""
    if not sort:
        return documents
    result = list(documents)
    for path, direction in reversed(list(sort.items())):
        result.sort(
            key=lambda doc: _sort_key(next(iter(path_values(doc, path)), _MISSING)),
            reverse=direction in (-1, "-1", "desc", "descending"),
        )
    return result


def parse_projection(projection: str | list[str] | None) -> tuple[list[str], list[str]]:
    """Split a projection into (included, excluded) paths.

    Accepts ``"name office -budget"`` style strings or lists of such tokens.
    """
    if not projection:
        return [], []
    tokens = projection.split() if isinstance(projection, str) else list(projection)
    included = [t for t in tokens if not t.startswith("-")]
    excluded = [t[1:] for t in tokens if t.startswith("-")]
    if included and excluded:
        raise ValueError("Projection cannot mix inclusion and exclusion")
    return included, excluded


def _delete_path(value: Any, segments: list[str]) -> None:
    if isinstance(value, list):
        for item in value:
            _delete_path(item, segments)
    elif isinstance(value, dict):
        if len(segments) == 1:
            value.pop(segments[0], None)
        elif segments[0] in value:
            _delete_path(value[segments[0]], segments[1:])


def _copy_path(source: Any, target: dict[str, Any], segments: list[str]) -> None:
    key = segments[0]
    if not isinstance(source, dict) or key not in source:
        return
    value = source[key]
    if len(segments) == 1:
        target[key] = value
    elif isinstance(value, dict):
        _copy_path(value, target.setdefault(key, {}), segments[1:])
    elif isinstance(value, list):
        existing = target.setdefault(key, [{} for _ in value])
        for item, slot in zip(value, existing):
            if isinstance(item, dict) and isinstance(slot, dict):
                _copy_path(item, slot, segments[1:])


def apply_projection(document: dict[str, Any], included: list[str], excluded: list[str]) -> dict[str, Any]:
    """Return a projected copy of ``document``; ``_id`` is always kept."""
    if included:
        result: dict[str, Any] = {}
        if "_id" in document:
            result["_id"] = document["_id"]
        for path in included:
            _copy_path(document, result, path.split("."))
        return result

    result = dict(document)
    for path in excluded:
        segments = path.split(".")
        if len(segments) == 1:
            result.pop(path, None)
        elif segments[0] in result:
            # Copy the branch before deleting inside it
            result[segments[0]] = copy.deepcopy(result[segments[0]])
            _delete_path(result[segments[0]], segments[1:])
    return result
