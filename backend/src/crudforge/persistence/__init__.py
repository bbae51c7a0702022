"""Persistence layer - JSON document store and query helpers."""

from crudforge.persistence.filters import (
    apply_projection,
    filter_paths,
    matches,
    parse_projection,
    sort_documents,
)
from crudforge.persistence.store import DocumentStore, merge_documents

__all__ = [
    "DocumentStore",
    "apply_projection",
    "filter_paths",
    "matches",
    "merge_documents",
    "parse_projection",
    "sort_documents",
]
