"""SQLite-backed document store.

Documents are JSON objects kept in a single table keyed by ``(model, _id)``.
Querying happens in Python over the decoded documents, which is plenty for the
record counts this store is meant for.
"""

import json
import logging
import sqlite3
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from crudforge.persistence.filters import apply_projection, matches, parse_projection, sort_documents
from crudforge.schema.fields import FieldDescriptor

logger = logging.getLogger(__name__)


class DocumentStore:
    """Simple SQLite document store for one store id."""

    def __init__(self, db_path: Path | str = ":memory:", store_id: str = "default"):
        self.db_path = str(db_path)
        self.store_id = store_id
        self.conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Establish database connection and create the documents table."""
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.execute(
            "CREATE TABLE IF NOT EXISTS documents ("
            "model TEXT NOT NULL, "
            "id TEXT NOT NULL, "
            "body TEXT NOT NULL, "
            "PRIMARY KEY (model, id))"
        )
        self.conn.commit()

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def _connection(self) -> sqlite3.Connection:
        if not self.conn:
            raise RuntimeError("Database not connected")
        return self.conn

    def create(self, model: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a new document.

        Returns:
            The stored document with ``_id`` and ``__v`` set

        Raises:
            ValueError: If a document with the same ``_id`` exists
        """
        conn = self._connection()
        document = dict(data)
        document["_id"] = str(document.get("_id") or uuid.uuid4().hex)
        document["__v"] = 0

        try:
            conn.execute(
                "INSERT INTO documents (model, id, body) VALUES (?, ?, ?)",
                [model, document["_id"], json.dumps(document, default=str)],
            )
        except sqlite3.IntegrityError:
            raise ValueError(f"{model} '{document['_id']}' already exists") from None
        conn.commit()
        return document

    def get(self, model: str, id: str) -> dict[str, Any] | None:
        """Fetch a single document by id."""
        row = self._connection().execute(
            "SELECT body FROM documents WHERE model = ? AND id = ?", [model, id]
        ).fetchone()
        return json.loads(row[0]) if row else None

    def update(
        self,
        model: str,
        id: str,
        data: dict[str, Any],
        keep: Iterable[str] = (),
    ) -> dict[str, Any] | None:
        """Merge ``data`` into an existing document and bump its version.

        Nested documents are merged key by key, everything else is replaced.

        Args:
            model: Model name
            id: Document id
            data: Fields to write
            keep: Dotted paths whose stored values survive the update when
                ``data`` does not set them, also inside replaced arrays and
                sub-documents

        Returns:
            The updated document, None if it does not exist
        """
        existing = self.get(model, id)
        if existing is None:
            return None

        document = merge_documents(existing, data)
        for path in keep:
            _keep_path(existing, document, path.split("."))
        document.update({"_id": id, "__v": existing.get("__v", 0) + 1})
        conn = self._connection()
        conn.execute(
            "UPDATE documents SET body = ? WHERE model = ? AND id = ?",
            [json.dumps(document, default=str), model, id],
        )
        conn.commit()
        return document

    def delete(self, model: str, id: str) -> bool:
        """Delete a document."""
        conn = self._connection()
        cursor = conn.execute("DELETE FROM documents WHERE model = ? AND id = ?", [model, id])
        conn.commit()
        return cursor.rowcount > 0

    def _all(self, model: str) -> list[dict[str, Any]]:
        rows = self._connection().execute(
            "SELECT body FROM documents WHERE model = ? ORDER BY rowid", [model]
        ).fetchall()
        return [json.loads(row[0]) for row in rows]

    def find(
        self,
        model: str,
        filter: dict[str, Any] | None = None,
        sort: dict[str, int] | None = None,
        skip: int = 0,
        limit: int | None = None,
        projection: str | list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """Query documents with filtering, sorting, pagination and projection.

        Raises:
            ValueError: On malformed filters or projections
        """
        included, excluded = parse_projection(projection)
        documents = [doc for doc in self._all(model) if matches(doc, filter)]
        documents = sort_documents(documents, sort)
        documents = documents[skip:]
        if limit:
            documents = documents[:limit]
        if included or excluded:
            documents = [apply_projection(doc, included, excluded) for doc in documents]
        return documents

    def count(self, model: str, filter: dict[str, Any] | None = None) -> int:
        """Count documents matching ``filter``."""
        return sum(1 for doc in self._all(model) if matches(doc, filter))

    def hydrate_references(
        self,
        documents: list[dict[str, Any]],
        fields: list[FieldDescriptor],
        depth: int,
    ) -> list[dict[str, Any]]:
        """Replace reference ids with the referenced documents, in place.

        Only references into this store are followed, at most ``depth``
        references deep. Dangling ids are left as they are.
        """
        for document in documents:
            self._hydrate(document, fields, depth)
        return documents

    def _hydrate(self, document: dict[str, Any], fields: list[FieldDescriptor], depth: int) -> None:
        for field in fields:
            value = document.get(field.key)
            if value is None or not field.children:
                continue

            if field.reference is not None:
                if depth <= 0 or field.reference.store_id != self.store_id:
                    continue
                model = field.reference.model_name
                if isinstance(value, list):
                    document[field.key] = [
                        self._fetch_reference(model, item, field.children, depth - 1)
                        for item in value
                    ]
                else:
                    document[field.key] = self._fetch_reference(model, value, field.children, depth - 1)
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, dict):
                        self._hydrate(item, field.children, depth)
            elif isinstance(value, dict):
                self._hydrate(value, field.children, depth)

    def _fetch_reference(self, model: str, value: Any, fields: list[FieldDescriptor], depth: int) -> Any:
        if not isinstance(value, str):
            return value
        target = self.get(model, value)
        if target is None:
            logger.debug("Dangling %s reference '%s'", model, value)
            return value
        self._hydrate(target, fields, depth)
        return target

    def dehydrate_references(self, document: dict[str, Any], fields: list[FieldDescriptor]) -> dict[str, Any]:
        """Collapse populated references back to their ids, in place."""
        for field in fields:
            value = document.get(field.key)
            if value is None or not field.children:
                continue

            if field.reference is not None:
                if isinstance(value, list):
                    document[field.key] = [_reference_id(item) for item in value]
                else:
                    document[field.key] = _reference_id(value)
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, dict):
                        self.dehydrate_references(item, field.children)
            elif isinstance(value, dict):
                self.dehydrate_references(value, field.children)
        return document


def _reference_id(value: Any) -> Any:
    if isinstance(value, dict) and "_id" in value:
        return value["_id"]
    return value


def merge_documents(existing: dict[str, Any], data: dict[str, Any]) -> dict[str, Any]:
    """Return ``existing`` updated with ``data``, merging nested documents recursively."""
    merged = dict(existing)
    for key, value in data.items():
        current = merged.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged[key] = merge_documents(current, value)
        else:
            merged[key] = value
    return merged


def _keep_path(source: Any, target: Any, segments: list[str]) -> None:
    """Copy the value at ``segments`` from ``source`` into ``target`` where it is missing."""
    if isinstance(source, list) and isinstance(target, list):
        for old, new in zip(source, target):
            _keep_path(old, new, segments)
        return
    if not isinstance(source, dict) or not isinstance(target, dict):
        return

    key = segments[0]
    if key not in source:
        return
    if len(segments) == 1:
        target.setdefault(key, source[key])
        return
    if isinstance(source[key], dict) and not isinstance(target.get(key), dict):
        target[key] = {}
    if key in target:
        _keep_path(source[key], target[key], segments[1:])
