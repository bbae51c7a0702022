"""Shared model definitions and registry builders for the test suite."""

import copy
from pathlib import Path

import pytest

from crudforge.metadata.loader import MetadataLoader
from crudforge.schema import SchemaRegistry

PROJECT = {
    "model": "Project",
    "fields": {
        "name": {"type": "String", "required": True, "primary": True, "displayName": "Name"},
        "office": {"type": "ObjectId", "ref": "Office", "displayName": "Office"},
        "budget": {"type": "Number", "minReadAccess": 250, "minWriteAccess": 250},
    },
}

OFFICE = {
    "model": "Office",
    "fields": {
        "name": {"type": "String", "required": True, "primary": True, "minWriteAccess": 200},
        "address": {"street": "String", "city": "String"},
        "manager": {"type": "ObjectId", "ref": "Worker"},
        "parent": {"type": "ObjectId", "ref": "Office"},
    },
}

WORKER = {
    "model": "Worker",
    "fields": {
        "name": {"type": "String", "required": True},
        "office": {"type": "ObjectId", "ref": "Office"},
        "salary": {"type": "Number", "minReadAccess": 100, "minWriteAccess": 100},
        "notes": {"type": "String", "hidden": True},
    },
}


def build_loader(*models: dict, default_store: str = "default") -> MetadataLoader:
    loader = MetadataLoader(Path("unused"), default_store=default_store)
    for model in models:
        loader.add_model(copy.deepcopy(model))
    return loader


def build_registry(*models: dict, max_header_depth: int = 2) -> SchemaRegistry:
    loader = build_loader(*models)
    return SchemaRegistry.build(loader.sources(), max_header_depth=max_header_depth)


@pytest.fixture
def registry() -> SchemaRegistry:
    """Project -> Office <-> Worker, Office -> Office."""
    return build_registry(PROJECT, OFFICE, WORKER)
