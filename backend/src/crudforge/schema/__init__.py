"""Schema compilation: field trees, decycling, path indexes and headers."""

from crudforge.schema.compiler import SchemaCompiler
from crudforge.schema.decycle import decycle
from crudforge.schema.fields import READ, WRITE, FieldDescriptor, HeaderNode
from crudforge.schema.files import FILE_MODEL_NAME
from crudforge.schema.headers import project
from crudforge.schema.paths import build_index, schema_keys, wire_types
from crudforge.schema.registry import SchemaRegistry

__all__ = [
    "FILE_MODEL_NAME",
    "FieldDescriptor",
    "HeaderNode",
    "READ",
    "SchemaCompiler",
    "SchemaRegistry",
    "WRITE",
    "build_index",
    "decycle",
    "project",
    "schema_keys",
    "wire_types",
]
