"""Data models for schemasync."""

from schemasync.models.schema import (
    DataType,
    ColumnType,
    KeyRole,
    Cardinality,
    CascadeAction,
    Reference,
    NormalAttribute,
    PrimaryAttribute,
    ForeignAttribute,
    Attribute,
    ATTRIBUTE_ADAPTER,
    SERIAL_TYPES,
    Table,
    Schema,
)
from schemasync.models.ddl import (
    Dialect,
    GenerateOptions,
    Defect,
    ExportResult,
    ImportResult,
)
from schemasync.models.edges import (
    AttributeRef,
    Relationship,
    EdgeCreated,
    EdgeDestroyed,
    EdgeEvent,
    edge_id_for,
)

__all__ = [
    "DataType",
    "ColumnType",
    "KeyRole",
    "Cardinality",
    "CascadeAction",
    "Reference",
    "NormalAttribute",
    "PrimaryAttribute",
    "ForeignAttribute",
    "Attribute",
    "ATTRIBUTE_ADAPTER",
    "SERIAL_TYPES",
    "Table",
    "Schema",
    "Dialect",
    "GenerateOptions",
    "Defect",
    "ExportResult",
    "ImportResult",
    "AttributeRef",
    "Relationship",
    "EdgeCreated",
    "EdgeDestroyed",
    "EdgeEvent",
    "edge_id_for",
]
