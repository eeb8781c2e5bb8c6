"""Schema consistency and DDL synchronization engine."""

from schemasync.models import (
    Cardinality,
    CascadeAction,
    ColumnType,
    DataType,
    Defect,
    Dialect,
    ExportResult,
    ForeignAttribute,
    GenerateOptions,
    ImportResult,
    KeyRole,
    NormalAttribute,
    PrimaryAttribute,
    Reference,
    Relationship,
    Schema,
    Table,
)
from schemasync.services import (
    ConsistencyMaintainer,
    SchemaService,
    generate_ddl,
    parse_ddl,
)
from schemasync.utils import (
    ErrorCode,
    NotFoundError,
    PreconditionError,
    SchemaSyncError,
    UnsupportedDialectError,
)

__version__ = "0.1.0"

__all__ = [
    "Cardinality",
    "CascadeAction",
    "ColumnType",
    "DataType",
    "Defect",
    "Dialect",
    "ExportResult",
    "ForeignAttribute",
    "GenerateOptions",
    "ImportResult",
    "KeyRole",
    "NormalAttribute",
    "PrimaryAttribute",
    "Reference",
    "Relationship",
    "Schema",
    "Table",
    "ConsistencyMaintainer",
    "SchemaService",
    "generate_ddl",
    "parse_ddl",
    "ErrorCode",
    "NotFoundError",
    "PreconditionError",
    "SchemaSyncError",
    "UnsupportedDialectError",
]
