"""Service modules for schemasync."""

from schemasync.services.type_mapping import (
    normalize_identifier,
    map_type,
    resolve_type,
    identity_clause,
    canonical_default,
    render_default,
    check_type_map,
    TYPE_MAP,
)
from schemasync.services.validation import validate_schema
from schemasync.services.relationships import derive_relationships
from schemasync.services.ddl_generator import DDLGenerator, generate_ddl
from schemasync.services.ddl_parser import DDLParser, parse_ddl, sniff_dialect
from schemasync.services.maintainer import ConsistencyMaintainer
from schemasync.services.metrics import (
    MetricsCollector,
    MetricSummary,
    OperationRecord,
    OperationTrace,
    get_metrics_collector,
    trace_operation,
)
from schemasync.services.schema import SchemaService

__all__ = [
    # Type mapping
    "normalize_identifier",
    "map_type",
    "resolve_type",
    "identity_clause",
    "canonical_default",
    "render_default",
    "check_type_map",
    "TYPE_MAP",
    # Validation and edges
    "validate_schema",
    "derive_relationships",
    # DDL
    "DDLGenerator",
    "generate_ddl",
    "DDLParser",
    "parse_ddl",
    "sniff_dialect",
    # Mutations
    "ConsistencyMaintainer",
    # Facade
    "SchemaService",
    # Metrics
    "MetricsCollector",
    "MetricSummary",
    "OperationRecord",
    "OperationTrace",
    "get_metrics_collector",
    "trace_operation",
]
