"""Schema import/export facade used by collaborators."""

import logging
from contextlib import nullcontext
from typing import Any, Optional

from schemasync.config import Settings
from schemasync.models.ddl import Dialect, ExportResult, GenerateOptions, ImportResult
from schemasync.models.schema import Schema
from schemasync.services.ddl_generator import DDLGenerator
from schemasync.services.ddl_parser import DDLParser
from schemasync.services.maintainer import ConsistencyMaintainer
from schemasync.services.metrics import (
    MetricsCollector,
    OperationTrace,
    get_metrics_collector,
    trace_operation,
)

logger = logging.getLogger("schema-service")


class SchemaService:
    """Owns the current schema and serves DDL import and export.

    Export results are cached per schema revision and generation options;
    any mutation bumps the revision and so invalidates the cache.
    """

    # Maintainer operations that may be run through ``mutate``
    MUTATIONS = frozenset({
        "add_table",
        "rename_table",
        "delete_table",
        "set_table_layout",
        "add_attribute",
        "update_attribute",
        "delete_attribute",
        "move_attribute",
        "connect_attributes",
    })

    def __init__(
        self,
        settings: Optional[Settings] = None,
        maintainer: Optional[ConsistencyMaintainer] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        """Initialize the schema service.

        Args:
            settings: Application settings.
            maintainer: Consistency maintainer holding the schema.
            metrics: Metrics collector for operation timings.
        """
        self.settings = settings or Settings()
        self.maintainer = maintainer or ConsistencyMaintainer()
        self.metrics = metrics or get_metrics_collector()
        self.generator = DDLGenerator(generator_name=self.settings.generator_name)
        self.parser = DDLParser(default_dialect=self.settings.get_parse_dialect())
        self._cache: dict[tuple[Dialect, bool, bool], ExportResult] = {}
        self._cache_revision: Optional[int] = None

    @property
    def schema(self) -> Schema:
        return self.maintainer.schema

    def _trace(self, operation: str, **context):
        if not self.settings.metrics_enabled:
            return nullcontext(OperationTrace(operation=operation))
        return trace_operation(operation, self.metrics, **context)

    def import_schema(self, text: str, dialect: "Dialect | str | None" = None) -> ImportResult:
        """Parse DDL and, on success, replace the whole current schema.

        Defects are returned in the result, never raised.

        Args:
            text: DDL text.
            dialect: Dialect of the text; sniffed when omitted.

        Returns:
            The parser's ImportResult.
        """
        return self.apply_import(self.parse_schema(text, dialect))

    def parse_schema(self, text: str, dialect: "Dialect | str | None" = None) -> ImportResult:
        """Parse DDL without touching the current schema.

        Pure, so it may run on a worker thread while the writer keeps going.
        """
        with self._trace("import") as trace:
            result = self.parser.parse(text, dialect)
            if not result.ok:
                trace.fail("defects", len(result.defects))
        return result

    def apply_import(self, result: ImportResult) -> ImportResult:
        """Load a successful parse result as the current schema.

        Must run on the writer's thread, like any other mutation.
        """
        if result.ok:
            self.maintainer.load(result.parsed_schema)
            logger.info(
                "Imported %d table(s) from %s DDL",
                len(result.parsed_schema.tables),
                result.dialect.value if result.dialect else "generic",
            )
        return result

    def export_ddl(
        self,
        dialect: "Dialect | str | None" = None,
        include_drops: Optional[bool] = None,
        include_comments: Optional[bool] = None
    ) -> ExportResult:
        """Render the current schema as DDL.

        Args:
            dialect: Target dialect. Defaults to the configured dialect.
            include_drops: Emit DROP TABLE statements. Defaults to settings.
            include_comments: Emit the header comment. Defaults to settings.

        Returns:
            The generator's ExportResult.

        Raises:
            UnsupportedDialectError: If the dialect name is unknown.
        """
        target = Dialect.parse(dialect) if dialect else self.settings.get_default_dialect()
        defaults = self.settings.get_generate_options()
        options = GenerateOptions(
            include_drops=defaults.include_drops if include_drops is None else include_drops,
            include_comments=defaults.include_comments if include_comments is None else include_comments,
        )
        key = (target, options.include_drops, options.include_comments)

        if self.settings.export_cache_enabled:
            if self._cache_revision != self.maintainer.revision:
                self._cache.clear()
                self._cache_revision = self.maintainer.revision
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Export cache hit for %s at revision %d", target.value, self.maintainer.revision)
                return cached.model_copy(deep=True)

        with self._trace("export", dialect=target.value) as trace:
            result = self.generator.generate(self.maintainer.schema, target, options)
            if not result.ok:
                trace.fail("defects", len(result.defects))

        if self.settings.export_cache_enabled:
            self._cache[key] = result.model_copy(deep=True)
        return result

    def clear_cache(self) -> None:
        """Clear the export cache."""
        self._cache.clear()
        self._cache_revision = None

    def mutate(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        """Run one maintainer mutation, timed as a ``mutation`` operation.

        Raises:
            ValueError: If ``operation`` is not a maintainer mutation.
            PreconditionError: Propagated from the maintainer.
        """
        if operation not in self.MUTATIONS:
            raise ValueError(f"Unknown mutation: {operation}")
        with self._trace("mutation", action=operation):
            return getattr(self.maintainer, operation)(*args, **kwargs)

    def snapshot(self) -> dict[str, Any]:
        """Plain structural form of the current schema for persistence."""
        return self.maintainer.schema.to_snapshot()

    def restore(self, snapshot: dict[str, Any]) -> Schema:
        """Replace the current schema from a snapshot.

        Returns:
            The restored (and healed) schema.
        """
        self.maintainer.load(Schema.from_snapshot(snapshot))
        return self.maintainer.schema

    def summary(self) -> dict[str, Any]:
        """Per-table column counts and the relationship count."""
        schema = self.maintainer.schema
        return {
            "revision": self.maintainer.revision,
            "table_count": len(schema.tables),
            "relationship_count": len(self.maintainer.edges),
            "tables": [
                {
                    "id": table.id,
                    "name": table.name,
                    "column_count": len(table.attributes),
                    "primary_key": table.primary_key.name if table.primary_key else None,
                    "foreign_key_count": len(table.foreign_keys),
                }
                for table in schema.tables
            ],
        }
