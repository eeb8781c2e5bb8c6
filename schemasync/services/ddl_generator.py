"""Deterministic multi-dialect DDL generation."""

import logging
from dataclasses import dataclass
from typing import Optional

from schemasync.models.ddl import Dialect, ExportResult, GenerateOptions
from schemasync.models.schema import (
    Attribute,
    Cardinality,
    CascadeAction,
    ColumnType,
    ForeignAttribute,
    PrimaryAttribute,
    Schema,
    Table,
)
from schemasync.services.type_mapping import (
    identity_clause,
    map_type,
    render_default,
)
from schemasync.services.validation import validate_schema
from schemasync.utils.constants import HEADER_DIALECT, HEADER_GENERATED_BY

logger = logging.getLogger("ddl-generator")


@dataclass
class _JunctionColumn:
    name: str
    data_type: ColumnType
    ref_table: str
    ref_column: str


@dataclass
class _Junction:
    """A many-to-many link table derived at generation time."""

    name: str
    left: Optional[_JunctionColumn]
    right: Optional[_JunctionColumn]
    on_delete: CascadeAction
    on_update: CascadeAction

    @property
    def skipped(self) -> bool:
        return self.left is None or self.right is None


class DDLGenerator:
    """Renders a schema as CREATE TABLE statements for one dialect.

    Output is a pure function of the schema, dialect and options: tables in
    declaration order, columns in attribute order, foreign keys in attribute
    order after the columns. There is no timestamp in the header.
    """

    INDENT = "  "

    # Timestamp column added to every junction table, per dialect
    JUNCTION_TIMESTAMP = {
        Dialect.MYSQL: "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        Dialect.POSTGRESQL: "created_at TIMESTAMPTZ DEFAULT NOW()",
        Dialect.SQLITE: "created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP",
        Dialect.SQLSERVER: "created_at DATETIME2 DEFAULT GETDATE()",
    }

    def __init__(self, generator_name: str = "schemasync"):
        """Initialize the generator.

        Args:
            generator_name: Name written into the header comment.
        """
        self.generator_name = generator_name

    def generate(
        self,
        schema: Schema,
        dialect: "Dialect | str",
        options: Optional[GenerateOptions] = None
    ) -> ExportResult:
        """Render a schema as DDL.

        Args:
            schema: The schema to render.
            dialect: Target dialect.
            options: Drop statements and header comment switches.

        Returns:
            An ExportResult holding either the DDL text or every structural
            defect that blocked generation.

        Raises:
            UnsupportedDialectError: If the dialect name is unknown.
        """
        dialect = Dialect.parse(dialect)
        options = options or GenerateOptions()

        # Step 1: Validate the whole schema; any defect blocks output
        defects = validate_schema(schema)
        if defects:
            logger.warning(
                "DDL generation for %s blocked by %d defect(s)", dialect.value, len(defects)
            )
            return ExportResult(status="error", dialect=dialect, defects=defects)

        blocks: list[str] = []

        # Step 2: Header
        if options.include_comments:
            blocks.append("\n".join([
                HEADER_GENERATED_BY.format(name=self.generator_name),
                HEADER_DIALECT.format(dialect=dialect.value.upper()),
            ]))

        if not schema.tables:
            blocks.append("-- No tables to export")
            return ExportResult(status="success", dialect=dialect, ddl=self._join(blocks))

        junctions = self._collect_junctions(schema)
        emitted = [j for j in junctions if not j.skipped]

        # Step 3: Drops, junction tables first, then base tables in reverse
        if options.include_drops:
            drop_names = [j.name for j in emitted]
            drop_names += [t.ddl_name for t in reversed(schema.tables) if t.attributes]
            if drop_names:
                blocks.append("\n".join(f"DROP TABLE IF EXISTS {name};" for name in drop_names))

        # Step 4: Base tables with their foreign keys and indexes
        for table in schema.tables:
            blocks.append(self._render_table(schema, table, dialect))

        # Step 5: Junction tables
        for junction in junctions:
            if junction.skipped:
                if options.include_comments:
                    blocks.append(
                        f"-- Junction table {junction.name} skipped: "
                        "both tables need a primary key"
                    )
                continue
            blocks.append(self._render_junction(junction, dialect))

        logger.debug(
            "Generated %s DDL for %d table(s), %d junction table(s)",
            dialect.value, len(schema.tables), len(emitted)
        )
        return ExportResult(status="success", dialect=dialect, ddl=self._join(blocks))

    @staticmethod
    def _join(blocks: list[str]) -> str:
        return "\n\n".join(blocks) + "\n"

    def _render_table(self, schema: Schema, table: Table, dialect: Dialect) -> str:
        if not table.attributes:
            return f"-- Table {table.ddl_name} has no attributes defined (skipped)"

        lines = [self.INDENT + self._render_column(attr, dialect) for attr in table.attributes]

        constrained: list[ForeignAttribute] = []
        for fk in table.foreign_keys:
            if fk.cardinality == Cardinality.MANY_TO_MANY:
                continue
            ref_table, ref_attr = schema.resolve(fk.reference)
            lines.append(self.INDENT + self._render_foreign_key(
                fk.ddl_name,
                ref_table.ddl_name,
                ref_attr.ddl_name,
                fk.on_delete,
                fk.on_update,
            ))
            constrained.append(fk)

        statement = f"CREATE TABLE {table.ddl_name} (\n" + ",\n".join(lines) + "\n);"
        if not constrained:
            return statement

        indexes = [
            f"CREATE INDEX idx_{table.ddl_name}_{fk.ddl_name} ON {table.ddl_name}({fk.ddl_name});"
            for fk in constrained
        ]
        return statement + "\n\n" + "\n".join(indexes)

    def _render_column(self, attr: Attribute, dialect: Dialect) -> str:
        is_primary = isinstance(attr, PrimaryAttribute)
        identity = identity_clause(dialect) if attr.data_type.is_identity else None

        parts = [attr.ddl_name, map_type(attr.data_type, dialect)]
        # sqlite only accepts AUTOINCREMENT right after PRIMARY KEY
        if identity and dialect != Dialect.SQLITE:
            parts.append(identity)
        if attr.not_null:
            parts.append("NOT NULL")
        if attr.unique and not is_primary:
            parts.append("UNIQUE")
        if attr.default:
            parts.append(f"DEFAULT {render_default(attr.default, dialect)}")
        if attr.check:
            parts.append(f"CHECK ({attr.check})")
        if is_primary:
            parts.append("PRIMARY KEY")
            if identity and dialect == Dialect.SQLITE:
                parts.append(identity)
        return " ".join(parts)

    @staticmethod
    def _render_foreign_key(
        column: str,
        ref_table: str,
        ref_column: str,
        on_delete: Optional[CascadeAction],
        on_update: Optional[CascadeAction],
        explicit_actions: bool = False
    ) -> str:
        clause = f"FOREIGN KEY ({column}) REFERENCES {ref_table}({ref_column})"
        if on_delete and (explicit_actions or on_delete != CascadeAction.NO_ACTION):
            clause += f" ON DELETE {on_delete.value}"
        if on_update and (explicit_actions or on_update != CascadeAction.NO_ACTION):
            clause += f" ON UPDATE {on_update.value}"
        return clause

    def _collect_junctions(self, schema: Schema) -> list[_Junction]:
        """One junction per distinct unordered table pair joined by a many-to-many key."""
        junctions: dict[tuple[str, str], _Junction] = {}
        for table in schema.tables:
            for fk in table.foreign_keys:
                if fk.cardinality != Cardinality.MANY_TO_MANY:
                    continue
                ref_table, _ = schema.resolve(fk.reference)
                first, second = sorted([table, ref_table], key=lambda t: t.ddl_name)
                key = (first.key, second.key)
                if key in junctions:
                    continue

                name = f"{first.ddl_name}_{second.ddl_name}"
                left = self._junction_column(first, prefix="")
                right = self._junction_column(second, prefix="related_" if first is second else "")
                junctions[key] = _Junction(
                    name=name,
                    left=left,
                    right=right,
                    on_delete=fk.on_delete or CascadeAction.CASCADE,
                    on_update=fk.on_update or CascadeAction.CASCADE,
                )
        return list(junctions.values())

    @staticmethod
    def _junction_column(table: Table, prefix: str) -> Optional[_JunctionColumn]:
        pk = table.primary_key
        if pk is None:
            return None
        return _JunctionColumn(
            name=f"{prefix}{table.ddl_name}_{pk.ddl_name}",
            data_type=pk.data_type.referencing_type(),
            ref_table=table.ddl_name,
            ref_column=pk.ddl_name,
        )

    def _render_junction(self, junction: _Junction, dialect: Dialect) -> str:
        columns = [junction.left, junction.right]
        lines = [
            f"{self.INDENT}{col.name} {map_type(col.data_type, dialect)} NOT NULL"
            for col in columns
        ]
        lines.append(self.INDENT + self.JUNCTION_TIMESTAMP[dialect])
        lines.append(f"{self.INDENT}PRIMARY KEY ({junction.left.name}, {junction.right.name})")
        for col in columns:
            lines.append(self.INDENT + self._render_foreign_key(
                col.name,
                col.ref_table,
                col.ref_column,
                junction.on_delete,
                junction.on_update,
                explicit_actions=True,
            ))
        return f"CREATE TABLE {junction.name} (\n" + ",\n".join(lines) + "\n);"


def generate_ddl(
    schema: Schema,
    dialect: "Dialect | str",
    options: Optional[GenerateOptions] = None,
    generator_name: str = "schemasync"
) -> ExportResult:
    """Render a schema as DDL with a one-off generator."""
    return DDLGenerator(generator_name=generator_name).generate(schema, dialect, options)
