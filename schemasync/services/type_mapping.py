"""Identifier normalization and abstract-type mapping for each SQL dialect.

The forward mapping (``map_type``) is a total table lookup. The reverse
mapping (``resolve_type``) inverts the same table, preferring the rendering
of the chosen dialect, and falls back to a generic alias table for DDL
written by hand or by other tools.
"""

import logging
import re
from typing import Optional

from schemasync.models.ddl import Dialect
from schemasync.models.schema import ColumnType, DataType

logger = logging.getLogger("type-mapping")

_WHITESPACE_RE = re.compile(r"\s+")
_TYPE_RE = re.compile(r"^\s*([A-Za-z_][A-Za-z0-9_ ]*?)\s*(?:\((.*)\))?\s*$", re.DOTALL)
_ENUM_VALUE_RE = re.compile(r"'((?:[^']|'')*)'")


def normalize_identifier(name: str) -> str:
    """Turn a display name into a DDL identifier.

    Leading and trailing whitespace is dropped and internal whitespace runs
    collapse to a single underscore. Nothing else is escaped or rejected.
    """
    return _WHITESPACE_RE.sub("_", name.strip())


# Concrete rendering of every abstract type in every dialect.
# Placeholders: {length}, {precision}, {scale}, {values}.
TYPE_MAP: dict[DataType, dict[Dialect, str]] = {
    DataType.VARCHAR: {
        Dialect.MYSQL: "VARCHAR({length})",
        Dialect.POSTGRESQL: "VARCHAR({length})",
        Dialect.SQLITE: "VARCHAR({length})",
        Dialect.SQLSERVER: "NVARCHAR({length})",
    },
    DataType.CHAR: {
        Dialect.MYSQL: "CHAR({length})",
        Dialect.POSTGRESQL: "CHAR({length})",
        Dialect.SQLITE: "CHAR({length})",
        Dialect.SQLSERVER: "NCHAR({length})",
    },
    DataType.TEXT: {
        Dialect.MYSQL: "TEXT",
        Dialect.POSTGRESQL: "TEXT",
        Dialect.SQLITE: "TEXT",
        Dialect.SQLSERVER: "NVARCHAR(MAX)",
    },
    DataType.SMALLINT: {
        Dialect.MYSQL: "SMALLINT",
        Dialect.POSTGRESQL: "SMALLINT",
        Dialect.SQLITE: "SMALLINT",
        Dialect.SQLSERVER: "SMALLINT",
    },
    DataType.INTEGER: {
        Dialect.MYSQL: "INT",
        Dialect.POSTGRESQL: "INTEGER",
        Dialect.SQLITE: "INTEGER",
        Dialect.SQLSERVER: "INT",
    },
    DataType.BIGINT: {
        Dialect.MYSQL: "BIGINT",
        Dialect.POSTGRESQL: "BIGINT",
        Dialect.SQLITE: "BIGINT",
        Dialect.SQLSERVER: "BIGINT",
    },
    DataType.SERIAL: {
        Dialect.MYSQL: "INT",
        Dialect.POSTGRESQL: "SERIAL",
        Dialect.SQLITE: "INTEGER",
        Dialect.SQLSERVER: "INT",
    },
    DataType.BIGSERIAL: {
        Dialect.MYSQL: "BIGINT",
        Dialect.POSTGRESQL: "BIGSERIAL",
        Dialect.SQLITE: "INTEGER",
        Dialect.SQLSERVER: "BIGINT",
    },
    DataType.DECIMAL: {
        Dialect.MYSQL: "DECIMAL({precision},{scale})",
        Dialect.POSTGRESQL: "DECIMAL({precision},{scale})",
        Dialect.SQLITE: "DECIMAL({precision},{scale})",
        Dialect.SQLSERVER: "DECIMAL({precision},{scale})",
    },
    DataType.FLOAT: {
        Dialect.MYSQL: "FLOAT",
        Dialect.POSTGRESQL: "REAL",
        Dialect.SQLITE: "REAL",
        Dialect.SQLSERVER: "REAL",
    },
    DataType.DOUBLE: {
        Dialect.MYSQL: "DOUBLE",
        Dialect.POSTGRESQL: "DOUBLE PRECISION",
        Dialect.SQLITE: "DOUBLE",
        Dialect.SQLSERVER: "FLOAT",
    },
    DataType.BOOLEAN: {
        Dialect.MYSQL: "BOOLEAN",
        Dialect.POSTGRESQL: "BOOLEAN",
        Dialect.SQLITE: "BOOLEAN",
        Dialect.SQLSERVER: "BIT",
    },
    DataType.DATE: {
        Dialect.MYSQL: "DATE",
        Dialect.POSTGRESQL: "DATE",
        Dialect.SQLITE: "DATE",
        Dialect.SQLSERVER: "DATE",
    },
    DataType.TIME: {
        Dialect.MYSQL: "TIME",
        Dialect.POSTGRESQL: "TIME",
        Dialect.SQLITE: "TIME",
        Dialect.SQLSERVER: "TIME",
    },
    DataType.TIMESTAMP: {
        Dialect.MYSQL: "TIMESTAMP",
        Dialect.POSTGRESQL: "TIMESTAMP",
        Dialect.SQLITE: "TIMESTAMP",
        Dialect.SQLSERVER: "DATETIME2",
    },
    DataType.DATETIME: {
        Dialect.MYSQL: "DATETIME",
        Dialect.POSTGRESQL: "TIMESTAMP",
        Dialect.SQLITE: "DATETIME",
        Dialect.SQLSERVER: "DATETIME2",
    },
    DataType.TIMESTAMPTZ: {
        Dialect.MYSQL: "TIMESTAMP",
        Dialect.POSTGRESQL: "TIMESTAMPTZ",
        Dialect.SQLITE: "TEXT",
        Dialect.SQLSERVER: "DATETIMEOFFSET",
    },
    DataType.BINARY: {
        Dialect.MYSQL: "BLOB",
        Dialect.POSTGRESQL: "BYTEA",
        Dialect.SQLITE: "BLOB",
        Dialect.SQLSERVER: "VARBINARY(MAX)",
    },
    DataType.UUID: {
        Dialect.MYSQL: "CHAR(36)",
        Dialect.POSTGRESQL: "UUID",
        Dialect.SQLITE: "CHAR(36)",
        Dialect.SQLSERVER: "UNIQUEIDENTIFIER",
    },
    DataType.JSON: {
        Dialect.MYSQL: "JSON",
        Dialect.POSTGRESQL: "JSONB",
        Dialect.SQLITE: "TEXT",
        Dialect.SQLSERVER: "NVARCHAR(MAX)",
    },
    DataType.ENUM: {
        Dialect.MYSQL: "ENUM({values})",
        Dialect.POSTGRESQL: "TEXT",
        Dialect.SQLITE: "TEXT",
        Dialect.SQLSERVER: "NVARCHAR(MAX)",
    },
}

# Inline enum with no labels
ENUM_FALLBACK = "VARCHAR(255)"

# Auto-increment syntax. PostgreSQL substitutes the SERIAL/BIGSERIAL type instead.
IDENTITY_CLAUSES: dict[Dialect, Optional[str]] = {
    Dialect.MYSQL: "AUTO_INCREMENT",
    Dialect.POSTGRESQL: None,
    Dialect.SQLITE: "AUTOINCREMENT",
    Dialect.SQLSERVER: "IDENTITY(1,1)",
}

# Type names written by other tools, keyed by normalized base name
TYPE_ALIASES: dict[str, DataType] = {
    "VARCHAR": DataType.VARCHAR,
    "CHARACTER VARYING": DataType.VARCHAR,
    "NVARCHAR": DataType.VARCHAR,
    "VARCHAR2": DataType.VARCHAR,
    "NVARCHAR2": DataType.VARCHAR,
    "CHAR": DataType.CHAR,
    "CHARACTER": DataType.CHAR,
    "NCHAR": DataType.CHAR,
    "BPCHAR": DataType.CHAR,
    "TEXT": DataType.TEXT,
    "TINYTEXT": DataType.TEXT,
    "MEDIUMTEXT": DataType.TEXT,
    "LONGTEXT": DataType.TEXT,
    "NTEXT": DataType.TEXT,
    "CLOB": DataType.TEXT,
    "STRING": DataType.TEXT,
    "TINYINT": DataType.SMALLINT,
    "SMALLINT": DataType.SMALLINT,
    "INT2": DataType.SMALLINT,
    "INT": DataType.INTEGER,
    "INTEGER": DataType.INTEGER,
    "INT4": DataType.INTEGER,
    "MEDIUMINT": DataType.INTEGER,
    "BIGINT": DataType.BIGINT,
    "INT8": DataType.BIGINT,
    "SERIAL": DataType.SERIAL,
    "SERIAL4": DataType.SERIAL,
    "SMALLSERIAL": DataType.SERIAL,
    "BIGSERIAL": DataType.BIGSERIAL,
    "SERIAL8": DataType.BIGSERIAL,
    "DECIMAL": DataType.DECIMAL,
    "NUMERIC": DataType.DECIMAL,
    "DEC": DataType.DECIMAL,
    "NUMBER": DataType.DECIMAL,
    "FLOAT": DataType.FLOAT,
    "REAL": DataType.FLOAT,
    "FLOAT4": DataType.FLOAT,
    "DOUBLE": DataType.DOUBLE,
    "DOUBLE PRECISION": DataType.DOUBLE,
    "FLOAT8": DataType.DOUBLE,
    "BOOLEAN": DataType.BOOLEAN,
    "BOOL": DataType.BOOLEAN,
    "BIT": DataType.BOOLEAN,
    "DATE": DataType.DATE,
    "TIME": DataType.TIME,
    "TIMESTAMP": DataType.TIMESTAMP,
    "TIMESTAMP WITHOUT TIME ZONE": DataType.TIMESTAMP,
    "DATETIME": DataType.DATETIME,
    "DATETIME2": DataType.DATETIME,
    "SMALLDATETIME": DataType.DATETIME,
    "TIMESTAMPTZ": DataType.TIMESTAMPTZ,
    "TIMESTAMP WITH TIME ZONE": DataType.TIMESTAMPTZ,
    "DATETIMEOFFSET": DataType.TIMESTAMPTZ,
    "BLOB": DataType.BINARY,
    "TINYBLOB": DataType.BINARY,
    "MEDIUMBLOB": DataType.BINARY,
    "LONGBLOB": DataType.BINARY,
    "BYTEA": DataType.BINARY,
    "BINARY": DataType.BINARY,
    "VARBINARY": DataType.BINARY,
    "IMAGE": DataType.BINARY,
    "UUID": DataType.UUID,
    "UNIQUEIDENTIFIER": DataType.UUID,
    "JSON": DataType.JSON,
    "JSONB": DataType.JSON,
    "ENUM": DataType.ENUM,
}

CANONICAL_NOW = "CURRENT_TIMESTAMP"
CANONICAL_UUID = "UUID()"

# Matched after stripping wrapping parentheses and all whitespace, upper-cased
NOW_SYNONYMS = frozenset({
    "NOW()",
    "NOW",
    "CURRENT_TIMESTAMP",
    "CURRENT_TIMESTAMP()",
    "LOCALTIMESTAMP",
    "GETDATE()",
    "SYSDATETIME()",
})
UUID_SYNONYMS = frozenset({
    "UUID()",
    "UUID",
    "GEN_RANDOM_UUID()",
    "UUID_GENERATE_V4()",
    "NEWID()",
    "LOWER(HEX(RANDOMBLOB(16)))",
})

DEFAULT_RENDERINGS: dict[str, dict[Dialect, str]] = {
    CANONICAL_NOW: {
        Dialect.MYSQL: "CURRENT_TIMESTAMP",
        Dialect.POSTGRESQL: "NOW()",
        Dialect.SQLITE: "CURRENT_TIMESTAMP",
        Dialect.SQLSERVER: "GETDATE()",
    },
    CANONICAL_UUID: {
        Dialect.MYSQL: "(UUID())",
        Dialect.POSTGRESQL: "gen_random_uuid()",
        Dialect.SQLITE: "(lower(hex(randomblob(16))))",
        Dialect.SQLSERVER: "NEWID()",
    },
}


def check_type_map() -> None:
    """Verify the mapping table covers every abstract type in every dialect.

    Raises:
        RuntimeError: If any entry is missing.
    """
    missing = [
        f"{data_type.value}/{dialect.value}"
        for data_type in DataType
        for dialect in Dialect
        if not TYPE_MAP.get(data_type, {}).get(dialect)
    ]
    if missing:
        raise RuntimeError(f"Type map has no entry for: {', '.join(missing)}")


check_type_map()


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def map_type(column_type: ColumnType, dialect: Dialect) -> str:
    """Render a column type in the given dialect.

    Args:
        column_type: Abstract or raw column type.
        dialect: Target dialect.

    Returns:
        The concrete type string. Raw types are returned verbatim.
    """
    if column_type.raw is not None:
        return column_type.raw

    template = TYPE_MAP[column_type.kind][dialect]
    if column_type.kind == DataType.ENUM and "{values}" in template:
        if not column_type.values:
            return ENUM_FALLBACK
        return template.format(values=", ".join(quote_literal(v) for v in column_type.values))
    return template.format(
        length=column_type.length,
        precision=column_type.precision,
        scale=column_type.scale,
    )


def identity_clause(dialect: Dialect) -> Optional[str]:
    return IDENTITY_CLAUSES[dialect]


def _split_type(text: str) -> Optional[tuple[str, Optional[str]]]:
    match = _TYPE_RE.match(text)
    if not match:
        return None
    base = " ".join(match.group(1).upper().split())
    args = match.group(2)
    return base, args


def _normalize_args(args: Optional[str]) -> Optional[str]:
    if args is None:
        return None
    return re.sub(r"\s+", "", args).upper()


def _int_args(args: Optional[str]) -> Optional[list[int]]:
    if args is None:
        return None
    parts = [p.strip() for p in args.split(",")]
    if not parts or not all(p.isdigit() for p in parts):
        return None
    return [int(p) for p in parts]


def _enum_values(args: Optional[str]) -> list[str]:
    if not args:
        return []
    return [v.replace("''", "'") for v in _ENUM_VALUE_RE.findall(args)]


def _build(kind: DataType, args: Optional[str]) -> Optional[ColumnType]:
    """Build a column type of ``kind`` from its parenthesized arguments.

    Returns None when the arguments do not fit the type.
    """
    if kind in (DataType.VARCHAR, DataType.CHAR):
        if args is None:
            return ColumnType(kind=kind)
        numbers = _int_args(args)
        if numbers is None or len(numbers) != 1:
            return None
        return ColumnType(kind=kind, length=numbers[0])
    if kind == DataType.DECIMAL:
        if args is None:
            return ColumnType(kind=kind)
        numbers = _int_args(args)
        if numbers is None or len(numbers) > 2:
            return None
        scale = numbers[1] if len(numbers) == 2 else 0
        return ColumnType(kind=kind, precision=numbers[0], scale=scale)
    if kind == DataType.ENUM:
        return ColumnType(kind=kind, values=_enum_values(args))
    return ColumnType(kind=kind)


def _resolve_for_dialect(base: str, args: Optional[str], dialect: Dialect) -> Optional[ColumnType]:
    norm_args = _normalize_args(args)

    # literal renderings first, in declaration order
    for kind in DataType:
        template = TYPE_MAP[kind][dialect]
        if "{" in template:
            continue
        t_base, t_args = _split_type(template)
        if t_base == base and _normalize_args(t_args) == norm_args:
            return ColumnType(kind=kind)

    for kind in DataType:
        template = TYPE_MAP[kind][dialect]
        if "{" not in template:
            continue
        t_base, _ = _split_type(template)
        if t_base != base or args is None:
            continue
        built = _build(kind, args)
        if built is not None:
            return built
    return None


def _resolve_alias(base: str, args: Optional[str]) -> Optional[ColumnType]:
    kind = TYPE_ALIASES.get(base)
    if kind is None:
        return None
    norm_args = _normalize_args(args)
    if norm_args == "MAX" and kind in (DataType.VARCHAR, DataType.CHAR):
        return ColumnType(kind=DataType.TEXT)
    if base == "TINYINT" and norm_args == "1":
        return ColumnType(kind=DataType.BOOLEAN)
    if kind in (DataType.VARCHAR, DataType.CHAR, DataType.DECIMAL, DataType.ENUM):
        return _build(kind, args)
    # display widths and fractional-second precision carry no meaning here
    return ColumnType(kind=kind)


def resolve_type(text: str, dialect: Optional[Dialect] = None) -> ColumnType:
    """Map a concrete type string back onto the abstract vocabulary.

    Args:
        text: Type text as written in DDL or entered by a user.
        dialect: Dialect whose renderings are tried first, if known.

    Returns:
        The matching column type, or a raw column type holding ``text``
        verbatim when nothing matches.
    """
    raw = " ".join(text.split())
    split = _split_type(raw)
    if split is None:
        return ColumnType(raw=raw)
    base, args = split

    resolved = None
    if dialect is not None:
        resolved = _resolve_for_dialect(base, args, dialect)
    if resolved is None:
        resolved = _resolve_alias(base, args)
    if resolved is None:
        logger.debug("Unrecognized type kept verbatim: %s", raw)
        return ColumnType(raw=raw)
    return resolved


def _strip_wrapping_parens(text: str) -> str:
    text = text.strip()
    while text.startswith("(") and text.endswith(")"):
        depth = 0
        for i, ch in enumerate(text):
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0 and i != len(text) - 1:
                    return text
        text = text[1:-1].strip()
    return text


def _default_key(expr: str) -> str:
    return re.sub(r"\s+", "", _strip_wrapping_parens(expr)).upper()


def canonical_default(expr: str) -> str:
    """Replace a recognized "now" or "generate uuid" synonym with its canonical form."""
    key = _default_key(expr)
    if key in NOW_SYNONYMS:
        return CANONICAL_NOW
    if key in UUID_SYNONYMS:
        return CANONICAL_UUID
    return expr.strip()


def render_default(expr: str, dialect: Dialect) -> str:
    """Render a default expression for a dialect; literals pass through verbatim."""
    canonical = canonical_default(expr)
    renderings = DEFAULT_RENDERINGS.get(canonical)
    if renderings is None:
        return canonical
    return renderings[dialect]
