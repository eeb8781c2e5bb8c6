"""Schema-related data models."""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator


class DataType(str, Enum):
    """Abstract column type vocabulary.

    Declaration order matters: reverse type mapping picks the first entry
    whose dialect rendering matches.
    """

    VARCHAR = "varchar"
    CHAR = "char"
    TEXT = "text"
    SMALLINT = "smallint"
    INTEGER = "integer"
    BIGINT = "bigint"
    SERIAL = "serial"
    BIGSERIAL = "bigserial"
    DECIMAL = "decimal"
    FLOAT = "float"
    DOUBLE = "double"
    BOOLEAN = "boolean"
    DATE = "date"
    TIME = "time"
    TIMESTAMP = "timestamp"
    DATETIME = "datetime"
    TIMESTAMPTZ = "timestamptz"
    BINARY = "binary"
    UUID = "uuid"
    JSON = "json"
    ENUM = "enum"


# Identity types and the plain integer type that references them
SERIAL_TYPES: dict[DataType, DataType] = {
    DataType.SERIAL: DataType.INTEGER,
    DataType.BIGSERIAL: DataType.BIGINT,
}


class KeyRole(str, Enum):
    """Key role of an attribute."""

    NORMAL = "normal"
    PRIMARY = "primary"
    FOREIGN = "foreign"


class Cardinality(str, Enum):
    """Relationship cardinality."""

    ONE_TO_ONE = "one-to-one"
    ONE_TO_MANY = "one-to-many"
    MANY_TO_MANY = "many-to-many"

    @property
    def label(self) -> str:
        return {
            Cardinality.ONE_TO_ONE: "1:1",
            Cardinality.ONE_TO_MANY: "1:N",
            Cardinality.MANY_TO_MANY: "M:N",
        }[self]


class CascadeAction(str, Enum):
    """Referential action applied on delete/update."""

    NO_ACTION = "NO ACTION"
    CASCADE = "CASCADE"
    SET_NULL = "SET NULL"
    SET_DEFAULT = "SET DEFAULT"
    RESTRICT = "RESTRICT"


class ColumnType(BaseModel):
    """A column type drawn from the abstract vocabulary, or an opaque raw type.

    Raw types come from parsed DDL whose type token has no abstract
    counterpart; they are rendered back verbatim.
    """

    kind: Optional[DataType] = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    values: list[str] = Field(default_factory=list)
    raw: Optional[str] = None

    @model_validator(mode="after")
    def _normalize_params(self) -> "ColumnType":
        if (self.kind is None) == (self.raw is None):
            raise ValueError("exactly one of 'kind' or 'raw' must be set")
        if self.raw is not None:
            self.length = self.precision = self.scale = None
            self.values = []
            return self

        if self.kind in (DataType.VARCHAR, DataType.CHAR):
            if self.length is None:
                self.length = 255 if self.kind == DataType.VARCHAR else 10
        else:
            self.length = None

        if self.kind == DataType.DECIMAL:
            if self.precision is None:
                self.precision = 10
            if self.scale is None:
                self.scale = 2
        else:
            self.precision = self.scale = None

        if self.kind != DataType.ENUM:
            self.values = []
        return self

    @classmethod
    def parse(cls, text: str) -> "ColumnType":
        """Build a column type from a user-facing string such as ``VARCHAR(100)``."""
        from schemasync.services.type_mapping import resolve_type

        return resolve_type(text)

    @property
    def is_identity(self) -> bool:
        return self.kind in SERIAL_TYPES

    def referencing_type(self) -> "ColumnType":
        """Type for a column that references this one (serials become plain integers)."""
        if self.kind in SERIAL_TYPES:
            return ColumnType(kind=SERIAL_TYPES[self.kind])
        return self.model_copy(deep=True)

    def __str__(self) -> str:
        if self.raw is not None:
            return self.raw
        name = self.kind.value.upper()
        if self.kind in (DataType.VARCHAR, DataType.CHAR):
            return f"{name}({self.length})"
        if self.kind == DataType.DECIMAL:
            return f"{name}({self.precision},{self.scale})"
        if self.kind == DataType.ENUM and self.values:
            return f"{name}({', '.join(repr(v) for v in self.values)})"
        return name


def _coerce_column_type(value: Any) -> Any:
    if isinstance(value, str):
        return ColumnType.parse(value)
    if isinstance(value, DataType):
        return ColumnType(kind=value)
    return value


class Reference(BaseModel):
    """Foreign key target: normalized table name and attribute name."""

    table: str
    attribute: str

    @field_validator("table")
    @classmethod
    def _normalize_table(cls, value: str) -> str:
        from schemasync.services.type_mapping import normalize_identifier

        return normalize_identifier(value)

    @field_validator("attribute")
    @classmethod
    def _strip_attribute(cls, value: str) -> str:
        return value.strip()


class _AttributeBase(BaseModel):
    """Fields shared by every attribute variant."""

    name: str
    data_type: ColumnType = Field(default_factory=lambda: ColumnType(kind=DataType.VARCHAR))
    default: Optional[str] = None
    check: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        return value.strip()

    @field_validator("data_type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        return _coerce_column_type(value)

    @field_validator("default")
    @classmethod
    def _canonical_default(cls, value: Optional[str]) -> Optional[str]:
        from schemasync.services.type_mapping import canonical_default

        if value is None or not value.strip():
            return None
        return canonical_default(value)

    @field_validator("check")
    @classmethod
    def _strip_check(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip()

    @property
    def is_primary(self) -> bool:
        return self.role == KeyRole.PRIMARY

    @property
    def is_foreign(self) -> bool:
        return self.role == KeyRole.FOREIGN

    @property
    def ddl_name(self) -> str:
        from schemasync.services.type_mapping import normalize_identifier

        return normalize_identifier(self.name)


class NormalAttribute(_AttributeBase):
    """Plain column with no key role."""

    role: Literal["normal"] = "normal"
    not_null: bool = False
    unique: bool = False


class PrimaryAttribute(_AttributeBase):
    """Primary key column; implicitly NOT NULL and unique."""

    role: Literal["primary"] = "primary"

    @property
    def not_null(self) -> bool:
        return True

    @property
    def unique(self) -> bool:
        return True


class ForeignAttribute(_AttributeBase):
    """Foreign key column with its reference descriptor."""

    role: Literal["foreign"] = "foreign"
    reference: Reference
    cardinality: Cardinality = Cardinality.ONE_TO_MANY
    on_delete: Optional[CascadeAction] = None
    on_update: Optional[CascadeAction] = None
    optional: bool = False
    not_null: bool = True
    unique: bool = False

    @model_validator(mode="after")
    def _sync_nullability(self) -> "ForeignAttribute":
        # an optional foreign key is exactly a nullable one
        nullable = self.optional or not self.not_null
        self.optional = nullable
        self.not_null = not nullable
        return self

    def demote(self) -> NormalAttribute:
        """Collapse to a normal column, keeping the column constraints."""
        return NormalAttribute(
            name=self.name,
            data_type=self.data_type.model_copy(deep=True),
            not_null=self.not_null,
            unique=self.unique,
            default=self.default,
            check=self.check,
        )


Attribute = Annotated[
    Union[NormalAttribute, PrimaryAttribute, ForeignAttribute],
    Field(discriminator="role"),
]

ATTRIBUTE_ADAPTER: TypeAdapter = TypeAdapter(Attribute)


class Table(BaseModel):
    """A table: display name, ordered attributes and an opaque layout payload."""

    id: str
    name: str
    attributes: list[Attribute] = Field(default_factory=list)
    layout: dict[str, Any] = Field(default_factory=dict)

    @property
    def ddl_name(self) -> str:
        from schemasync.services.type_mapping import normalize_identifier

        return normalize_identifier(self.name)

    @property
    def key(self) -> str:
        """Case-insensitive lookup key for table-name uniqueness."""
        return self.ddl_name.lower()

    def index_of(self, name: str) -> int:
        wanted = name.strip().lower()
        for i, attr in enumerate(self.attributes):
            if attr.name.lower() == wanted:
                return i
        return -1

    def get_attribute(self, name: str) -> Optional[Attribute]:
        idx = self.index_of(name)
        return self.attributes[idx] if idx >= 0 else None

    @property
    def primary_keys(self) -> list[PrimaryAttribute]:
        return [a for a in self.attributes if isinstance(a, PrimaryAttribute)]

    @property
    def primary_key(self) -> Optional[PrimaryAttribute]:
        keys = self.primary_keys
        return keys[0] if keys else None

    @property
    def foreign_keys(self) -> list[ForeignAttribute]:
        return [a for a in self.attributes if isinstance(a, ForeignAttribute)]


class Schema(BaseModel):
    """The whole graph: tables in declaration order."""

    tables: list[Table] = Field(default_factory=list)

    def get_table(self, table_id: str) -> Optional[Table]:
        for table in self.tables:
            if table.id == table_id:
                return table
        return None

    def find_table(self, name: str) -> Optional[Table]:
        """Find a table by name, normalized and case-insensitive."""
        from schemasync.services.type_mapping import normalize_identifier

        wanted = normalize_identifier(name).lower()
        for table in self.tables:
            if table.key == wanted:
                return table
        return None

    def resolve(
        self,
        reference: Reference,
        prefer: Optional[str] = None
    ) -> Optional[tuple[Table, Attribute]]:
        """Resolve a reference to its target table and attribute, if both exist.

        Args:
            reference: The reference to resolve.
            prefer: Id of the table the reference resolved to before. While
                that table exists under the referenced name it wins over
                other tables sharing the name; once it is gone the
                reference no longer resolves.
        """
        if prefer is None:
            table = self.find_table(reference.table)
        else:
            table = self.get_table(prefer)
            if table is None:
                return None
            if table.key != reference.table.lower():
                table = self.find_table(reference.table)
        if table is None:
            return None
        attr = table.get_attribute(reference.attribute)
        if attr is None:
            return None
        return table, attr

    def to_snapshot(self) -> dict[str, Any]:
        """Plain structural form for persistence collaborators."""
        return self.model_dump(mode="json")

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> "Schema":
        return cls.model_validate(data)

    def canonical(self) -> dict[str, Any]:
        """Order-insensitive structural form used to compare schemas.

        Ignores table ids, layout, and declaration order. An unspecified
        cascade action compares equal to NO ACTION.
        """
        tables: dict[str, Any] = {}
        for table in self.tables:
            attrs: dict[str, Any] = {}
            for attr in table.attributes:
                data = attr.model_dump(mode="json")
                data["name"] = attr.ddl_name
                if isinstance(attr, ForeignAttribute):
                    data["reference"] = {
                        "table": attr.reference.table.lower(),
                        "attribute": attr.reference.attribute.lower(),
                    }
                    for action in ("on_delete", "on_update"):
                        if data[action] in (None, CascadeAction.NO_ACTION.value):
                            data[action] = None
                attrs[attr.ddl_name.lower()] = data
            tables[table.key] = {"name": table.ddl_name, "attributes": attrs}
        return tables
