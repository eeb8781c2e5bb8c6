"""DDL import/export result models."""

from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemasync.models.schema import Schema
from schemasync.utils.constants import ErrorCode
from schemasync.utils.exceptions import UnsupportedDialectError


class Dialect(str, Enum):
    """Supported SQL dialects."""

    MYSQL = "mysql"
    POSTGRESQL = "postgresql"
    SQLITE = "sqlite"
    SQLSERVER = "sqlserver"

    @classmethod
    def parse(cls, value: "str | Dialect") -> "Dialect":
        """Resolve a dialect name, case-insensitive.

        Raises:
            UnsupportedDialectError: If the name is not one of the supported dialects.
        """
        if isinstance(value, Dialect):
            return value
        name = str(value).strip().lower()
        aliases = {"postgres": "postgresql", "mssql": "sqlserver", "tsql": "sqlserver"}
        name = aliases.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise UnsupportedDialectError(str(value)) from None

    @property
    def sqlglot_name(self) -> str:
        """Dialect name understood by sqlglot's tokenizer."""
        return {
            Dialect.MYSQL: "mysql",
            Dialect.POSTGRESQL: "postgres",
            Dialect.SQLITE: "sqlite",
            Dialect.SQLSERVER: "tsql",
        }[self]


class GenerateOptions(BaseModel):
    """Options controlling DDL generation."""

    include_drops: bool = False
    include_comments: bool = True


class Defect(BaseModel):
    """A structural defect found during validation or parsing."""

    code: ErrorCode
    message: str
    table: Optional[str] = None
    attribute: Optional[str] = None
    statement: Optional[int] = Field(default=None, description="1-based statement index")

    def __str__(self) -> str:
        return self.message


class ExportResult(BaseModel):
    """Result of rendering a schema to DDL."""

    status: Literal["success", "error"]
    dialect: Dialect
    ddl: Optional[str] = None
    defects: list[Defect] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "success"


class ImportResult(BaseModel):
    """Result of parsing DDL text into a schema."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["success", "error"]
    parsed_schema: Optional[Schema] = Field(default=None, alias="schema")
    defects: list[Defect] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    dialect: Optional[Dialect] = None

    @property
    def ok(self) -> bool:
        return self.status == "success"
