"""Round-trip tests between the schema model and DDL text."""

import pytest

from schemasync.models.ddl import Dialect, GenerateOptions
from schemasync.models.schema import (
    ForeignAttribute,
    NormalAttribute,
    PrimaryAttribute,
    Reference,
    Schema,
    Table,
)
from schemasync.services.ddl_generator import generate_ddl
from schemasync.services.ddl_parser import parse_ddl
from conftest import build_users_posts


def build_catalog() -> Schema:
    """A schema whose types are distinct in every dialect."""
    return Schema(tables=[
        Table(id="table-1", name="categories", attributes=[
            PrimaryAttribute(name="id", data_type="BIGSERIAL"),
            NormalAttribute(name="name", data_type="VARCHAR(80)", not_null=True, unique=True),
        ]),
        Table(id="table-2", name="products", attributes=[
            PrimaryAttribute(name="id", data_type="SERIAL"),
            ForeignAttribute(
                name="category_id",
                data_type="BIGINT",
                reference=Reference(table="categories", attribute="id"),
                optional=True,
                on_delete="SET NULL",
            ),
            NormalAttribute(name="sku", data_type="CHAR(12)", not_null=True),
            NormalAttribute(name="price", data_type="DECIMAL(10,2)", default="0", check="price >= 0"),
            NormalAttribute(name="active", data_type="BOOLEAN", default="1"),
            NormalAttribute(name="notes", data_type="TEXT"),
            NormalAttribute(name="released", data_type="DATE"),
        ]),
    ])


DIALECTS = list(Dialect)


class TestRoundTrip:
    """parse(generate(S)) gives back S."""

    @pytest.mark.parametrize("dialect", DIALECTS)
    def test_users_posts(self, dialect):
        """Test the users/posts schema survives a round trip."""
        schema = build_users_posts()
        exported = generate_ddl(schema, dialect)
        assert exported.ok

        imported = parse_ddl(exported.ddl)
        assert imported.ok, imported.defects
        assert imported.dialect == dialect
        assert imported.parsed_schema.canonical() == schema.canonical()

    @pytest.mark.parametrize("dialect", [Dialect.MYSQL, Dialect.POSTGRESQL, Dialect.SQLSERVER])
    def test_catalog(self, dialect):
        """Test identity, nullable keys, checks and defaults survive a round trip."""
        schema = build_catalog()
        imported = parse_ddl(generate_ddl(schema, dialect).ddl)
        assert imported.ok, imported.defects
        assert imported.parsed_schema.canonical() == schema.canonical()

    @pytest.mark.parametrize("dialect", DIALECTS)
    def test_idempotent(self, dialect):
        """Test generate(parse(generate(S))) equals generate(S)."""
        schema = build_catalog()
        first = generate_ddl(schema, dialect, GenerateOptions(include_drops=True)).ddl
        second = generate_ddl(
            parse_ddl(first).parsed_schema, dialect, GenerateOptions(include_drops=True)
        ).ddl
        assert second == first

    def test_without_header_uses_markers(self):
        """Test a headerless export still parses back."""
        schema = build_users_posts()
        ddl = generate_ddl(schema, Dialect.SQLSERVER, GenerateOptions(include_comments=False)).ddl
        imported = parse_ddl(ddl)
        assert imported.ok, imported.defects
        assert imported.dialect == Dialect.SQLSERVER
        assert imported.parsed_schema.canonical() == schema.canonical()

    def test_uuid_default_round_trip(self):
        """Test a generated uuid default comes back canonical."""
        schema = Schema(tables=[
            Table(id="table-1", name="sessions", attributes=[
                PrimaryAttribute(name="id", data_type="UUID", default="gen_random_uuid()"),
            ]),
        ])
        for dialect in (Dialect.POSTGRESQL, Dialect.SQLSERVER):
            imported = parse_ddl(generate_ddl(schema, dialect).ddl)
            assert imported.ok, imported.defects
            assert imported.parsed_schema.tables[0].get_attribute("id").default == "UUID()"
