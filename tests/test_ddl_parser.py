"""Tests for the DDL parser."""

import pytest

from schemasync.models.ddl import Dialect
from schemasync.models.schema import (
    CascadeAction,
    DataType,
    ForeignAttribute,
    NormalAttribute,
    PrimaryAttribute,
)
from schemasync.services.ddl_parser import DDLParser, parse_ddl, sniff_dialect
from schemasync.utils.constants import ErrorCode
from schemasync.utils.exceptions import UnsupportedDialectError


class TestSniffDialect:
    """Dialect detection tests."""

    def test_header_wins(self):
        """Test the generated header comment is trusted first."""
        text = "-- Generated by schemasync\n-- Dialect: SQLITE\nCREATE TABLE `a` (id INT);"
        assert sniff_dialect(text) == Dialect.SQLITE

    @pytest.mark.parametrize("text,expected", [
        ("CREATE TABLE `users` (id INT)", Dialect.MYSQL),
        ("CREATE TABLE t (id INT AUTO_INCREMENT)", Dialect.MYSQL),
        ("CREATE TABLE t (id INT IDENTITY(1,1))", Dialect.SQLSERVER),
        ("CREATE TABLE t (name NVARCHAR(20))", Dialect.SQLSERVER),
        ("CREATE TABLE t (id SERIAL PRIMARY KEY)", Dialect.POSTGRESQL),
        ("CREATE TABLE t (data JSONB)", Dialect.POSTGRESQL),
        ("CREATE TABLE t (id INTEGER PRIMARY KEY AUTOINCREMENT)", Dialect.SQLITE),
    ])
    def test_markers(self, text, expected):
        """Test syntax markers identify the dialect."""
        assert sniff_dialect(text) == expected

    def test_plain_sql(self):
        """Test plain SQL has no dialect."""
        assert sniff_dialect("CREATE TABLE t (id INT PRIMARY KEY)") is None


class TestDDLParser:
    """DDL parser test suite."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = DDLParser()

    def test_basic_tables(self):
        """Test columns, keys and constraints are recovered."""
        result = self.parser.parse("""
            CREATE TABLE users (
                id INT AUTO_INCREMENT PRIMARY KEY,
                email VARCHAR(120) NOT NULL UNIQUE,
                score DECIMAL(5,2) DEFAULT 0 CHECK (score >= 0),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );
        """)
        assert result.ok, result.defects
        assert result.dialect == Dialect.MYSQL
        users = result.parsed_schema.find_table("users")
        assert users.id == "table-1"

        pk = users.get_attribute("id")
        assert isinstance(pk, PrimaryAttribute)
        assert pk.data_type.kind == DataType.SERIAL

        email = users.get_attribute("email")
        assert isinstance(email, NormalAttribute)
        assert email.not_null and email.unique
        assert email.data_type.length == 120

        score = users.get_attribute("score")
        assert score.default == "0"
        assert score.check == "score >= 0"
        assert users.get_attribute("created_at").default == "CURRENT_TIMESTAMP"

    def test_foreign_key_table_constraint(self):
        """Test a table-level foreign key with cascade actions."""
        result = self.parser.parse("""
            CREATE TABLE users (id INT PRIMARY KEY);
            CREATE TABLE posts (
                id INT PRIMARY KEY,
                user_id INT NOT NULL,
                CONSTRAINT fk_posts_user FOREIGN KEY (user_id) REFERENCES users(id)
                    ON DELETE CASCADE ON UPDATE SET NULL
            );
        """)
        assert result.ok, result.defects
        fk = result.parsed_schema.find_table("posts").get_attribute("user_id")
        assert isinstance(fk, ForeignAttribute)
        assert fk.reference.table == "users"
        assert fk.reference.attribute == "id"
        assert fk.on_delete == CascadeAction.CASCADE
        assert fk.on_update == CascadeAction.SET_NULL
        assert fk.optional is False

    def test_forward_reference(self):
        """Test a foreign key may name a table defined later."""
        result = self.parser.parse("""
            CREATE TABLE posts (id INT PRIMARY KEY, user_id INT REFERENCES users(id));
            CREATE TABLE users (id INT PRIMARY KEY);
        """)
        assert result.ok, result.defects
        fk = result.parsed_schema.find_table("posts").get_attribute("user_id")
        assert isinstance(fk, ForeignAttribute)
        assert fk.optional is True

    def test_reference_without_column_uses_primary_key(self):
        """Test REFERENCES t resolves to t's primary key."""
        result = self.parser.parse("""
            CREATE TABLE users (uid INT PRIMARY KEY);
            CREATE TABLE posts (author INT NOT NULL REFERENCES users);
        """)
        assert result.ok, result.defects
        fk = result.parsed_schema.find_table("posts").get_attribute("author")
        assert fk.reference.attribute == "uid"

    def test_alter_table_add_foreign_key(self):
        """Test ALTER TABLE ... ADD CONSTRAINT ... FOREIGN KEY."""
        result = self.parser.parse("""
            CREATE TABLE users (id INT PRIMARY KEY);
            CREATE TABLE posts (id INT PRIMARY KEY, user_id INT NOT NULL);
            ALTER TABLE posts ADD CONSTRAINT fk_user FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE RESTRICT;
        """)
        assert result.ok, result.defects
        fk = result.parsed_schema.find_table("posts").get_attribute("user_id")
        assert isinstance(fk, ForeignAttribute)
        assert fk.on_delete == CascadeAction.RESTRICT

    def test_separate_primary_key_constraint(self):
        """Test a table-level single-column primary key."""
        result = self.parser.parse("CREATE TABLE tags (id INT NOT NULL, label TEXT, PRIMARY KEY (id));")
        assert result.ok, result.defects
        assert isinstance(result.parsed_schema.tables[0].get_attribute("id"), PrimaryAttribute)

    def test_quoted_identifiers(self):
        """Test backtick, double-quote and bracket identifiers."""
        mysql = self.parser.parse("CREATE TABLE `order items` (`id` INT PRIMARY KEY);", "mysql")
        assert mysql.ok, mysql.defects
        assert mysql.parsed_schema.tables[0].name == "order items"

        pg = self.parser.parse('CREATE TABLE "Users" ("Id" INTEGER PRIMARY KEY);', "postgresql")
        assert pg.ok, pg.defects
        assert pg.parsed_schema.tables[0].get_attribute("Id").name == "Id"

        mssql = self.parser.parse("CREATE TABLE [dbo].[users] ([id] INT IDENTITY(1,1) PRIMARY KEY);")
        assert mssql.ok, mssql.defects
        assert mssql.dialect == Dialect.SQLSERVER
        table = mssql.parsed_schema.tables[0]
        assert table.name == "users"
        assert table.get_attribute("id").data_type.kind == DataType.SERIAL

    def test_generated_identity(self):
        """Test GENERATED ... AS IDENTITY marks a serial column."""
        result = self.parser.parse(
            "CREATE TABLE t (id BIGINT GENERATED ALWAYS AS IDENTITY PRIMARY KEY);", Dialect.POSTGRESQL
        )
        assert result.ok, result.defects
        assert result.parsed_schema.tables[0].get_attribute("id").data_type.kind == DataType.BIGSERIAL

    def test_if_not_exists_and_qualified_name(self):
        """Test IF NOT EXISTS and schema-qualified names."""
        result = self.parser.parse("CREATE TABLE IF NOT EXISTS public.accounts (id INT PRIMARY KEY);")
        assert result.ok, result.defects
        assert result.parsed_schema.tables[0].name == "accounts"

    def test_unsupported_statements_warn(self):
        """Test other statements are skipped with a warning."""
        result = self.parser.parse("""
            CREATE TABLE users (id INT PRIMARY KEY, email VARCHAR(100));
            CREATE INDEX idx_users_email ON users(email);
            INSERT INTO users VALUES (1, 'a@example.com');
        """)
        assert result.ok, result.defects
        assert len(result.warnings) == 2
        assert result.warnings[0].startswith("Statement 2 skipped (unsupported): CREATE INDEX")

    def test_mysql_key_lines_and_table_options_ignored(self):
        """Test mysql index lines and table options do not fail the import."""
        result = self.parser.parse("""
            CREATE TABLE users (
                id INT NOT NULL AUTO_INCREMENT,
                name VARCHAR(50) NOT NULL COMMENT 'display name',
                PRIMARY KEY (id),
                KEY idx_name (name)
            ) ENGINE=InnoDB DEFAULT CHARSET=utf8mb4;
        """)
        assert result.ok, result.defects
        assert any("Ignored index definition" in w for w in result.warnings)
        assert isinstance(result.parsed_schema.tables[0].get_attribute("id"), PrimaryAttribute)

    def test_unknown_type_is_warning(self):
        """Test an unknown type is kept raw with a warning."""
        result = self.parser.parse("CREATE TABLE places (id INT PRIMARY KEY, location GEOMETRY);")
        assert result.ok, result.defects
        location = result.parsed_schema.tables[0].get_attribute("location")
        assert location.data_type.raw == "GEOMETRY"
        assert any("GEOMETRY" in w for w in result.warnings)

    def test_default_null_is_no_default(self):
        """Test DEFAULT NULL leaves no default."""
        result = self.parser.parse("CREATE TABLE t (id INT PRIMARY KEY, note TEXT DEFAULT NULL);")
        assert result.ok, result.defects
        assert result.parsed_schema.tables[0].get_attribute("note").default is None

    def test_forced_dialect(self):
        """Test an explicit dialect overrides sniffing."""
        result = DDLParser(default_dialect=Dialect.POSTGRESQL).parse("CREATE TABLE t (id INT PRIMARY KEY);")
        assert result.dialect == Dialect.POSTGRESQL

    def test_unknown_dialect_raises(self):
        """Test an unknown dialect name raises."""
        with pytest.raises(UnsupportedDialectError):
            parse_ddl("CREATE TABLE t (id INT);", "oracle")


class TestParserDefects:
    """Defects reported by the parser."""

    def setup_method(self):
        """Set up test fixtures."""
        self.parser = DDLParser()

    @pytest.mark.parametrize("text", ["", "   \n\t"])
    def test_empty_input(self, text):
        """Test empty input is a defect."""
        result = self.parser.parse(text)
        assert result.status == "error"
        assert result.parsed_schema is None
        assert [d.code for d in result.defects] == [ErrorCode.EMPTY_INPUT]

    def test_no_tables(self):
        """Test a document without CREATE TABLE is a defect."""
        result = self.parser.parse("DROP TABLE users;")
        assert [d.code for d in result.defects] == [ErrorCode.NO_TABLES]
        assert len(result.warnings) == 1

    def test_duplicate_table(self):
        """Test a table created twice is a defect and no schema is returned."""
        result = self.parser.parse("""
            CREATE TABLE users (id INT PRIMARY KEY);
            CREATE TABLE users (id INT PRIMARY KEY);
        """)
        assert result.status == "error"
        assert result.parsed_schema is None
        assert [d.code for d in result.defects] == [ErrorCode.DUPLICATE_TABLE]

    def test_unresolved_reference(self):
        """Test a foreign key to a missing table is a defect."""
        result = self.parser.parse(
            "CREATE TABLE posts (id INT PRIMARY KEY, user_id INT REFERENCES users(id));"
        )
        assert [d.code for d in result.defects] == [ErrorCode.UNRESOLVED_REFERENCE]

    def test_implicit_reference_without_primary_key(self):
        """Test REFERENCES t fails when t has no primary key."""
        result = self.parser.parse("""
            CREATE TABLE users (email TEXT);
            CREATE TABLE posts (author TEXT REFERENCES users);
        """)
        assert [d.code for d in result.defects] == [ErrorCode.UNRESOLVED_REFERENCE]

    def test_composite_primary_key(self):
        """Test a composite primary key of plain columns is a defect."""
        result = self.parser.parse("CREATE TABLE t (a INT, b INT, PRIMARY KEY (a, b));")
        assert [d.code for d in result.defects] == [ErrorCode.MULTIPLE_PRIMARY_KEYS]

    def test_malformed_statements_collected(self):
        """Test malformed statements are reported and parsing continues."""
        result = self.parser.parse("""
            CREATE TABLE (id INT);
            CREATE TABLE good (id INT PRIMARY KEY);
            CREATE TABLE bad (id INT PRIMARY KEY, owner INT REFERENCES good(id) ON DELETE EXPLODE);
        """)
        assert result.status == "error"
        malformed = [d for d in result.defects if d.code == ErrorCode.MALFORMED_STATEMENT]
        assert [d.statement for d in malformed] == [1, 3]
        assert malformed[1].table == "bad"

    def test_unbalanced_parentheses(self):
        """Test an unclosed column list is malformed."""
        result = self.parser.parse("CREATE TABLE t (id INT, name VARCHAR(20)")
        assert [d.code for d in result.defects] == [ErrorCode.MALFORMED_STATEMENT]

    def test_column_without_type(self):
        """Test a column with no type is malformed."""
        result = self.parser.parse("CREATE TABLE t (id);")
        assert [d.code for d in result.defects] == [ErrorCode.MALFORMED_STATEMENT]

    def test_foreign_key_on_missing_column(self):
        """Test a foreign key naming a column the table lacks is malformed."""
        result = self.parser.parse("""
            CREATE TABLE users (id INT PRIMARY KEY);
            CREATE TABLE posts (id INT PRIMARY KEY, FOREIGN KEY (user_id) REFERENCES users(id));
        """)
        assert [d.code for d in result.defects] == [ErrorCode.MALFORMED_STATEMENT]

    def test_unterminated_string(self):
        """Test a tokenizer failure is reported as malformed."""
        result = self.parser.parse("CREATE TABLE t (id INT DEFAULT 'oops);")
        assert result.status == "error"
        assert result.defects[0].code == ErrorCode.MALFORMED_STATEMENT

    def test_rejected_alter_leaves_table_unchanged(self):
        """Test a rejected ALTER TABLE does not leak into later references."""
        result = self.parser.parse(
            "CREATE TABLE a (id INT);"
            " ALTER TABLE a ADD PRIMARY KEY (nope);"
            " CREATE TABLE b (a_id INT REFERENCES a);"
        )
        assert result.status == "error"
        assert [(d.code, d.statement) for d in result.defects] == [
            (ErrorCode.MALFORMED_STATEMENT, 2),
            (ErrorCode.UNRESOLVED_REFERENCE, 3),
        ]
        assert "nope" in result.defects[0].message

    def test_alter_add_primary_key_applies(self):
        """Test an accepted ALTER TABLE ADD PRIMARY KEY is used by later references."""
        result = self.parser.parse(
            "CREATE TABLE a (id INT);"
            " ALTER TABLE a ADD PRIMARY KEY (id);"
            " CREATE TABLE b (a_id INT REFERENCES a);"
        )
        assert result.ok
        a_id = result.parsed_schema.find_table("b").get_attribute("a_id")
        assert isinstance(a_id, ForeignAttribute)
        assert a_id.reference.attribute == "id"

    def test_every_defect_reported_in_one_import(self):
        """Test duplicate tables and a dangling foreign key are reported together."""
        result = self.parser.parse("""
            CREATE TABLE users (id INT PRIMARY KEY);
            CREATE TABLE users (id INT PRIMARY KEY);
            CREATE TABLE posts (id INT PRIMARY KEY, author_id INT REFERENCES authors(id));
        """)
        assert result.status == "error"
        assert result.parsed_schema is None
        codes = {d.code for d in result.defects}
        assert codes == {ErrorCode.DUPLICATE_TABLE, ErrorCode.UNRESOLVED_REFERENCE}
