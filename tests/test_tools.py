"""Tests for the MCP tool handlers."""

import threading

import pytest

from schemasync.config import Settings
from schemasync.services.metrics import MetricsCollector
from schemasync.services.schema import SchemaService
from schemasync.tools import register_ddl_tools, register_edit_tools, register_schema_tool
from conftest import FakeMCP, build_users_posts

USERS_POSTS_DDL = """
CREATE TABLE users (
    id INT AUTO_INCREMENT PRIMARY KEY,
    email VARCHAR(255) NOT NULL UNIQUE
);
CREATE TABLE posts (
    id INT AUTO_INCREMENT PRIMARY KEY,
    user_id INT NOT NULL,
    FOREIGN KEY (user_id) REFERENCES users(id)
);
"""


class ToolTestBase:
    """Registers every tool against a service holding users/posts."""

    def setup_method(self):
        """Set up test fixtures."""
        self.service = SchemaService(settings=Settings(), metrics=MetricsCollector())
        self.service.maintainer.load(build_users_posts())
        self.mcp = FakeMCP()
        register_schema_tool(self.mcp, self.service)
        register_ddl_tools(self.mcp, self.service)
        register_edit_tools(self.mcp, self.service)

    async def call(self, name, /, *args, **kwargs):
        return await self.mcp.tools[name](*args, **kwargs)


class TestRegistration(ToolTestBase):
    """Tool registration tests."""

    def test_registers_all_tools(self):
        """Test every tool is registered under its function name."""
        assert set(self.mcp.tools) == {
            "get_schema",
            "list_relationships",
            "export_ddl",
            "import_ddl",
            "add_table",
            "rename_table",
            "delete_table",
            "add_attribute",
            "update_attribute",
            "delete_attribute",
            "connect_attributes",
        }


class TestSchemaTools(ToolTestBase):
    """get_schema and list_relationships tests."""

    @pytest.mark.asyncio
    async def test_get_schema_summary(self):
        """Test the summary format."""
        result = await self.call("get_schema")

        assert result["status"] == "success"
        assert result["table_count"] == 2
        assert result["relationship_count"] == 1
        assert result["tables"][1] == {
            "id": "table-2",
            "name": "posts",
            "column_count": 4,
            "primary_key": "id",
            "foreign_key_count": 1,
        }

    @pytest.mark.asyncio
    async def test_get_schema_full(self):
        """Test the full format returns the snapshot."""
        result = await self.call("get_schema", format="full")

        assert result["status"] == "success"
        assert result["revision"] == self.service.maintainer.revision
        assert [t["name"] for t in result["data"]["tables"]] == ["users", "posts"]

    @pytest.mark.asyncio
    async def test_list_relationships(self):
        """Test edges are listed with their labels."""
        result = await self.call("list_relationships")

        assert result["count"] == 1
        edge = result["relationships"][0]
        assert edge["id"] == "table-1-id-to-table-2-user_id"
        assert edge["source"] == {"table_id": "table-1", "attribute": "id"}
        assert edge["target"] == {"table_id": "table-2", "attribute": "user_id"}
        assert edge["cardinality"] == "one-to-many"
        assert edge["label"] == "1:N"
        assert edge["on_delete"] == "CASCADE"


class TestDDLTools(ToolTestBase):
    """export_ddl and import_ddl tests."""

    @pytest.mark.asyncio
    async def test_export_ddl(self):
        """Test exporting the current schema."""
        result = await self.call("export_ddl", dialect="postgresql", include_comments=False)

        assert result["status"] == "success"
        assert result["dialect"] == "postgresql"
        assert result["ddl"].startswith("CREATE TABLE users (")
        assert "REFERENCES users(id) ON DELETE CASCADE" in result["ddl"]
        assert result["defects"] == []

    @pytest.mark.asyncio
    async def test_export_ddl_unknown_dialect(self):
        """Test an unknown dialect is reported as an error dict."""
        result = await self.call("export_ddl", dialect="oracle")

        assert result["status"] == "error"
        assert result["error"]["code"] == "ERR_105"
        assert result["error"]["details"] == {"dialect": "oracle"}

    @pytest.mark.asyncio
    async def test_import_ddl(self):
        """Test importing DDL replaces the schema."""
        result = await self.call("import_ddl", USERS_POSTS_DDL, dialect="mysql")

        assert result["status"] == "success"
        assert result["dialect"] == "mysql"
        assert result["tables_count"] == 2
        assert result["relationship_count"] == 1
        assert result["defects"] == []
        posts = self.service.schema.find_table("posts")
        assert [a.name for a in posts.attributes] == ["id", "user_id"]

    @pytest.mark.asyncio
    async def test_import_ddl_loads_on_loop_thread(self, monkeypatch):
        """Test only parsing leaves the event loop thread; the load happens on it."""
        load = self.service.maintainer.load
        threads = []

        def recording_load(schema):
            threads.append(threading.get_ident())
            load(schema)

        monkeypatch.setattr(self.service.maintainer, "load", recording_load)
        result = await self.call("import_ddl", USERS_POSTS_DDL, dialect="mysql")

        assert result["status"] == "success"
        assert threads == [threading.get_ident()]

    @pytest.mark.asyncio
    async def test_import_ddl_defects(self):
        """Test a failed import reports defects and keeps the schema."""
        before = self.service.snapshot()
        result = await self.call("import_ddl", "   ")

        assert result["status"] == "error"
        assert result["defects"][0]["code"] == "ERR_007"
        assert "tables_count" not in result
        assert self.service.snapshot() == before


class TestEditTools(ToolTestBase):
    """Editing tool tests."""

    @pytest.mark.asyncio
    async def test_add_table(self):
        """Test adding a table."""
        result = await self.call("add_table", name="tags", layout={"x": 10, "y": 20})

        assert result["status"] == "success"
        assert result["table"]["id"] == "table-3"
        assert result["table"]["name"] == "tags"
        assert result["table"]["layout"] == {"x": 10, "y": 20}

    @pytest.mark.asyncio
    async def test_rename_table_not_found(self):
        """Test renaming a missing table."""
        result = await self.call("rename_table", "table-42", "things")

        assert result["status"] == "error"
        assert result["error"]["code"] == "ERR_104"

    @pytest.mark.asyncio
    async def test_rename_table_rewrites_references(self):
        """Test foreign keys follow a renamed table."""
        result = await self.call("rename_table", "table-1", "accounts")

        assert result["table"]["name"] == "accounts"
        user_id = self.service.schema.get_table("table-2").get_attribute("user_id")
        assert user_id.reference.table == "accounts"

    @pytest.mark.asyncio
    async def test_delete_table(self):
        """Test deleting a referenced table demotes its foreign keys."""
        result = await self.call("delete_table", "table-1")

        assert result == {"status": "success", "deleted": "table-1"}
        assert self.service.maintainer.edges == []
        user_id = self.service.schema.get_table("table-2").get_attribute("user_id")
        assert user_id.role == "normal"

    @pytest.mark.asyncio
    async def test_add_foreign_attribute(self):
        """Test adding a foreign key through the reference arguments."""
        result = await self.call(
            "add_attribute",
            "table-2",
            "editor_id",
            data_type="INTEGER",
            role="foreign",
            reference_table="users",
            reference_attribute="id",
            options={"optional": True},
        )

        assert result["status"] == "success"
        assert result["attribute"]["role"] == "foreign"
        assert result["attribute"]["reference"] == {"table": "users", "attribute": "id"}
        assert len(self.service.maintainer.edges) == 2

    @pytest.mark.asyncio
    async def test_add_attribute_unknown_option(self):
        """Test an unknown option is rejected."""
        result = await self.call("add_attribute", "table-1", "nickname", options={"colour": "red"})

        assert result["status"] == "error"
        assert result["error"]["code"] == "ERR_102"
        assert self.service.schema.get_table("table-1").get_attribute("nickname") is None

    @pytest.mark.asyncio
    async def test_add_attribute_duplicate(self):
        """Test a duplicate attribute name is rejected."""
        result = await self.call("add_attribute", "table-1", "EMAIL")

        assert result["status"] == "error"
        assert result["error"]["code"] == "ERR_002"

    @pytest.mark.asyncio
    async def test_update_attribute(self):
        """Test renaming a referenced attribute."""
        result = await self.call("update_attribute", "table-1", "id", {"name": "user_pk"})

        assert result["attribute"]["name"] == "user_pk"
        edge = self.service.maintainer.edges[0]
        assert edge.id == "table-1-user_pk-to-table-2-user_id"

    @pytest.mark.asyncio
    async def test_delete_attribute(self):
        """Test deleting an attribute."""
        result = await self.call("delete_attribute", "table-2", "body")

        assert result == {"status": "success", "deleted": "table-2.body"}
        assert self.service.schema.get_table("table-2").get_attribute("body") is None

    @pytest.mark.asyncio
    async def test_connect_attributes(self):
        """Test connecting a new column to an existing primary key."""
        await self.call("add_table", name="reviews")
        await self.call("add_attribute", "table-3", "id", data_type="INTEGER", role="primary")
        await self.call("add_attribute", "table-3", "author_id", data_type="INTEGER")

        result = await self.call(
            "connect_attributes", "table-1", "id", "table-3", "author_id", on_delete="SET NULL", optional=True
        )

        assert result["status"] == "success"
        edge = result["relationship"]
        assert edge["id"] == "table-1-id-to-table-3-author_id"
        assert edge["on_delete"] == "SET NULL"
        assert edge["optional"] is True
        author_id = self.service.schema.get_table("table-3").get_attribute("author_id")
        assert author_id.role == "foreign"
        # serial sources are referenced as plain integers
        assert str(author_id.data_type) == "INTEGER"

    @pytest.mark.asyncio
    async def test_connect_attributes_invalid_action(self):
        """Test an unknown referential action is rejected."""
        await self.call("add_table", name="reviews")
        await self.call("add_attribute", "table-3", "author_id", data_type="INTEGER")

        result = await self.call(
            "connect_attributes", "table-1", "id", "table-3", "author_id", on_delete="EXPLODE"
        )

        assert result["status"] == "error"
        assert result["error"]["code"] == "ERR_102"
        assert len(self.service.maintainer.edges) == 1
