"""MCP schema editing tools."""

from typing import Any, Optional

from mcp.server.fastmcp import FastMCP
from schemasync.services.schema import SchemaService
from schemasync.utils.exceptions import SchemaSyncError


def _failure(action: str, error: Exception) -> dict:
    if isinstance(error, SchemaSyncError):
        return error.to_dict()
    return {
        "status": "error",
        "error": {"message": f"{action} failed: {str(error)}"}
    }


def register_edit_tools(
    mcp: FastMCP,
    schema_service: SchemaService
) -> None:
    """Register the editing tools with the MCP server.

    Every tool goes through the consistency maintainer, so references and
    relationship edges stay in sync after each edit.

    Args:
        mcp: The FastMCP server instance.
        schema_service: The schema service instance.
    """

    @mcp.tool()
    async def add_table(
        name: Optional[str] = None,
        layout: Optional[dict] = None
    ) -> dict:
        """
        Add an empty table.

        Args:
            name: Table name (defaults to "Table N").
            layout: Opaque canvas position/color payload.

        Returns:
            The new table.
        """
        try:
            table = schema_service.mutate("add_table", name=name, layout=layout)
            return {"status": "success", "table": table.model_dump(mode="json")}
        except Exception as e:
            return _failure("Add table", e)

    @mcp.tool()
    async def rename_table(table_id: str, name: str) -> dict:
        """
        Rename a table; foreign keys that reference it follow the new name.

        Args:
            table_id: Table id.
            name: New table name.

        Returns:
            The renamed table.
        """
        try:
            table = schema_service.mutate("rename_table", table_id, name)
            return {"status": "success", "table": table.model_dump(mode="json")}
        except Exception as e:
            return _failure("Rename table", e)

    @mcp.tool()
    async def delete_table(table_id: str) -> dict:
        """
        Delete a table; foreign keys that referenced it become normal columns.

        Args:
            table_id: Table id.
        """
        try:
            schema_service.mutate("delete_table", table_id)
            return {"status": "success", "deleted": table_id}
        except Exception as e:
            return _failure("Delete table", e)

    @mcp.tool()
    async def add_attribute(
        table_id: str,
        name: str,
        data_type: str = "VARCHAR(255)",
        role: str = "normal",
        reference_table: Optional[str] = None,
        reference_attribute: Optional[str] = None,
        options: Optional[dict] = None
    ) -> dict:
        """
        Add an attribute to a table.

        Args:
            table_id: Table id.
            name: Attribute name.
            data_type: Column type, e.g. "INT", "VARCHAR(100)", "DECIMAL(10,2)".
            role: "normal", "primary" or "foreign".
            reference_table: Referenced table name (foreign only).
            reference_attribute: Referenced attribute name (foreign only).
            options: Other fields: not_null, unique, default, check,
                cardinality, on_delete, on_update, optional.

        Returns:
            The new attribute.
        """
        try:
            reference: Optional[dict[str, Any]] = None
            if reference_table is not None or reference_attribute is not None:
                reference = {"table": reference_table or "", "attribute": reference_attribute or ""}
            attribute = schema_service.mutate(
                "add_attribute",
                table_id,
                name,
                data_type=data_type,
                role=role,
                reference=reference,
                **(options or {})
            )
            return {"status": "success", "attribute": attribute.model_dump(mode="json")}
        except Exception as e:
            return _failure("Add attribute", e)

    @mcp.tool()
    async def update_attribute(table_id: str, name: str, changes: dict) -> dict:
        """
        Edit an attribute; renames cascade to the foreign keys that reference it.

        Args:
            table_id: Table id.
            name: Current attribute name.
            changes: Fields to change, e.g. {"name": "user_id", "data_type": "BIGINT"}.

        Returns:
            The updated attribute.
        """
        try:
            attribute = schema_service.mutate("update_attribute", table_id, name, **changes)
            return {"status": "success", "attribute": attribute.model_dump(mode="json")}
        except Exception as e:
            return _failure("Update attribute", e)

    @mcp.tool()
    async def delete_attribute(table_id: str, name: str) -> dict:
        """
        Delete an attribute; foreign keys that referenced it become normal columns.

        Args:
            table_id: Table id.
            name: Attribute name.
        """
        try:
            schema_service.mutate("delete_attribute", table_id, name)
            return {"status": "success", "deleted": f"{table_id}.{name}"}
        except Exception as e:
            return _failure("Delete attribute", e)

    @mcp.tool()
    async def connect_attributes(
        source_table_id: str,
        source_attr: str,
        target_table_id: str,
        target_attr: str,
        cardinality: str = "one-to-many",
        on_delete: Optional[str] = None,
        on_update: Optional[str] = None,
        optional: bool = False
    ) -> dict:
        """
        Make target_attr a foreign key referencing source_attr.

        Args:
            source_table_id: Referenced table id.
            source_attr: Referenced attribute; promoted to primary key if needed.
            target_table_id: Referencing table id.
            target_attr: Attribute that becomes the foreign key.
            cardinality: "one-to-one", "one-to-many" or "many-to-many".
            on_delete: CASCADE, SET NULL, RESTRICT or NO ACTION.
            on_update: CASCADE, SET NULL, RESTRICT or NO ACTION.
            optional: Whether the foreign key may be NULL.

        Returns:
            The created relationship edge.
        """
        try:
            edge = schema_service.mutate(
                "connect_attributes",
                source_table_id,
                source_attr,
                target_table_id,
                target_attr,
                cardinality=cardinality,
                on_delete=on_delete,
                on_update=on_update,
                optional=optional
            )
            return {"status": "success", "relationship": edge.model_dump(mode="json")}
        except Exception as e:
            return _failure("Connect attributes", e)
