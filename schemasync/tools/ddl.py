"""MCP DDL import/export tools."""

import asyncio
from typing import Optional

from mcp.server.fastmcp import FastMCP
from schemasync.services.schema import SchemaService
from schemasync.utils.exceptions import SchemaSyncError


def register_ddl_tools(
    mcp: FastMCP,
    schema_service: SchemaService
) -> None:
    """Register the DDL tools with the MCP server.

    Args:
        mcp: The FastMCP server instance.
        schema_service: The schema service instance.
    """

    @mcp.tool()
    async def export_ddl(
        dialect: Optional[str] = None,
        include_drops: Optional[bool] = None,
        include_comments: Optional[bool] = None
    ) -> dict:
        """
        Export the current schema as SQL DDL.

        Args:
            dialect: Target dialect: mysql, postgresql, sqlite or sqlserver.
            include_drops: Emit DROP TABLE IF EXISTS statements first.
            include_comments: Emit the header comment.

        Returns:
            The generated DDL, or the defects that blocked it.
        """
        try:
            # Generation is pure; run it off the event loop
            result = await asyncio.to_thread(
                schema_service.export_ddl,
                dialect,
                include_drops,
                include_comments
            )
            return result.model_dump(mode="json")

        except SchemaSyncError as e:
            return e.to_dict()
        except Exception as e:
            return {
                "status": "error",
                "error": {"message": f"Export failed: {str(e)}"}
            }

    @mcp.tool()
    async def import_ddl(
        ddl: str,
        dialect: Optional[str] = None
    ) -> dict:
        """
        Replace the current schema with one parsed from SQL DDL.

        Args:
            ddl: CREATE TABLE / ALTER TABLE statements.
            dialect: Source dialect; detected from the text when omitted.

        Returns:
            Import status, table count, defects and warnings.
        """
        try:
            # Parse off the loop; the schema itself is only replaced on the loop thread
            result = await asyncio.to_thread(schema_service.parse_schema, ddl, dialect)
            schema_service.apply_import(result)
            response = {
                "status": result.status,
                "dialect": result.dialect.value if result.dialect else None,
                "defects": [d.model_dump(mode="json") for d in result.defects],
                "warnings": result.warnings
            }
            if result.ok:
                response["tables_count"] = len(result.parsed_schema.tables)
                response["relationship_count"] = len(schema_service.maintainer.edges)
            return response

        except SchemaSyncError as e:
            return e.to_dict()
        except Exception as e:
            return {
                "status": "error",
                "error": {"message": f"Import failed: {str(e)}"}
            }
