"""MCP schema tool implementation."""

from mcp.server.fastmcp import FastMCP
from schemasync.services.schema import SchemaService


def register_schema_tool(
    mcp: FastMCP,
    schema_service: SchemaService
) -> None:
    """Register the schema tools with the MCP server.

    Args:
        mcp: The FastMCP server instance.
        schema_service: The schema service instance.
    """

    @mcp.tool()
    async def get_schema(format: str = "summary") -> dict:
        """
        Get the current schema.

        Args:
            format: Output format, "summary" for per-table counts or "full" for the snapshot.

        Returns:
            Schema information.
        """
        try:
            if format == "full":
                return {
                    "status": "success",
                    "revision": schema_service.maintainer.revision,
                    "data": schema_service.snapshot()
                }

            return {
                "status": "success",
                **schema_service.summary()
            }

        except Exception as e:
            return {
                "status": "error",
                "error": {"message": f"Failed to read schema: {str(e)}"}
            }

    @mcp.tool()
    async def list_relationships() -> dict:
        """
        List the relationship edges derived from foreign keys.

        Returns:
            Every edge with its source, target and cardinality label.
        """
        try:
            edges = schema_service.maintainer.edges
            return {
                "status": "success",
                "relationships": [edge.model_dump(mode="json") for edge in edges],
                "count": len(edges)
            }

        except Exception as e:
            return {
                "status": "error",
                "error": {"message": f"Failed to list relationships: {str(e)}"}
            }
