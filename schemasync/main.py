"""Main entry point for the schemasync tool server."""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from mcp.server.fastmcp import FastMCP

from schemasync.config import Settings
from schemasync.services.schema import SchemaService


logger = logging.getLogger("schemasync")


def main() -> None:
    """Main entry point for the server."""
    import argparse

    parser = argparse.ArgumentParser(description="Schema consistency and DDL sync MCP Server")
    parser.add_argument(
        "--dialect",
        type=str,
        help="Default export dialect (mysql, postgresql, sqlite, sqlserver)"
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "sse"],
        help="MCP transport"
    )
    parser.add_argument(
        "--host",
        type=str,
        help="SSE host"
    )
    parser.add_argument(
        "--port",
        type=int,
        help="SSE port"
    )
    parser.add_argument(
        "--ddl",
        type=str,
        help="DDL file to import on startup"
    )

    args = parser.parse_args()

    # Load settings
    settings = Settings()
    if args.dialect:
        settings.default_dialect = args.dialect
    if args.transport:
        settings.mcp_transport = args.transport
    if args.host:
        settings.mcp_host = args.host
    if args.port:
        settings.mcp_port = args.port

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

    # Fail fast on a bad dialect name
    settings.get_default_dialect()

    logger.info("Starting schemasync server initialization")

    asyncio.run(run_server(settings, ddl_path=args.ddl))


def create_service(settings: Settings, ddl_path: Optional[str] = None) -> SchemaService:
    """Create the schema service, optionally seeded from a DDL file.

    Args:
        settings: Application settings.
        ddl_path: DDL file to import.

    Returns:
        The schema service.
    """
    service = SchemaService(settings=settings)
    if ddl_path:
        result = service.import_schema(Path(ddl_path).read_text(encoding="utf-8"))
        if result.ok:
            logger.info("Loaded %d table(s) from %s", len(result.parsed_schema.tables), ddl_path)
        else:
            for defect in result.defects:
                logger.error("%s: %s", defect.code.name, defect.message)
            logger.warning("Starting with an empty schema; %s could not be imported", ddl_path)
        for warning in result.warnings:
            logger.warning(warning)
    return service


async def run_server(settings: Settings, ddl_path: Optional[str] = None) -> None:
    """Run the MCP server.

    Args:
        settings: Application settings.
        ddl_path: DDL file to import before serving.
    """
    mcp = FastMCP("schemasync", host=settings.mcp_host, port=settings.mcp_port)

    logger.info("settings: %s", settings.model_dump())

    schema_service = create_service(settings, ddl_path)

    # Register tools using closure pattern
    _register_tools(mcp=mcp, schema_service=schema_service)

    logger.info("schemasync server ready; transport=%s", settings.mcp_transport)

    if settings.mcp_transport == "sse":
        await mcp.run_sse_async()
    else:
        await mcp.run_stdio_async()


def _register_tools(mcp: FastMCP, schema_service: SchemaService) -> None:
    """Register all MCP tools.

    Args:
        mcp: The FastMCP instance.
        schema_service: Schema service.
    """
    from schemasync.tools.schema import register_schema_tool
    from schemasync.tools.ddl import register_ddl_tools
    from schemasync.tools.edit import register_edit_tools

    # Register schema and relationship tools
    register_schema_tool(mcp, schema_service)

    # Register DDL import/export tools
    register_ddl_tools(mcp, schema_service)

    # Register editing tools
    register_edit_tools(mcp, schema_service)


if __name__ == "__main__":
    main()
