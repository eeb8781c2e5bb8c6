"""MCP tools for schemasync."""

from schemasync.tools.schema import register_schema_tool
from schemasync.tools.ddl import register_ddl_tools
from schemasync.tools.edit import register_edit_tools

__all__ = [
    "register_schema_tool",
    "register_ddl_tools",
    "register_edit_tools",
]
