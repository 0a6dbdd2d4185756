"""MCP tool catalog and tool routing.

TOOL_DEFINITIONS is returned verbatim by ``tools/list``. TOOL_HANDLERS maps
each tool name onto the metadata operation that serves it; adding a tool
means adding one entry to each.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from clickhouse_mcp.core.exceptions import MissingArgumentError, UnknownToolError
from clickhouse_mcp.formatters.text import (
    format_databases,
    format_table_schema,
    format_tables,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from clickhouse_mcp.core.metadata import MetadataService

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "list_databases",
        "description": "List all databases in the ClickHouse instance",
        "inputSchema": {
            "type": "object",
            "properties": {},
            "required": [],
        },
    },
    {
        "name": "list_tables",
        "description": "List all tables in a specific database",
        "inputSchema": {
            "type": "object",
            "properties": {
                "database": {
                    "type": "string",
                    "description": "The database name to list tables from",
                },
            },
            "required": ["database"],
        },
    },
    {
        "name": "get_table_schema",
        "description": "Get the schema (columns) of a specific table",
        "inputSchema": {
            "type": "object",
            "properties": {
                "database": {
                    "type": "string",
                    "description": "The database name",
                },
                "table": {
                    "type": "string",
                    "description": "The table name",
                },
            },
            "required": ["database", "table"],
        },
    },
]


def _require_str(arguments: dict[str, Any], name: str) -> str:
    value = arguments.get(name)
    if not isinstance(value, str):
        raise MissingArgumentError(name)
    return value


def _list_databases(service: MetadataService, arguments: dict[str, Any]) -> str:
    return format_databases(service.list_databases())


def _list_tables(service: MetadataService, arguments: dict[str, Any]) -> str:
    database = _require_str(arguments, "database")
    return format_tables(database, service.list_tables(database))


def _get_table_schema(service: MetadataService, arguments: dict[str, Any]) -> str:
    database = _require_str(arguments, "database")
    table = _require_str(arguments, "table")
    return format_table_schema(
        database, table, service.get_table_schema(database, table)
    )


TOOL_HANDLERS: dict[str, Callable[[MetadataService, dict[str, Any]], str]] = {
    "list_databases": _list_databases,
    "list_tables": _list_tables,
    "get_table_schema": _get_table_schema,
}


def call_tool(service: MetadataService, name: str, arguments: dict[str, Any]) -> str:
    """Run tool ``name`` and return its text body.

    Raises ToolError when the call cannot be routed (unknown tool, missing
    argument) and MetadataError when the operation itself fails.
    """
    handler = TOOL_HANDLERS.get(name)
    if handler is None:
        raise UnknownToolError(name)
    return handler(service, arguments)
