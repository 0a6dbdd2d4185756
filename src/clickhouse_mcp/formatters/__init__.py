"""Text bodies returned to MCP clients."""

from clickhouse_mcp.formatters.text import (
    format_databases,
    format_table_schema,
    format_tables,
)
