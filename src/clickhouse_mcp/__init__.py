"""ClickHouse metadata introspection over a line-delimited MCP session."""

from clickhouse_mcp.__about__ import __version__

__all__ = ["__version__"]
