"""Plain-text rendering of metadata results for tool responses."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from clickhouse_mcp.core.models import ColumnInfo, DatabaseInfo, TableInfo

# Order in which key memberships are listed after a column.
_KEY_LABELS: tuple[tuple[str, str], ...] = (
    ("is_in_primary_key", "PRIMARY KEY"),
    ("is_in_sorting_key", "SORTING KEY"),
    ("is_in_partition_key", "PARTITION KEY"),
    ("is_in_sampling_key", "SAMPLING KEY"),
)


def format_databases(databases: Iterable[DatabaseInfo]) -> str:
    lines = ["Available databases:"]
    lines.extend(f"- {db.name}" for db in databases)
    return "\n".join(lines) + "\n"


def format_tables(database: str, tables: Iterable[TableInfo]) -> str:
    lines = [f"Tables in database '{database}':"]
    lines.extend(f"- {t.name} (Engine: {t.engine})" for t in tables)
    return "\n".join(lines) + "\n"


def format_column(column: ColumnInfo) -> str:
    """One schema line: name, type, optional comment and key memberships."""
    line = f"- {column.name}: {column.type}"
    if column.comment:
        line += f" -- {column.comment}"
    keys = [label for attr, label in _KEY_LABELS if getattr(column, attr)]
    if keys:
        line += f" [{', '.join(keys)}]"
    return line


def format_table_schema(
    database: str, table: str, columns: Iterable[ColumnInfo]
) -> str:
    lines = [f"Schema for table '{database}.{table}':", "", "Columns:"]
    lines.extend(format_column(col) for col in columns)
    return "\n".join(lines) + "\n"
