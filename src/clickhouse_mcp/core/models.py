"""Query result and metadata models for clickhouse-mcp.

``QueryResult`` is what ChClient.execute_query() returns. The *Info models
are read-only projections of rows from ClickHouse ``system`` tables.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ColumnMeta(BaseModel):
    """Metadata for a single result column."""

    name: str
    type_name: str


class QueryResult(BaseModel):
    """Result of a query execution."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    columns: list[ColumnMeta]
    rows: list[tuple[Any, ...]]
    row_count: int


class DatabaseInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str


class TableInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    database: str
    engine: str


class ColumnInfo(BaseModel):
    """A column as described by ``system.columns``.

    ClickHouse reports the key-membership flags as UInt8; pydantic coerces
    0/1 into booleans.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: str
    default_type: str
    default_expression: str
    comment: str
    is_in_partition_key: bool
    is_in_sorting_key: bool
    is_in_primary_key: bool
    is_in_sampling_key: bool

    @classmethod
    def from_row(cls, row: tuple[Any, ...]) -> ColumnInfo:
        return cls.model_validate(dict(zip(cls.model_fields, row, strict=True)))
