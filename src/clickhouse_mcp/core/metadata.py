"""ClickHouse metadata introspection operations.

Framework-agnostic business logic behind the MCP tools. Every name is
validated before it reaches a query, and every query (existence probes
included) runs as its own retry-wrapped operation.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from clickhouse_mcp.core.classifier import mentions_missing_object
from clickhouse_mcp.core.exceptions import (
    DatabaseNotFoundError,
    MetadataError,
    TableNotFoundError,
)
from clickhouse_mcp.core.identifiers import validate_identifier
from clickhouse_mcp.core.logging import get_logger
from clickhouse_mcp.core.models import ColumnInfo, DatabaseInfo, TableInfo
from clickhouse_mcp.core.retry import RetryPolicy, with_retry

if TYPE_CHECKING:
    from collections.abc import Callable

    from clickhouse_mcp.core.client import QueryExecutor
    from clickhouse_mcp.core.models import QueryResult

HEALTH_CHECK_SQL = "SELECT 1"

LIST_DATABASES_SQL = "SELECT name FROM system.databases ORDER BY name"

DATABASE_EXISTS_SQL = """
SELECT count() > 0
FROM system.databases
WHERE name = {database:String}
"""

LIST_TABLES_SQL = """
SELECT name, database, engine
FROM system.tables
WHERE database = {database:String}
ORDER BY name
"""

TABLE_EXISTS_SQL = """
SELECT count() > 0
FROM system.tables
WHERE database = {database:String} AND name = {table:String}
"""

LIST_COLUMNS_SQL = """
SELECT
    name,
    type,
    default_kind AS default_type,
    default_expression,
    comment,
    is_in_partition_key,
    is_in_sorting_key,
    is_in_primary_key,
    is_in_sampling_key
FROM system.columns
WHERE database = {database:String} AND table = {table:String}
ORDER BY position
"""


class MetadataService:
    """Metadata operations over a single backend connection."""

    def __init__(
        self,
        client: QueryExecutor,
        policy: RetryPolicy | None = None,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def _run(self, sql: str, parameters: dict[str, Any] | None = None) -> QueryResult:
        return with_retry(
            lambda: self.client.execute_query(sql, parameters),
            self.policy,
            sleep=self._sleep,
        )

    def _exists(self, sql: str, parameters: dict[str, Any]) -> bool:
        result = self._run(sql, parameters)
        return bool(result.rows and result.rows[0][0])

    def _require_database(self, database: str) -> None:
        if not self._exists(DATABASE_EXISTS_SQL, {"database": database}):
            raise DatabaseNotFoundError(database)

    def health_check(self) -> None:
        log = get_logger("metadata")
        log.info("performing health check")
        self._run(HEALTH_CHECK_SQL)
        log.info("health check passed")

    def list_databases(self) -> list[DatabaseInfo]:
        log = get_logger("metadata")
        log.info("listing databases")
        result = self._run(LIST_DATABASES_SQL)
        databases = [DatabaseInfo(name=row[0]) for row in result.rows]
        log.debug("found databases", count=len(databases))
        return databases

    def list_tables(self, database: str) -> list[TableInfo]:
        validate_identifier(database)
        log = get_logger("metadata")
        log.info("listing tables", database=database)

        self._require_database(database)

        try:
            result = self._run(LIST_TABLES_SQL, {"database": database})
        except MetadataError as e:
            if mentions_missing_object(e):
                raise DatabaseNotFoundError(database) from e
            raise

        tables = [
            TableInfo(name=name, database=db, engine=engine)
            for name, db, engine in result.rows
        ]
        log.debug("found tables", database=database, count=len(tables))
        return tables

    def get_table_schema(self, database: str, table: str) -> list[ColumnInfo]:
        validate_identifier(database)
        validate_identifier(table)
        log = get_logger("metadata")
        log.info("getting table schema", database=database, table=table)

        self._require_database(database)
        if not self._exists(TABLE_EXISTS_SQL, {"database": database, "table": table}):
            raise TableNotFoundError(database, table)

        try:
            result = self._run(LIST_COLUMNS_SQL, {"database": database, "table": table})
        except MetadataError as e:
            if mentions_missing_object(e):
                raise TableNotFoundError(database, table) from e
            raise

        # Dropped between the probe and the listing.
        if not result.rows:
            raise TableNotFoundError(database, table)

        columns = [ColumnInfo.from_row(row) for row in result.rows]
        log.debug(
            "found columns", database=database, table=table, count=len(columns)
        )
        return columns
