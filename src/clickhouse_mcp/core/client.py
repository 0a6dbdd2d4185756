"""ClickHouse client for clickhouse-mcp.

Wraps a clickhouse-connect HTTP client with query execution and mapping of
driver exceptions onto the raw BackendFailure types that the retry layer
classifies.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Protocol

import clickhouse_connect
import sentry_sdk
from clickhouse_connect.driver import exceptions as ch_exceptions

from clickhouse_mcp.core.exceptions import (
    BackendFailure,
    BadResponseFailure,
    ConnectionFailedError,
    InvalidParamsFailure,
    TimeoutFailure,
    TransportFailure,
)
from clickhouse_mcp.core.logging import get_logger
from clickhouse_mcp.core.models import ColumnMeta, QueryResult

if TYPE_CHECKING:
    from clickhouse_connect.driver.client import Client

    from clickhouse_mcp.core.config import ResolvedConfig

_TIMEOUT_MARKERS = ("timed out", "timeout")


class QueryExecutor(Protocol):
    """Anything able to run a parameterized query and return its rows."""

    def execute_query(
        self, sql: str, parameters: dict[str, Any] | None = None
    ) -> QueryResult: ...


class ChClient:
    """Synchronous ClickHouse client over the HTTP interface."""

    def __init__(self, config: ResolvedConfig) -> None:
        self.config = config
        self._client: Client | None = None

    def __enter__(self) -> ChClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        return self._client is not None

    def connect(self) -> None:
        """Open the connection; clickhouse-connect pings the server on creation."""
        if self._client is not None:
            return

        log = get_logger("client")
        log.info(
            "connecting to clickhouse",
            url=self.config.url,
            database=self.config.database,
        )
        try:
            self._client = clickhouse_connect.get_client(
                host=self.config.host,
                port=self.config.port,
                username=self.config.username,
                password=self.config.password,
                database=self.config.database,
                secure=self.config.secure,
                connect_timeout=self.config.connect_timeout,
                send_receive_timeout=self.config.query_timeout,
            )
        except ch_exceptions.Error as e:
            msg = (
                f"{self.config.host}:{self.config.port} "
                f"database '{self.config.database}': {e}"
            )
            raise ConnectionFailedError(msg) from e

    def execute_query(
        self, sql: str, parameters: dict[str, Any] | None = None
    ) -> QueryResult:
        """Execute SQL with server-side bound parameters and return a QueryResult."""
        if self._client is None:
            raise TransportFailure("ClickHouse client is not connected")

        log = get_logger("client")
        sql_normalized = " ".join(sql.split())
        log.debug("executing query", sql=sql_normalized, parameters=parameters)
        with sentry_sdk.start_span(op="db.query", name=sql_normalized[:100]) as span:
            start_time = time.monotonic()
            try:
                result = self._client.query(sql, parameters=parameters)
            except ch_exceptions.OperationalError as e:
                if any(marker in str(e).lower() for marker in _TIMEOUT_MARKERS):
                    span.set_status("deadline_exceeded")
                    log.error("query timeout", sql=sql_normalized)
                    raise TimeoutFailure(self.config.query_timeout, str(e)) from e
                span.set_status("unavailable")
                log.error("transport error", sql=sql_normalized, error=str(e))
                raise TransportFailure(str(e)) from e
            except (ch_exceptions.ProgrammingError, ch_exceptions.DataError) as e:
                span.set_status("invalid_argument")
                log.error("invalid query parameters", sql=sql_normalized, error=str(e))
                raise InvalidParamsFailure(str(e)) from e
            except ch_exceptions.DatabaseError as e:
                span.set_status("internal_error")
                log.error("server error", sql=sql_normalized, error=str(e))
                raise BadResponseFailure(str(e)) from e
            except ch_exceptions.Error as e:
                span.set_status("unknown_error")
                raise BackendFailure(str(e)) from e

            columns = [
                ColumnMeta(name=name, type_name=ch_type.name)
                for name, ch_type in zip(
                    result.column_names, result.column_types, strict=True
                )
            ]
            rows = [tuple(row) for row in result.result_rows]

            duration_ms = (time.monotonic() - start_time) * 1000
            span.set_data("row_count", len(rows))
            span.set_data("duration_ms", duration_ms)
            log.debug(
                "query complete",
                duration_ms=f"{duration_ms:.1f}",
                row_count=len(rows),
            )
            return QueryResult(columns=columns, rows=rows, row_count=len(rows))

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        if self._client is not None:
            self._client.close()
            self._client = None
