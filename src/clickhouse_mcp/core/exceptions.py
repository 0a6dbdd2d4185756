"""Exception hierarchy for clickhouse-mcp.

Two families live here:

* ``MetadataError`` and its subclasses form the closed set of failures a
  metadata operation can surface. Each subclass carries the context needed
  to render a precise message.
* ``BackendFailure`` and its subclasses are the raw failures raised by the
  wire client. They never cross the metadata layer unclassified.
"""

from __future__ import annotations

from clickhouse_mcp.core.exit_codes import ExitCode


class ClickHouseMcpError(Exception):
    """Base exception for all clickhouse-mcp errors."""

    exit_code: int = ExitCode.GENERAL_ERROR

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(ClickHouseMcpError):
    """Malformed config file, invalid environment value."""

    exit_code: int = ExitCode.CONFIG_ERROR


# ---------------------------------------------------------------------------
# Metadata errors
# ---------------------------------------------------------------------------


class MetadataError(ClickHouseMcpError):
    """Base for failures surfaced by metadata operations."""


class ConnectionFailedError(MetadataError):
    exit_code: int = ExitCode.CONNECTION_ERROR

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Connection failed: {detail}")


class DatabaseNotFoundError(MetadataError):
    def __init__(self, database: str) -> None:
        self.database = database
        super().__init__(f"Database '{database}' not found")


class TableNotFoundError(MetadataError):
    def __init__(self, database: str, table: str) -> None:
        self.database = database
        self.table = table
        super().__init__(f"Table '{table}' not found in database '{database}'")


class PermissionDeniedError(MetadataError):
    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Permission denied for operation: {operation}")


class QueryTimeoutError(MetadataError):
    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"Query timeout after {timeout:g}s")


class InvalidIdentifierError(MetadataError):
    def __init__(self, identifier: str, reason: str) -> None:
        self.identifier = identifier
        self.reason = reason
        super().__init__(f"Invalid identifier '{identifier}': {reason}")


class NetworkError(MetadataError):
    exit_code: int = ExitCode.CONNECTION_ERROR

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Network error: {detail}")


class AuthenticationFailedError(MetadataError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Authentication failed: {detail}")


class QueryFailedError(MetadataError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Query failed: {detail}")


class ServiceUnavailableError(MetadataError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Service unavailable: {detail}")


class InternalError(MetadataError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Internal error: {detail}")


# ---------------------------------------------------------------------------
# Tool-call errors (protocol level, raised before any backend call)
# ---------------------------------------------------------------------------


class ToolError(ClickHouseMcpError):
    """A tool invocation could not be routed to a metadata operation."""


class InvalidToolCallError(ToolError):
    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Invalid tool call parameters: {detail}")


class UnknownToolError(ToolError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class MissingArgumentError(ToolError):
    def __init__(self, argument: str) -> None:
        self.argument = argument
        super().__init__(f"Missing {argument} argument")


# ---------------------------------------------------------------------------
# Raw backend failures (wire client contract)
# ---------------------------------------------------------------------------


class BackendFailure(Exception):
    """Unclassified failure reported by the wire client."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class TransportFailure(BackendFailure):
    """Connection refused, reset, unreachable host."""


class InvalidParamsFailure(BackendFailure):
    """Query parameters rejected before or while binding."""


class BadResponseFailure(BackendFailure):
    """The server answered with an error message."""


class TimeoutFailure(BackendFailure):
    """The server did not answer within the query timeout."""

    def __init__(self, timeout: float, message: str = "") -> None:
        self.timeout = timeout
        super().__init__(message or f"timed out after {timeout:g}s")
