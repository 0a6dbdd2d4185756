"""Classification of raw backend failures into metadata errors.

ClickHouse's HTTP interface does not expose stable error codes to the
client, so bad-response messages are matched on fixed substrings. The
phrases below are matched verbatim; changing them changes how failures
are reported.
"""

from __future__ import annotations

import re

from clickhouse_mcp.core.exceptions import (
    AuthenticationFailedError,
    BadResponseFailure,
    DatabaseNotFoundError,
    InternalError,
    InvalidParamsFailure,
    MetadataError,
    NetworkError,
    PermissionDeniedError,
    QueryFailedError,
    QueryTimeoutError,
    TableNotFoundError,
    TimeoutFailure,
    TransportFailure,
)

AUTHENTICATION_FAILED = "Authentication failed"
DOES_NOT_EXIST = "doesn't exist"
ACCESS_DENIED = "Access denied"

_UNKNOWN = "unknown"

_DATABASE_NAME_RE = re.compile(r"Database `?([\w-]+)`? doesn't exist")
_TABLE_NAME_RE = re.compile(r"Table `?([\w-]+)`?\.`?([\w-]+)`? doesn't exist")


def is_retryable(error: BaseException) -> bool:
    """Whether a failed attempt is worth repeating.

    Transport failures are retried. Rejected parameters and server error
    responses (authentication, permissions, missing objects) are not.
    Everything else, timeouts included, is retried.
    """
    if isinstance(error, TransportFailure):
        return True
    if isinstance(error, (InvalidParamsFailure, BadResponseFailure)):
        return False
    return True


def classify(error: BaseException) -> MetadataError:
    """Map a raw failure onto exactly one metadata error."""
    if isinstance(error, TransportFailure):
        return NetworkError(error.message)
    if isinstance(error, TimeoutFailure):
        return QueryTimeoutError(error.timeout)
    if isinstance(error, InvalidParamsFailure):
        return QueryFailedError(error.message)
    if isinstance(error, BadResponseFailure):
        return _classify_bad_response(error.message)
    return InternalError(str(error) or type(error).__name__)


def _classify_bad_response(message: str) -> MetadataError:
    if AUTHENTICATION_FAILED in message:
        return AuthenticationFailedError(message)
    if DOES_NOT_EXIST in message:
        if "Database" in message:
            match = _DATABASE_NAME_RE.search(message)
            return DatabaseNotFoundError(match.group(1) if match else _UNKNOWN)
        match = _TABLE_NAME_RE.search(message)
        if match:
            return TableNotFoundError(match.group(1), match.group(2))
        return TableNotFoundError(_UNKNOWN, _UNKNOWN)
    if ACCESS_DENIED in message:
        return PermissionDeniedError("query")
    return QueryFailedError(message)


def mentions_missing_object(error: MetadataError) -> bool:
    """Whether a classified error reports that a database or table is gone."""
    if isinstance(error, (DatabaseNotFoundError, TableNotFoundError)):
        return True
    return isinstance(error, QueryFailedError) and DOES_NOT_EXIST in error.detail
