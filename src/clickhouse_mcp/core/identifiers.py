"""Identifier validation for database and table names.

Names are checked before they are ever bound into a query.
"""

from __future__ import annotations

import string

from clickhouse_mcp.core.exceptions import InvalidIdentifierError

MAX_IDENTIFIER_LENGTH = 64

_ALLOWED_CHARS = frozenset(string.ascii_letters + string.digits + "_-")


def validate_identifier(identifier: str) -> None:
    """Raise InvalidIdentifierError unless ``identifier`` is a safe name.

    Rules are checked in order and the first violation determines the
    reason: non-empty, at most 64 characters, only ASCII letters, digits,
    underscore and hyphen, and no leading digit.
    """
    if not identifier:
        reason = "Identifier cannot be empty"
    elif len(identifier) > MAX_IDENTIFIER_LENGTH:
        reason = (
            f"Identifier cannot be longer than {MAX_IDENTIFIER_LENGTH} characters"
        )
    elif not set(identifier) <= _ALLOWED_CHARS:
        reason = (
            "Identifier can only contain alphanumeric characters, "
            "underscore, and hyphen"
        )
    elif identifier[0] in string.digits:
        reason = "Identifier cannot start with a digit"
    else:
        return
    raise InvalidIdentifierError(identifier, reason)
