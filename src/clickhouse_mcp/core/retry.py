"""Retry with exponential backoff for backend operations."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from clickhouse_mcp.core.classifier import classify, is_retryable
from clickhouse_mcp.core.exceptions import InternalError
from clickhouse_mcp.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 0.1

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            msg = f"max_retries must be >= 0, got {self.max_retries}"
            raise ValueError(msg)
        if self.base_delay < 0:
            msg = f"base_delay must be >= 0, got {self.base_delay}"
            raise ValueError(msg)

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait before ``attempt`` (1-based retry number)."""
        return self.base_delay * 2 ** (attempt - 1)


def with_retry(
    operation: Callable[[], T],
    policy: RetryPolicy,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` until it succeeds or the retry budget is spent.

    Raw failures are classified only once, after the final attempt, so the
    caller always sees a MetadataError chained from the last raw failure.
    Non-retryable failures stop the loop immediately.
    """
    log = get_logger("retry")
    last_error: Exception | None = None

    for attempt in range(policy.total_attempts):
        if attempt > 0:
            delay = policy.delay_for(attempt)
            log.debug(
                "retrying backend operation",
                attempt=attempt,
                delay_ms=f"{delay * 1000:.0f}",
            )
            sleep(delay)

        try:
            return operation()
        except Exception as e:
            last_error = e
            if attempt == policy.max_retries or not is_retryable(e):
                break
            log.warning(
                "backend operation failed", attempt=attempt + 1, error=str(e)
            )

    if last_error is None:
        raise InternalError("Retry loop completed without error")
    raise classify(last_error) from last_error
