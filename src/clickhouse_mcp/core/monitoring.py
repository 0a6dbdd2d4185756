"""Sentry integration for error tracking and performance monitoring.

Sentry is initialized by the CLI right after logging setup. Without a
SENTRY_DSN in the environment the SDK stays disabled.
"""

import os

import sentry_sdk

from clickhouse_mcp.__about__ import __version__


def setup_sentry(environment: str = "local") -> None:
    """Initialize Sentry from the SENTRY_DSN environment variable."""
    sentry_sdk.init(
        dsn=os.environ.get("SENTRY_DSN") or None,
        traces_sample_rate=0.03,
        environment=os.environ.get("SENTRY_ENVIRONMENT", environment),
        release=__version__,
        attach_stacktrace=True,
        send_default_pii=False,
    )
