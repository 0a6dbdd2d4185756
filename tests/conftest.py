"""Shared test fixtures for clickhouse-mcp."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest
from typer.testing import CliRunner

from clickhouse_mcp.cli.main import app

_CH_ENV_VARS = (
    "CLICKHOUSE_URL",
    "CLICKHOUSE_DATABASE",
    "CLICKHOUSE_USERNAME",
    "CLICKHOUSE_PASSWORD",
    "CLICKHOUSE_MAX_RETRIES",
    "CLICKHOUSE_RETRY_BASE_DELAY",
    "SENTRY_DSN",
)


@pytest.fixture
def runner():
    """Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_runner(runner):
    """Invoke the CLI app with the given arguments."""

    def invoke(*args: str, **kwargs):
        return runner.invoke(app, list(args), **kwargs)

    return invoke


@pytest.fixture
def temp_dir():
    """Temporary directory for test files."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's ClickHouse environment out of unit tests."""
    for var in _CH_ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def sleeps():
    """A fake sleep that records requested delays instead of waiting."""

    class RecordingSleep(list):
        def __call__(self, seconds: float) -> None:
            self.append(seconds)

    return RecordingSleep()
