"""Tests for ChClient.

Unit tests patch clickhouse_connect.get_client; integration tests run
against a live server and are skipped unless CLICKHOUSE_TEST_URL is set.
"""

import os
from unittest.mock import MagicMock, patch

import pytest
from clickhouse_connect.driver import exceptions as ch_exceptions

from clickhouse_mcp.core.client import ChClient
from clickhouse_mcp.core.config import AppConfig, ResolvedConfig, resolve_config
from clickhouse_mcp.core.exceptions import (
    BackendFailure,
    BadResponseFailure,
    ConnectionFailedError,
    DatabaseNotFoundError,
    InvalidParamsFailure,
    TimeoutFailure,
    TransportFailure,
)
from clickhouse_mcp.core.metadata import MetadataService
from clickhouse_mcp.core.models import QueryResult
from clickhouse_mcp.core.retry import RetryPolicy

TEST_URL = os.environ.get("CLICKHOUSE_TEST_URL")


def _ch_type(name):
    ch_type = MagicMock()
    ch_type.name = name
    return ch_type


@pytest.fixture
def config():
    return ResolvedConfig(url="https://ch.example.com:9443", query_timeout=5.0)


@pytest.fixture
def driver():
    driver = MagicMock()
    result = MagicMock()
    result.column_names = ("name", "engine")
    result.column_types = [_ch_type("String"), _ch_type("String")]
    result.result_rows = [["events", "MergeTree"], ["users", "Log"]]
    driver.query.return_value = result
    return driver


@pytest.fixture
def client(config, driver):
    with patch(
        "clickhouse_mcp.core.client.clickhouse_connect.get_client",
        return_value=driver,
    ):
        c = ChClient(config)
        c.connect()
        yield c


# -- Connection --


@pytest.mark.unit
def test_connect_passes_resolved_settings(config, driver):
    with patch(
        "clickhouse_mcp.core.client.clickhouse_connect.get_client",
        return_value=driver,
    ) as get_client:
        client = ChClient(config)
        client.connect()

    get_client.assert_called_once_with(
        host="ch.example.com",
        port=9443,
        username="default",
        password="",
        database="default",
        secure=True,
        connect_timeout=10,
        send_receive_timeout=5.0,
    )
    assert client.connected


@pytest.mark.unit
def test_connect_is_idempotent(config, driver):
    with patch(
        "clickhouse_mcp.core.client.clickhouse_connect.get_client",
        return_value=driver,
    ) as get_client:
        client = ChClient(config)
        client.connect()
        client.connect()

    assert get_client.call_count == 1


@pytest.mark.unit
def test_connect_failure_raises_connection_failed(config):
    with (
        patch(
            "clickhouse_mcp.core.client.clickhouse_connect.get_client",
            side_effect=ch_exceptions.OperationalError("Connection refused"),
        ),
        pytest.raises(ConnectionFailedError, match="Connection refused"),
    ):
        ChClient(config).connect()


@pytest.mark.unit
def test_query_before_connect_is_transport_failure(config):
    with pytest.raises(TransportFailure, match="not connected"):
        ChClient(config).execute_query("SELECT 1")


# -- Query results --


@pytest.mark.unit
def test_execute_returns_query_result(client, driver):
    result = client.execute_query(
        "SELECT name, engine FROM system.tables", {"database": "default"}
    )

    assert isinstance(result, QueryResult)
    assert result.row_count == 2
    assert result.rows == [("events", "MergeTree"), ("users", "Log")]
    assert [c.name for c in result.columns] == ["name", "engine"]
    assert result.columns[0].type_name == "String"
    driver.query.assert_called_once_with(
        "SELECT name, engine FROM system.tables", parameters={"database": "default"}
    )


# -- Error mapping --


@pytest.mark.unit
@pytest.mark.parametrize(
    ("driver_error", "failure_type"),
    [
        (ch_exceptions.OperationalError("Connection reset by peer"), TransportFailure),
        (ch_exceptions.ProgrammingError("Unrecognized parameter"), InvalidParamsFailure),
        (ch_exceptions.DataError("Cannot bind value"), InvalidParamsFailure),
        (
            ch_exceptions.DatabaseError("Code: 81. Database x doesn't exist"),
            BadResponseFailure,
        ),
        (ch_exceptions.InterfaceError("bad interface"), BackendFailure),
    ],
)
def test_driver_errors_map_to_raw_failures(client, driver, driver_error, failure_type):
    driver.query.side_effect = driver_error

    with pytest.raises(failure_type) as exc_info:
        client.execute_query("SELECT 1")

    assert exc_info.value.__cause__ is driver_error


@pytest.mark.unit
def test_read_timeout_maps_to_timeout_failure(client, driver):
    driver.query.side_effect = ch_exceptions.OperationalError(
        "Error HTTPConnectionPool: Read timed out. (read timeout=5.0)"
    )

    with pytest.raises(TimeoutFailure) as exc_info:
        client.execute_query("SELECT sleep(10)")

    assert exc_info.value.timeout == 5.0


# -- Lifecycle --


@pytest.mark.unit
def test_close_disconnects(client, driver):
    client.close()
    driver.close.assert_called_once()
    assert not client.connected


@pytest.mark.unit
def test_close_when_not_connected(config):
    ChClient(config).close()  # should not raise


@pytest.mark.unit
def test_context_manager_closes(config, driver):
    with (
        patch(
            "clickhouse_mcp.core.client.clickhouse_connect.get_client",
            return_value=driver,
        ),
        ChClient(config) as c,
    ):
        c.connect()
    driver.close.assert_called_once()


# -- Live server --


@pytest.fixture
def live_client():
    if not TEST_URL:
        pytest.skip("CLICKHOUSE_TEST_URL not set")
    resolved = resolve_config(AppConfig(), url=TEST_URL)
    with ChClient(resolved) as c:
        c.connect()
        yield c


@pytest.mark.integration
def test_live_health_check(live_client):
    MetadataService(live_client).health_check()


@pytest.mark.integration
def test_live_list_databases_includes_system(live_client):
    names = [db.name for db in MetadataService(live_client).list_databases()]
    assert "system" in names
    assert names == sorted(names)


@pytest.mark.integration
def test_live_describe_system_table(live_client):
    columns = MetadataService(live_client).get_table_schema("system", "databases")
    assert "name" in [c.name for c in columns]


@pytest.mark.integration
def test_live_missing_database(live_client):
    service = MetadataService(live_client, RetryPolicy(max_retries=0))
    with pytest.raises(DatabaseNotFoundError) as exc_info:
        service.list_tables("nonexistent_database_12345")
    assert exc_info.value.database == "nonexistent_database_12345"
