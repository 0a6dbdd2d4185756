"""Tests for query result and metadata models."""

import pytest
from pydantic import ValidationError

from clickhouse_mcp.core.models import (
    ColumnInfo,
    ColumnMeta,
    DatabaseInfo,
    QueryResult,
    TableInfo,
)


@pytest.mark.unit
def test_column_meta_serializes_to_dict():
    col = ColumnMeta(name="name", type_name="String")
    assert col.model_dump() == {"name": "name", "type_name": "String"}


@pytest.mark.unit
def test_query_result_with_rows():
    result = QueryResult(
        columns=[
            ColumnMeta(name="id", type_name="UInt64"),
            ColumnMeta(name="name", type_name="String"),
        ],
        rows=[(1, "alice"), (2, "bob")],
        row_count=2,
    )
    assert result.row_count == 2
    assert result.rows[0] == (1, "alice")
    assert result.columns[0].name == "id"


@pytest.mark.unit
def test_database_info_json_round_trip():
    info = DatabaseInfo(name="")
    assert DatabaseInfo.model_validate_json(info.model_dump_json()) == info


@pytest.mark.unit
def test_table_info_json_round_trip():
    info = TableInfo(name="test_table", database="test_db", engine="MergeTree")
    restored = TableInfo.model_validate_json(info.model_dump_json())
    assert restored == info
    assert restored.engine == "MergeTree"


@pytest.mark.unit
def test_column_info_json_round_trip():
    info = ColumnInfo(
        name="id",
        type="UInt64",
        default_type="",
        default_expression="",
        comment="Primary key",
        is_in_partition_key=0,
        is_in_sorting_key=1,
        is_in_primary_key=1,
        is_in_sampling_key=0,
    )
    restored = ColumnInfo.model_validate_json(info.model_dump_json())
    assert restored == info
    assert restored.is_in_primary_key is True
    assert restored.is_in_partition_key is False


@pytest.mark.unit
def test_column_info_from_row():
    col = ColumnInfo.from_row(("ts", "DateTime", "DEFAULT", "now()", "", 1, 0, 0, 1))
    assert col.name == "ts"
    assert col.type == "DateTime"
    assert col.default_expression == "now()"
    assert col.is_in_partition_key is True
    assert col.is_in_sampling_key is True


@pytest.mark.unit
def test_column_info_from_short_row_rejected():
    with pytest.raises(ValueError):
        ColumnInfo.from_row(("ts", "DateTime"))


@pytest.mark.unit
def test_info_models_are_frozen():
    info = DatabaseInfo(name="default")
    with pytest.raises(ValidationError):
        info.name = "other"
