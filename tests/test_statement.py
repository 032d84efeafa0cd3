from datetime import date, datetime
from decimal import Decimal

import pytest

from spark_connector.clickhouse.statement import (
    Binding,
    ClickHouseConnection,
    ClickHouseStatement,
    PreparedInsert,
)
from spark_connector.clickhouse.types import SqlType, parse_column_type
from tests.conftest import FakeClient


def _statement(client, fields_and_types):
    prepared = PreparedInsert("db.t", tuple(name for name, _ in fields_and_types))
    column_types = [parse_column_type(type_name) for _, type_name in fields_and_types]
    return ClickHouseStatement(client, prepared, column_types)


def test_prepared_insert_sql():
    prepared = PreparedInsert("db.t", ("a", "b", "c"))
    assert prepared.sql == "insert into db.t (a,b,c) values (?,?,?)"
    assert prepared.placeholder_count == 3
    assert prepared.insert_prefix == "insert into db.t (a,b,c) values"


def test_add_batch_coerces_date_strings():
    client = FakeClient()
    statement = _statement(client, [("d", "Date"), ("ts", "Nullable(DateTime)"), ("s", "String")])
    statement.set_string(0, "2024-03-01")
    statement.set_string(1, "2024-03-01 12:30:00")
    statement.set_string(2, "2024-03-01")
    statement.add_batch()
    statement.execute_batch()

    assert client.inserts == [[(date(2024, 3, 1), datetime(2024, 3, 1, 12, 30), "2024-03-01")]]
    assert client.queries == ["insert into db.t (d,ts,s) values"]


def test_bindings_record_sql_types():
    statement = _statement(FakeClient(), [("i", "Int32"), ("l", "Int64"), ("m", "Decimal(10, 2)")])
    statement.set_int(0, 3)
    statement.set_long(1, 4)
    statement.set_decimal(2, 1.25)
    assert statement.parameters == (
        Binding(SqlType.INTEGER, 3),
        Binding(SqlType.BIGINT, 4),
        Binding(SqlType.DECIMAL, Decimal("1.25")),
    )


def test_add_batch_requires_all_parameters():
    statement = _statement(FakeClient(), [("a", "String"), ("b", "String")])
    statement.set_string(0, "x")
    with pytest.raises(ValueError, match=r"\[1\]"):
        statement.add_batch()


def test_execute_batch_keeps_rows_on_failure():
    client = FakeClient(errors=[RuntimeError("boom")])
    statement = _statement(client, [("a", "String")])
    statement.set_string(0, "x")
    statement.add_batch()

    with pytest.raises(RuntimeError):
        statement.execute_batch()
    assert statement.batch_size == 1

    assert statement.execute_batch() == 1
    assert statement.batch_size == 0
    assert client.inserts == [[("x",)]]


def test_execute_empty_batch_still_round_trips():
    client = FakeClient()
    statement = _statement(client, [("a", "String")])
    assert statement.execute_batch() == 0
    assert client.insert_attempts == 1


def test_closed_statement_rejects_use():
    statement = _statement(FakeClient(), [("a", "String")])
    statement.close()
    assert statement.closed
    with pytest.raises(RuntimeError, match="closed"):
        statement.set_string(0, "x")
    with pytest.raises(RuntimeError, match="closed"):
        statement.execute_batch()


def test_connection_describe_and_close():
    client = FakeClient(schema=[("id", "UInt64"), ("name", "String")])
    conn = ClickHouseConnection(client)
    assert conn.describe_table("db.t") == [("id", "UInt64"), ("name", "String")]
    assert client.queries == ["desc db.t"]
    conn.close()
    assert client.disconnected
