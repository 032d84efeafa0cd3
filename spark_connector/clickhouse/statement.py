# -----------------------------------------------------------------------------
# file: spark_connector/clickhouse/statement.py
# purpose: prepared INSERT template, parameter binding and batch execution
#          over the clickhouse-driver native client
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

from clickhouse_driver import Client

from .settings import ConnectionSettings
from .types import ColumnKind, ColumnType, SqlType


@dataclass(frozen=True)
class PreparedInsert:
    """INSERT 템플릿. 잡 준비 단계에서 한 번 만든다."""
    table: str
    fields: Tuple[str, ...]

    @property
    def placeholder_count(self) -> int:
        return len(self.fields)

    @property
    def sql(self) -> str:
        placeholders = ",".join("?" for _ in self.fields)
        return f"insert into {self.table} ({','.join(self.fields)}) values ({placeholders})"

    @property
    def insert_prefix(self) -> str:
        """native 드라이버용 INSERT 문 (VALUES 이후 데이터는 블록으로 전송된다)."""
        return f"insert into {self.table} ({','.join(self.fields)}) values"


@dataclass(frozen=True)
class Binding:
    """바인딩된 파라미터 하나."""
    sql_type: SqlType
    value: Any


def _to_driver_value(column_type: ColumnType, binding: Binding) -> Any:
    """바인딩 값을 드라이버가 받는 파이썬 값으로 바꾼다."""
    value = binding.value
    if value is None or not isinstance(value, str):
        return value
    base = column_type.unwrap()
    if base.kind is ColumnKind.DATE:
        return date.fromisoformat(value[:10])
    if base.kind is ColumnKind.DATETIME:
        return datetime.fromisoformat(value)
    return value


class ClickHouseStatement:
    """PreparedStatement처럼 파라미터를 바인딩하고 배치로 실행한다."""

    def __init__(
        self,
        client: Client,
        prepared: PreparedInsert,
        column_types: Sequence[ColumnType],
    ):
        if len(column_types) != prepared.placeholder_count:
            raise ValueError(
                f"column types ({len(column_types)}) do not match "
                f"placeholders ({prepared.placeholder_count})"
            )
        self._client = client
        self._prepared = prepared
        self._column_types = tuple(column_types)
        self._params: List[Optional[Binding]] = [None] * prepared.placeholder_count
        self._batch: List[Tuple[Any, ...]] = []
        self._closed = False

    @property
    def sql(self) -> str:
        return self._prepared.sql

    @property
    def parameters(self) -> Tuple[Optional[Binding], ...]:
        """현재 행에 바인딩된 파라미터."""
        return tuple(self._params)

    @property
    def batch_size(self) -> int:
        return len(self._batch)

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("statement is closed")

    def _bind(self, index: int, sql_type: SqlType, value: Any) -> None:
        self._ensure_open()
        if not 0 <= index < len(self._params):
            raise IndexError(f"parameter index {index} out of range")
        self._params[index] = Binding(sql_type, value)

    def set_string(self, index: int, value: Any) -> None:
        self._bind(index, SqlType.VARCHAR, value)

    def set_int(self, index: int, value: int) -> None:
        self._bind(index, SqlType.INTEGER, int(value))

    def set_long(self, index: int, value: int) -> None:
        self._bind(index, SqlType.BIGINT, int(value))

    def set_float(self, index: int, value: float) -> None:
        self._bind(index, SqlType.FLOAT, float(value))

    def set_double(self, index: int, value: float) -> None:
        self._bind(index, SqlType.DOUBLE, float(value))

    def set_decimal(self, index: int, value: Any) -> None:
        if not isinstance(value, Decimal):
            value = Decimal(str(value))
        self._bind(index, SqlType.DECIMAL, value)

    def set_array(self, index: int, value: Sequence[Any]) -> None:
        self._bind(index, SqlType.ARRAY, list(value))

    def set_null(self, index: int, sql_type: SqlType) -> None:
        self._bind(index, sql_type, None)

    def add_batch(self) -> None:
        """현재 바인딩을 배치에 추가하고 파라미터를 비운다."""
        self._ensure_open()
        unbound = [i for i, binding in enumerate(self._params) if binding is None]
        if unbound:
            raise ValueError(f"parameters {unbound} are not bound")
        row = tuple(
            _to_driver_value(column_type, binding)
            for column_type, binding in zip(self._column_types, self._params)
            if binding is not None
        )
        self._batch.append(row)
        self._params = [None] * len(self._params)

    def execute_batch(self) -> int:
        """누적된 배치를 한 번에 실행한다. 실패하면 배치는 그대로 남는다."""
        self._ensure_open()
        self._client.execute(self._prepared.insert_prefix, self._batch, types_check=True)
        executed = len(self._batch)
        self._batch = []
        return executed

    def close(self) -> None:
        self._batch = []
        self._params = [None] * len(self._params)
        self._closed = True


class ClickHouseConnection:
    """clickhouse-driver Client를 감싼 커넥션."""

    def __init__(self, client: Client):
        self._client = client

    @property
    def client(self) -> Client:
        return self._client

    def describe_table(self, table: str) -> List[Tuple[str, str]]:
        """DESC 결과에서 (컬럼명, 타입) 목록을 가져온다."""
        rows = self._client.execute(f"desc {table}")
        return [(str(row[0]), str(row[1])) for row in rows]

    def prepare_statement(
        self,
        prepared: PreparedInsert,
        column_types: Sequence[ColumnType],
    ) -> ClickHouseStatement:
        return ClickHouseStatement(self._client, prepared, column_types)

    def close(self) -> None:
        self._client.disconnect()


def connect(settings: ConnectionSettings) -> ClickHouseConnection:
    """접속 설정으로 ClickHouse 커넥션을 연다."""
    return ClickHouseConnection(Client.from_url(settings.build_client_url()))
