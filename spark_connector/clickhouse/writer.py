# -----------------------------------------------------------------------------
# file: spark_connector/clickhouse/writer.py
# purpose: per-partition typed batch writer (row binding + bounded retry)
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Collection, Iterable, Sequence, Tuple

from clickhouse_driver import errors as ch_errors

from common.logger import get_logger

from ..errors import RetryableDriverError, UnknownDriverError, classify_driver_error
from .settings import ConnectionSettings, RetryPolicy
from .statement import ClickHouseConnection, ClickHouseStatement, PreparedInsert, connect
from .types import (
    LONG_INT_KINDS,
    SMALL_INT_KINDS,
    ColumnKind,
    ColumnType,
    SqlType,
    render_string_default,
)

logger = get_logger("spark_connector.clickhouse.writer")

Connector = Callable[[ConnectionSettings], ClickHouseConnection]


@dataclass(frozen=True)
class WriterConfig:
    """파티션 워커로 전달되는 불변 쓰기 설정."""
    connection: ConnectionSettings
    prepared: PreparedInsert
    column_types: Tuple[ColumnType, ...]
    input_fields: Tuple[str, ...]
    bulk_size: int
    retry_policy: RetryPolicy

    def __post_init__(self) -> None:
        if len(self.column_types) != len(self.prepared.fields):
            raise ValueError("column_types must align with prepared insert fields")
        if self.bulk_size <= 0:
            raise ValueError(f"bulk_size must be positive (got: {self.bulk_size})")


@dataclass
class PartitionStats:
    """파티션 단위 적재 결과."""
    rows: int = 0
    batches: int = 0
    dropped_batches: int = 0


# typed NULL 매핑. DateTime -> DATE, Date -> TIME 은 기존 동작을 그대로 따른다.
_NULL_SQL_TYPES = {
    ColumnKind.STRING: SqlType.VARCHAR,
    ColumnKind.DATETIME: SqlType.DATE,
    ColumnKind.DATE: SqlType.TIME,
    ColumnKind.INT8: SqlType.INTEGER,
    ColumnKind.UINT8: SqlType.INTEGER,
    ColumnKind.INT16: SqlType.INTEGER,
    ColumnKind.UINT16: SqlType.INTEGER,
    ColumnKind.INT32: SqlType.INTEGER,
    ColumnKind.UINT32: SqlType.INTEGER,
    ColumnKind.INT64: SqlType.BIGINT,
    ColumnKind.UINT64: SqlType.BIGINT,
    ColumnKind.FLOAT32: SqlType.FLOAT,
    ColumnKind.FLOAT64: SqlType.DOUBLE,
    ColumnKind.DECIMAL: SqlType.DECIMAL,
    ColumnKind.ARRAY: SqlType.ARRAY,
}


def render_null_statement(index: int, field_type: ColumnType, statement: ClickHouseStatement) -> None:
    """Nullable 내부 타입에 맞는 typed NULL을 바인딩한다."""
    if field_type.kind is ColumnKind.LOW_CARDINALITY and field_type.inner is not None:
        field_type = field_type.inner
    statement.set_null(index, _NULL_SQL_TYPES.get(field_type.kind, SqlType.OTHER))


def render_default_statement(index: int, field_type: ColumnType, statement: ClickHouseStatement) -> None:
    """누락되었거나 NULL인 필드에 타입별 기본값을 바인딩한다."""
    while True:
        kind = field_type.kind
        if kind in (ColumnKind.DATETIME, ColumnKind.DATE, ColumnKind.STRING):
            statement.set_string(index, render_string_default(kind.value))
        elif kind in SMALL_INT_KINDS or kind is ColumnKind.UINT32:
            statement.set_int(index, 0)
        elif kind in LONG_INT_KINDS:
            statement.set_long(index, 0)
        elif kind is ColumnKind.FLOAT32:
            statement.set_float(index, 0.0)
        elif kind is ColumnKind.FLOAT64:
            statement.set_double(index, 0.0)
        elif kind is ColumnKind.LOW_CARDINALITY and field_type.inner is not None:
            field_type = field_type.inner
            continue
        elif kind is ColumnKind.ARRAY:
            statement.set_null(index, SqlType.ARRAY)
        elif kind is ColumnKind.NULLABLE and field_type.inner is not None:
            render_null_statement(index, field_type.inner, statement)
        else:
            statement.set_string(index, "")
        return


def render_base_type_statement(
    index: int,
    field_type: ColumnType,
    value: Any,
    statement: ClickHouseStatement,
) -> None:
    """실제 값을 컬럼 타입에 맞게 변환해 바인딩한다."""
    while field_type.is_wrapper and field_type.inner is not None:
        field_type = field_type.inner
    kind = field_type.kind
    if kind in (ColumnKind.STRING, ColumnKind.DATE, ColumnKind.DATETIME):
        statement.set_string(index, value)
    elif kind in SMALL_INT_KINDS:
        statement.set_int(index, value)
    elif kind is ColumnKind.UINT32 or kind in LONG_INT_KINDS:
        statement.set_long(index, value)
    elif kind is ColumnKind.FLOAT32:
        statement.set_float(index, value)
    elif kind is ColumnKind.FLOAT64:
        statement.set_double(index, value)
    elif kind is ColumnKind.ARRAY:
        statement.set_array(index, value)
    elif kind is ColumnKind.DECIMAL:
        statement.set_decimal(index, value)
    else:
        statement.set_string(index, str(value))


def render_statement(
    fields: Sequence[str],
    column_types: Sequence[ColumnType],
    row: Any,
    input_fields: Collection[str],
    statement: ClickHouseStatement,
) -> None:
    """한 행을 INSERT 파라미터로 바인딩한다."""
    for i, (field, field_type) in enumerate(zip(fields, column_types)):
        if field not in input_fields:
            # 입력 스키마에 없는 필드
            render_default_statement(i, field_type, statement)
            continue
        value = row[field]
        if value is None:
            render_default_statement(i, field_type, statement)
        else:
            render_base_type_statement(i, field_type, value, statement)


def execute(statement: ClickHouseStatement, retry: int, retry_codes: Collection[int]) -> bool:
    """배치를 실행한다. 재시도 소진으로 버려지면 False를 반환한다."""
    remaining = retry
    while True:
        try:
            statement.execute_batch()
        except ch_errors.Error as exc:
            error = classify_driver_error(exc, retry_codes)
            if isinstance(error, RetryableDriverError):
                if remaining > 0:
                    remaining -= 1
                    logger.warning(
                        "batch failed code=%s; retrying (remaining=%s)",
                        error.code,
                        remaining,
                    )
                    continue
                logger.warning(
                    "batch dropped after retries code=%s rows=%s",
                    error.code,
                    statement.batch_size,
                )
                statement.close()
                return False
            if isinstance(error, UnknownDriverError):
                statement.close()
            raise error from exc
        statement.close()
        return True


def write_partition(
    rows: Iterable[Any],
    writer_config: WriterConfig,
    connect: Connector = connect,
) -> PartitionStats:
    """파티션 하나의 행을 bulk_size 단위로 적재한다."""
    stats = PartitionStats()
    fields = writer_config.prepared.fields
    input_fields = frozenset(writer_config.input_fields)
    policy = writer_config.retry_policy

    conn = connect(writer_config.connection)
    try:
        statement = conn.prepare_statement(writer_config.prepared, writer_config.column_types)
        length = 0

        def _flush() -> None:
            nonlocal statement
            stats.batches += 1
            logger.debug("flush batch rows=%s table=%s", statement.batch_size, writer_config.prepared.table)
            if not execute(statement, policy.max_retries, policy.retry_codes):
                stats.dropped_batches += 1
            statement = conn.prepare_statement(writer_config.prepared, writer_config.column_types)

        for row in rows:
            length += 1
            stats.rows += 1
            render_statement(fields, writer_config.column_types, row, input_fields, statement)
            statement.add_batch()
            if length >= writer_config.bulk_size:
                _flush()
                length = 0

        _flush()
        statement.close()
    finally:
        conn.close()

    logger.info(
        "partition done table=%s rows=%s batches=%s dropped=%s",
        writer_config.prepared.table,
        stats.rows,
        stats.batches,
        stats.dropped_batches,
    )
    return stats
