# -----------------------------------------------------------------------------
# file: spark_connector/clickhouse/types.py
# purpose: ClickHouse column type descriptors parsed once from `DESC <table>`
# -----------------------------------------------------------------------------

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
import re
from typing import Optional


class ColumnKind(str, Enum):
    STRING = "String"
    DATE = "Date"
    DATETIME = "DateTime"
    INT8 = "Int8"
    INT16 = "Int16"
    INT32 = "Int32"
    INT64 = "Int64"
    UINT8 = "UInt8"
    UINT16 = "UInt16"
    UINT32 = "UInt32"
    UINT64 = "UInt64"
    FLOAT32 = "Float32"
    FLOAT64 = "Float64"
    DECIMAL = "Decimal"
    ARRAY = "Array"
    NULLABLE = "Nullable"
    LOW_CARDINALITY = "LowCardinality"
    UNKNOWN = "Unknown"


class SqlType(str, Enum):
    """바인딩 시 사용하는 SQL 타입 태그."""
    VARCHAR = "VARCHAR"
    DATE = "DATE"
    TIME = "TIME"
    INTEGER = "INTEGER"
    BIGINT = "BIGINT"
    FLOAT = "FLOAT"
    DOUBLE = "DOUBLE"
    DECIMAL = "DECIMAL"
    ARRAY = "ARRAY"
    OTHER = "OTHER"


# 기본값/값 바인딩 모두 32비트 정수로 다루는 폭 (UInt32는 경로마다 다르다)
SMALL_INT_KINDS = frozenset(
    {
        ColumnKind.INT8,
        ColumnKind.UINT8,
        ColumnKind.INT16,
        ColumnKind.UINT16,
        ColumnKind.INT32,
    }
)
LONG_INT_KINDS = frozenset({ColumnKind.INT64, ColumnKind.UINT64})
INT_KINDS = SMALL_INT_KINDS | LONG_INT_KINDS | {ColumnKind.UINT32}
FLOAT_KINDS = frozenset({ColumnKind.FLOAT32, ColumnKind.FLOAT64})
WRAPPER_KINDS = frozenset({ColumnKind.NULLABLE, ColumnKind.LOW_CARDINALITY})

_BASE_KINDS = {
    kind.value: kind
    for kind in (
        ColumnKind.STRING,
        ColumnKind.DATE,
        ColumnKind.DATETIME,
        *INT_KINDS,
        *FLOAT_KINDS,
    )
}

_WRAPPER_RE = re.compile(r"^(Nullable|LowCardinality|Array)\((.*)\)$", re.DOTALL)
_DECIMAL_RE = re.compile(r"^Decimal(?:32|64|128|256)?\(.*\)$")
_DATETIME_TZ_RE = re.compile(r"^DateTime\('[^']*'\)$")

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class ColumnType:
    """파싱된 ClickHouse 컬럼 타입."""
    kind: ColumnKind
    raw: str
    inner: Optional["ColumnType"] = None

    @property
    def is_wrapper(self) -> bool:
        return self.kind in WRAPPER_KINDS

    def unwrap(self) -> "ColumnType":
        """Nullable/LowCardinality 래퍼를 모두 벗긴 타입을 반환한다."""
        current = self
        while current.is_wrapper and current.inner is not None:
            current = current.inner
        return current

    @property
    def supported(self) -> bool:
        if self.kind is ColumnKind.UNKNOWN:
            return False
        if self.is_wrapper:
            return self.inner is not None and self.inner.supported
        return True

    def __str__(self) -> str:
        return self.raw


def parse_column_type(raw: str) -> ColumnType:
    """DESC 결과의 타입 문자열을 ColumnType으로 변환한다."""
    text = (raw or "").strip()
    base = _BASE_KINDS.get(text)
    if base is not None:
        return ColumnType(base, text)

    match = _WRAPPER_RE.match(text)
    if match:
        wrapper, inner_raw = match.group(1), match.group(2)
        inner = parse_column_type(inner_raw)
        return ColumnType(ColumnKind(wrapper), text, inner)

    if _DECIMAL_RE.match(text):
        return ColumnType(ColumnKind.DECIMAL, text)
    if _DATETIME_TZ_RE.match(text):
        return ColumnType(ColumnKind.DATETIME, text)
    return ColumnType(ColumnKind.UNKNOWN, text)


def support_or_not(data_type: str) -> bool:
    """현재 버전에서 적재 가능한 ClickHouse 타입인지 확인한다."""
    return parse_column_type(data_type).supported


def render_string_default(field_type: str) -> str:
    """String/Date/DateTime 컬럼의 기본값 문자열을 만든다."""
    kind = parse_column_type(field_type).kind
    if kind is ColumnKind.DATETIME:
        return datetime.now().strftime(DATETIME_FORMAT)
    if kind is ColumnKind.DATE:
        return datetime.now().strftime(DATE_FORMAT)
    if kind is ColumnKind.STRING:
        return ""
    raise ValueError(f"no string default for ClickHouse type {field_type}")
