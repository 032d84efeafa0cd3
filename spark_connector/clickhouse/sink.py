# -----------------------------------------------------------------------------
# file: spark_connector/clickhouse/sink.py
# purpose: ClickHouse batch sink plugin (check_config -> prepare -> output)
# -----------------------------------------------------------------------------

from __future__ import annotations

from functools import partial
import time
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from pyspark.sql import DataFrame

from common.logger import get_logger

from .. import batch_log
from ..config_utils import check_all_exists, get_config_int, get_config_list, with_fallback
from ..errors import SchemaMismatchError, UnsupportedTypeError
from ..plugin import BaseSparkSink, CheckResult, SparkEnvironment
from .settings import (
    DEFAULT_BULK_SIZE,
    REQUIRED_KEYS,
    SINK_DEFAULTS,
    ConnectionSettings,
    RetryPolicy,
)
from .statement import ClickHouseConnection, PreparedInsert, connect
from .types import ColumnType, parse_column_type
from .writer import Connector, WriterConfig, write_partition

logger = get_logger("spark_connector.clickhouse.sink")


class ClickHouseSink(BaseSparkSink):
    """Spark 데이터프레임을 ClickHouse 테이블에 배치로 적재한다."""

    def __init__(
        self,
        config: Mapping[str, Any] | None = None,
        connect: Connector = connect,
    ):
        super().__init__(config)
        self._connect = connect
        self.table: Optional[str] = None
        self.table_schema: Dict[str, ColumnType] = {}
        self.fields: Optional[Tuple[str, ...]] = None
        self.connection_settings: Optional[ConnectionSettings] = None
        self.prepared: Optional[PreparedInsert] = None
        self.retry_policy = RetryPolicy()
        self.bulk_size = DEFAULT_BULK_SIZE

    def check_config(self) -> CheckResult:
        """필수 설정과 대상 테이블 스키마를 검사한다."""
        result = check_all_exists(self.config, *REQUIRED_KEYS)
        if not result.success:
            logger.error("clickhouse sink config invalid: %s", result.msg)
            return result

        self.connection_settings = ConnectionSettings.from_config(self.config)
        self.table = str(self.config["table"])
        conn = self._connect(self.connection_settings)
        try:
            self.table_schema = self._get_clickhouse_schema(conn, self.table)
        finally:
            conn.close()

        fields = get_config_list(self.config, "fields")
        if fields is not None:
            self.fields = tuple(fields)
            result = self._accepted_clickhouse_schema(self.fields)
            if not result.success:
                logger.error("clickhouse sink schema check failed: %s", result.msg)
        return result

    def prepare(self, env: SparkEnvironment) -> None:
        """기본 설정을 병합하고 재시도 정책과 INSERT 템플릿을 준비한다."""
        self.config = with_fallback(self.config, SINK_DEFAULTS)
        self.retry_policy = RetryPolicy.from_config(self.config)
        bulk_size = get_config_int(self.config, "bulk_size", DEFAULT_BULK_SIZE)
        if bulk_size is None or bulk_size <= 0:
            raise ValueError(f"bulk_size must be positive (got: {bulk_size})")
        self.bulk_size = bulk_size
        if self.fields is not None and self.table is not None:
            self.prepared = PreparedInsert(self.table, self.fields)
            logger.info("prepared insert: %s", self.prepared.sql)

    def output(self, df: DataFrame, env: SparkEnvironment) -> None:
        """파티션마다 커넥션을 열어 데이터프레임을 적재한다."""
        if self.table is None or self.connection_settings is None:
            raise RuntimeError("check_config() must succeed before output()")
        input_fields = tuple(df.columns)
        prepared = self.prepared
        if self.fields is None:
            prepared = PreparedInsert(self.table, input_fields)
            logger.info("prepared insert (inferred fields): %s", prepared.sql)
        elif prepared is None:
            prepared = PreparedInsert(self.table, self.fields)

        writer_config = WriterConfig(
            connection=self.connection_settings,
            prepared=prepared,
            column_types=self._resolve_column_types(prepared.fields),
            input_fields=input_fields,
            bulk_size=self.bulk_size,
            retry_policy=self.retry_policy,
        )
        start_time = time.perf_counter()
        df.foreachPartition(partial(write_partition, writer_config=writer_config, connect=self._connect))
        elapsed = time.perf_counter() - start_time
        batch_log.append_batch_log(f"[clickhouse sink] table={self.table} duration={elapsed:.3f}s")

    def _get_clickhouse_schema(self, conn: ClickHouseConnection, table: str) -> Dict[str, ColumnType]:
        """DESC 결과로 컬럼명 -> 타입 매핑을 만든다."""
        schema = {name: parse_column_type(type_name) for name, type_name in conn.describe_table(table)}
        logger.info("fetched schema table=%s columns=%s", table, len(schema))
        return schema

    def _accepted_clickhouse_schema(self, fields: Sequence[str]) -> CheckResult:
        """설정된 필드가 테이블에 있고 지원되는 타입인지 검사한다."""
        non_exists = [field for field in fields if field not in self.table_schema]
        if non_exists:
            return CheckResult.fail(SchemaMismatchError(non_exists, self.table or ""))
        non_supported = [
            self.table_schema[field].raw
            for field in fields
            if not self.table_schema[field].supported
        ]
        if non_supported:
            return CheckResult.fail(UnsupportedTypeError(non_supported))
        return CheckResult.ok()

    def _resolve_column_types(self, fields: Sequence[str]) -> Tuple[ColumnType, ...]:
        """필드 순서대로 컬럼 타입을 정렬한다."""
        non_exists = [field for field in fields if field not in self.table_schema]
        if non_exists:
            raise SchemaMismatchError(non_exists, self.table or "")
        return tuple(self.table_schema[field] for field in fields)
