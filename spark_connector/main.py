# 파일명 : spark_connector/main.py
# 목적   : spark-submit 진입점 (입력 데이터셋 -> ClickHouse 배치 적재)

from __future__ import annotations

import os
from typing import Mapping

from pyspark.sql import DataFrame, SparkSession

from common.get_env import get_env_str
from common.logger import get_logger

from .clickhouse.settings import load_sink_config
from .clickhouse.sink import ClickHouseSink
from .plugin import SparkEnvironment
from .spark import build_batch_spark

logger = get_logger("spark_connector.main")


def _mask_config_value(key: str, value: object) -> object:
    """민감 정보는 마스킹한다."""
    if any(token in key.upper() for token in ("PASSWORD", "SECRET", "TOKEN")):
        return "***"
    return value


def _read_input(spark: SparkSession, env: Mapping[str, str]) -> DataFrame:
    """입력 데이터셋을 읽는다."""
    path = get_env_str(env, "SPARK_SINK_INPUT_PATH")
    if not path:
        raise ValueError("SPARK_SINK_INPUT_PATH is required")
    input_format = get_env_str(env, "SPARK_SINK_INPUT_FORMAT", "parquet") or "parquet"
    reader = spark.read.format(input_format)
    if input_format == "csv":
        reader = reader.option("header", "true").option("inferSchema", "true")
    return reader.load(path)


def run_clickhouse_sink() -> None:
    """ClickHouse 싱크 배치 작업을 실행한다."""
    env = os.environ
    config = load_sink_config(env)
    for key in sorted(config):
        logger.info("[config] %s=%s", key, _mask_config_value(key, config[key]))

    sink = ClickHouseSink(config)
    sink.check_config().raise_for_error()

    spark = build_batch_spark()
    try:
        spark_env = SparkEnvironment(spark=spark)
        sink.prepare(spark_env)
        sink.output(_read_input(spark, env), spark_env)
    finally:
        logger.info("SparkSession 종료.")
        spark.stop()


if __name__ == "__main__":
    run_clickhouse_sink()
