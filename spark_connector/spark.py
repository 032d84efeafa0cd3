from __future__ import annotations

import os
from typing import Sequence

from pyspark import SparkContext
from pyspark.sql import SparkSession

from common.get_env import get_env_bool, get_env_int, get_env_list, get_env_str


def _reset_stopped_spark_context() -> None:
    """중단된 SparkContext 참조를 정리한다."""
    active_sc = getattr(SparkContext, "_active_spark_context", None)
    if not active_sc:
        return
    jsc = getattr(active_sc, "_jsc", None)
    if jsc is None:
        return
    try:
        if jsc.sc().isStopped():
            SparkContext._active_spark_context = None
            if hasattr(SparkSession, "_instantiatedSession"):
                SparkSession._instantiatedSession = None
            if hasattr(SparkSession, "_activeSession"):
                SparkSession._activeSession = None
    except Exception:
        return


def _build_spark_session(
    *,
    app_name: str,
    master: str | None,
    packages: Sequence[str],
    ui_port: str,
    event_log_dir: str | None,
    shuffle_partitions: int | None,
    driver_memory: str | None,
    executor_memory: str | None,
) -> SparkSession:
    """SparkSession을 생성한다."""
    _reset_stopped_spark_context()
    builder = SparkSession.builder.appName(app_name)
    if master:
        builder = builder.master(master)
    if packages:
        builder = builder.config("spark.jars.packages", ",".join(packages))

    builder = builder.config("spark.ui.port", ui_port)
    if shuffle_partitions is not None:
        builder = builder.config("spark.sql.shuffle.partitions", str(shuffle_partitions))
    if driver_memory:
        builder = builder.config("spark.driver.memory", driver_memory)
    if executor_memory:
        builder = builder.config("spark.executor.memory", executor_memory)

    if event_log_dir:
        builder = builder.config("spark.eventLog.enabled", "true")
        builder = builder.config("spark.eventLog.dir", event_log_dir)

    return builder.getOrCreate()


def build_batch_spark(
    *,
    app_name: str = "ClickHouse_Sink_Batch",
    master: str | None = None,
) -> SparkSession:
    """배치용 SparkSession을 생성한다."""
    env = os.environ
    event_log_dir = None
    if get_env_bool(env, "SPARK_BATCH_EVENT_LOG_ENABLED", False):
        event_log_dir = get_env_str(env, "SPARK_BATCH_EVENT_LOG_DIR")
    resolved_master = master or get_env_str(env, "SPARK_BATCH_MASTER") or "local[*]"
    return _build_spark_session(
        app_name=app_name,
        master=resolved_master,
        packages=get_env_list(env, "SPARK_JARS_PACKAGES"),
        ui_port="4041",
        event_log_dir=event_log_dir,
        shuffle_partitions=get_env_int(env, "SPARK_BATCH_SHUFFLE_PARTITIONS") or 8,
        driver_memory=get_env_str(env, "SPARK_BATCH_DRIVER_MEMORY"),
        executor_memory=get_env_str(env, "SPARK_BATCH_EXECUTOR_MEMORY"),
    )

