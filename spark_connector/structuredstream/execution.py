from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Sequence

from pyspark.sql.streaming import StreamingQuery

from common.logger import get_logger

from ..plugin import (
    BaseSparkSink,
    BaseSparkSource,
    BaseSparkTransform,
    CheckResult,
    SparkEnvironment,
)
from .stream_writer import SinkStreamWriter

logger = get_logger("spark_connector.structuredstream.execution")

DEFAULT_CHECKPOINT_LOCATION = "/tmp/spark_connector/checkpoints"


class StructuredStreamingExecution:
    """Structured Streaming 실행기. source -> transform -> sink 를 연결한다."""

    def __init__(self, spark_environment: SparkEnvironment):
        self._spark_environment = spark_environment
        self._config: Dict[str, Any] = {}

    def set_config(self, config: Mapping[str, Any]) -> None:
        self._config = dict(config)

    def get_config(self) -> Dict[str, Any]:
        return self._config

    def check_config(self) -> CheckResult:
        return CheckResult.ok()

    def prepare(self, prepare_env: Any = None) -> None:
        pass

    def start(
        self,
        sources: Sequence[BaseSparkSource],
        transforms: Sequence[BaseSparkTransform],
        sinks: Sequence[BaseSparkSink],
    ) -> List[StreamingQuery]:
        """첫 번째 source 스트림에 transform을 적용하고 각 sink로 내보낸다."""
        if not sources:
            logger.warning("no streaming source configured; nothing to start")
            return []
        env = self._spark_environment
        df = sources[0].get_data(env)
        for transform in transforms:
            df = transform.process(df, env)

        checkpoint_root = str(self._config.get("checkpoint_location") or DEFAULT_CHECKPOINT_LOCATION)
        trigger = self._config.get("trigger_processing_time")
        writer = SinkStreamWriter(env)
        queries = []
        for idx, sink in enumerate(sinks):
            query_name = f"{type(sink).__name__.lower()}_{idx}"
            queries.append(
                writer.write_stream(
                    df,
                    sink,
                    os.path.join(checkpoint_root, query_name),
                    query_name=query_name,
                    skip_empty=bool(self._config.get("skip_empty", True)),
                    trigger_processing_time=trigger,
                )
            )
            logger.info("streaming query started name=%s", query_name)
        return queries
