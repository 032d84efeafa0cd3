# -----------------------------------------------------------------------------
# file: spark_connector/structuredstream/stream_writer.py
# purpose: drive a batch sink plugin from Structured Streaming foreachBatch
# -----------------------------------------------------------------------------

from __future__ import annotations

import time

from pyspark.sql import DataFrame
from pyspark.sql.streaming import StreamingQuery

from ..batch_log import append_batch_log
from ..plugin import BaseSparkSink, SparkEnvironment


class SinkStreamWriter:
    def __init__(self, env: SparkEnvironment):
        self._env = env

    def write_stream(
        self,
        df: DataFrame,
        sink: BaseSparkSink,
        checkpoint_dir: str,
        *,
        output_mode: str = "append",
        query_name: str | None = None,
        skip_empty: bool = False,
        trigger_processing_time: str | None = None,
    ) -> StreamingQuery:
        """마이크로 배치마다 싱크의 output을 호출한다."""
        sink_name = type(sink).__name__

        def _foreach(batch_df: DataFrame, batch_id: int) -> None:
            """배치별 싱크 호출과 타이밍 로그를 처리한다."""
            start_time = time.perf_counter()
            if skip_empty and batch_df.rdd.isEmpty():
                elapsed = time.perf_counter() - start_time
                append_batch_log(
                    "[spark batch] "
                    f"sink={sink_name} batch_id={batch_id} empty=true duration={elapsed:.3f}s"
                )
                return
            sink.output(batch_df, self._env)
            elapsed = time.perf_counter() - start_time
            append_batch_log(
                "[spark batch] "
                f"sink={sink_name} batch_id={batch_id} duration={elapsed:.3f}s"
            )

        writer = (
            df.writeStream
            .outputMode(output_mode)
            .foreachBatch(_foreach)
            .option("checkpointLocation", checkpoint_dir)
        )
        if trigger_processing_time:
            writer = writer.trigger(processingTime=trigger_processing_time)
        if query_name:
            writer = writer.queryName(query_name)
        return writer.start()
