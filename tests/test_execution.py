from unittest.mock import MagicMock

from spark_connector.plugin import BaseSparkSink, BaseSparkSource, BaseSparkTransform, SparkEnvironment
from spark_connector.structuredstream import StructuredStreamingExecution


class _Source(BaseSparkSource):
    def __init__(self, df):
        super().__init__()
        self.df = df

    def get_data(self, env):
        return self.df


class _Upper(BaseSparkTransform):
    def process(self, df, env):
        return df.transformed


class _Sink(BaseSparkSink):
    def __init__(self):
        super().__init__()
        self.outputs = []

    def output(self, df, env):
        self.outputs.append(df)


def _env():
    return SparkEnvironment(spark=MagicMock(name="spark"))


def test_check_config_and_config_round_trip():
    execution = StructuredStreamingExecution(_env())
    execution.set_config({"checkpoint_location": "/tmp/cp"})
    assert execution.get_config() == {"checkpoint_location": "/tmp/cp"}
    assert execution.check_config().success
    execution.prepare(None)


def test_start_without_sources_starts_nothing():
    assert StructuredStreamingExecution(_env()).start([], [], [_Sink()]) == []


def test_start_wires_sinks_into_foreach_batch():
    df = MagicMock(name="df")
    stream = df.transformed
    writer = stream.writeStream.outputMode.return_value
    writer = writer.foreachBatch.return_value.option.return_value
    writer.queryName.return_value.start.return_value = "query"

    execution = StructuredStreamingExecution(_env())
    execution.set_config({"checkpoint_location": "/tmp/cp", "skip_empty": False})
    sink = _Sink()

    queries = execution.start([_Source(df)], [_Upper()], [sink])

    assert queries == ["query"]
    stream.writeStream.outputMode.assert_called_once_with("append")
    foreach_batch = stream.writeStream.outputMode.return_value.foreachBatch
    foreach_batch.return_value.option.assert_called_once_with("checkpointLocation", "/tmp/cp/_sink_0")
    writer.queryName.assert_called_once_with("_sink_0")

    batch_fn = foreach_batch.call_args.args[0]
    batch_df = MagicMock(name="batch_df")
    batch_fn(batch_df, 0)
    assert sink.outputs == [batch_df]
