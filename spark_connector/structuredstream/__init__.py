from .execution import StructuredStreamingExecution
from .stream_writer import SinkStreamWriter

__all__ = [
    "SinkStreamWriter",
    "StructuredStreamingExecution",
]
