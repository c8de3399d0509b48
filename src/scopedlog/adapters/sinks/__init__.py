"""Sink adapters implementing LogSinkPort."""

from scopedlog.adapters.sinks.in_memory import InMemorySink, RingBufferSink
from scopedlog.adapters.sinks.sqlite import SQLiteSink

__all__ = [
    "InMemorySink",
    "RingBufferSink",
    "SQLiteSink",
]
