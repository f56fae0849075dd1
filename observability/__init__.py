# Observability Package
from observability.trace import RequestTrace
from observability.sink import TraceSink, ConsoleTraceSink, JsonTraceSink, MemoryTraceSink
from observability.collector import TraceCollector

__all__ = ["RequestTrace", "TraceSink", "ConsoleTraceSink", "JsonTraceSink", "MemoryTraceSink", "TraceCollector"]
