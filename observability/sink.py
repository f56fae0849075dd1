"""
Trace Sink Interface

Abstract sink for trace output.
Storage-agnostic - implementations can write to console, file, cloud, etc.

DESIGN RULES:
- Side-effect only
- Never throw exceptions
"""

import json
from abc import ABC, abstractmethod
from typing import List

from observability.trace import RequestTrace


class TraceSink(ABC):
    """
    Abstract base for trace output destinations.
    """

    @abstractmethod
    def emit(self, trace: RequestTrace) -> None:
        """
        Emit a trace to the sink.

        Must not throw - failures should be logged and ignored.
        """
        pass


class ConsoleTraceSink(TraceSink):
    """
    Default sink that prints a human-readable trace block.
    """

    def __init__(self, verbose: bool = True):
        self._verbose = verbose

    def emit(self, trace: RequestTrace) -> None:
        try:
            status = "✓" if trace.success else "✗"

            print(f"\n{'='*60}")
            print(f"[TRACE] {status} {trace.request_id[:8]}... ({trace.outcome})")
            print(f"{'='*60}")
            print(f"  Plan:     {trace.plan_id or '-'}")
            print(f"  Latency:  {trace.latency_ms}ms")
            print(f"  Started:  {trace.started_at.strftime('%H:%M:%S.%f')[:-3]}")

            if trace.error:
                print(f"  Error:    {trace.error}")

            if self._verbose and trace.metadata:
                print(f"\n  Metadata:")
                for key, value in trace.metadata.items():
                    str_val = str(value)
                    if len(str_val) > 60:
                        str_val = str_val[:57] + "..."
                    print(f"    {key}: {str_val}")

            print(f"{'='*60}\n")

        except Exception as e:
            print(f"[TRACE ERROR] Failed to emit trace: {e}")


class JsonTraceSink(TraceSink):
    """
    Sink that outputs traces as JSON lines, for log aggregation.
    """

    def emit(self, trace: RequestTrace) -> None:
        try:
            print(json.dumps(trace.to_dict(), default=str))
        except Exception as e:
            print(f"[TRACE ERROR] Failed to emit JSON trace: {e}")


class MemoryTraceSink(TraceSink):
    """
    Keeps traces in a list; used by tests and local debugging.
    """

    def __init__(self):
        self.traces: List[RequestTrace] = []

    def emit(self, trace: RequestTrace) -> None:
        self.traces.append(trace)
