from datetime import datetime, timedelta

from cost.estimator import estimate_cost, estimate_image_cost
from cost.model_pricing import get_pricing
from observability.collector import TraceCollector
from observability.sink import MemoryTraceSink
from orchestration.state import OrchestratorResult
from schemas.result import ConfirmationRequest


def test_trace_captures_outcome_and_cost():
    sink = MemoryTraceSink()
    collector = TraceCollector(sink=sink, model="gpt-4o")
    started = datetime.now() - timedelta(milliseconds=250)

    collector.capture("req-1", OrchestratorResult(success=True, response="hi", total_tokens=1000), started)

    trace = sink.traces[0]
    assert trace.request_id == "req-1"
    assert trace.outcome == "answered"
    assert trace.metadata["tokens_used"] == 1000
    assert trace.metadata["estimated_cost_usd"] > 0
    assert trace.latency_ms >= 250
    assert trace.to_dict()["outcome"] == "answered"


def test_confirmation_outcome_records_action():
    sink = MemoryTraceSink()
    result = OrchestratorResult(
        success=True,
        response="confirm?",
        confirmation_required=ConfirmationRequest(action="delete_product", description="d", impact="i"),
    )

    TraceCollector(sink=sink).capture("req-2", result, datetime.now())

    assert sink.traces[0].outcome == "confirmation_required"
    assert sink.traces[0].metadata["confirmation_action"] == "delete_product"


def test_disabled_collector_emits_nothing():
    sink = MemoryTraceSink()
    collector = TraceCollector(sink=sink, enabled=False)
    collector.capture("req-3", OrchestratorResult(success=False, response="x"), datetime.now())
    assert sink.traces == []


def test_collector_never_raises():
    class BrokenSink(MemoryTraceSink):
        def emit(self, trace):
            raise IOError("disk full")

    TraceCollector(sink=BrokenSink()).capture("req-4", OrchestratorResult(success=True, response="x"), datetime.now())


def test_pricing_and_estimates():
    assert get_pricing("gpt-4o-mini-2024-07-18") == get_pricing("gpt-4o-mini")
    assert estimate_cost({"model": "gpt-4o", "tokens_used": 0}) == 0.0
    assert estimate_cost(None) == 0.0
    assert estimate_image_cost(12, 0.01) == 0.12
