"""
Trace Collector

Builds request traces from orchestrator results and forwards them to
the configured sink.

DESIGN RULES:
- Never throw exceptions
- Configurable enable/disable
"""

import logging
from datetime import datetime
from typing import Optional

from cost.estimator import estimate_cost
from observability.sink import ConsoleTraceSink, JsonTraceSink, TraceSink
from observability.trace import RequestTrace
from orchestration.state import OrchestratorResult
from schemas.plan import StepStatus

logger = logging.getLogger(__name__)


def default_sink() -> TraceSink:
    from app.core.config import settings

    if settings.trace_format == "json":
        return JsonTraceSink()
    return ConsoleTraceSink(verbose=True)


def _outcome(result: OrchestratorResult) -> str:
    if not result.success:
        return "failed"
    if result.confirmation_required:
        return "confirmation_required"
    if result.tasks:
        return "executed"
    return "answered"


class TraceCollector:
    """
    Coordinates trace lifecycle.
    """

    def __init__(
        self,
        sink: Optional[TraceSink] = None,
        enabled: bool = True,
        model: Optional[str] = None,
    ):
        """
        Args:
            sink: TraceSink to emit traces to. Defaults per settings.trace_format.
            enabled: Whether tracing is enabled. Can be toggled at runtime.
            model: Model name used for the token cost estimate
        """
        self._sink = sink or default_sink()
        self._enabled = enabled
        self._model = model

    @property
    def enabled(self) -> bool:
        return self._enabled

    @enabled.setter
    def enabled(self, value: bool) -> None:
        self._enabled = value

    def capture(
        self,
        request_id: str,
        result: OrchestratorResult,
        started_at: datetime,
    ) -> None:
        """
        Capture and emit a trace for a finished request.

        Note: This method NEVER throws. Failures are logged and ignored.
        """
        if not self._enabled:
            return

        try:
            completed = sum(1 for task in result.tasks if task.status == StepStatus.COMPLETED)
            metadata = {
                "model": self._model or "unknown",
                "tokens_used": result.total_tokens,
                "steps_total": len(result.tasks),
                "steps_completed": completed,
                "steps_failed": len(result.tasks) - completed,
                "progress_events": len(result.steps),
                "ui_commands": len(result.ui_commands),
            }
            metadata["estimated_cost_usd"] = estimate_cost(metadata)
            if result.confirmation_required:
                metadata["confirmation_action"] = result.confirmation_required.action

            trace = RequestTrace(
                request_id=request_id,
                success=result.success,
                outcome=_outcome(result),
                started_at=started_at,
                finished_at=datetime.now(),
                plan_id=result.plan_id,
                metadata=metadata,
                error=result.error,
            )

            self._sink.emit(trace)

        except Exception as e:
            logger.warning(f"Failed to capture trace: {e}")
