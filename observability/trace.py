"""
Request Trace Model

Captures the lifecycle of one orchestrated request for observability.
Side-effect-only data structure - no business logic.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class RequestTrace:
    """
    Immutable trace of a single request.

    Captures:
    - Identity (request_id, plan_id)
    - Timing (started_at, finished_at, latency_ms)
    - Outcome (success, outcome, error)
    - Metadata (tokens, cost, step counts)
    """

    request_id: str
    success: bool
    outcome: str  # answered | executed | confirmation_required | failed
    started_at: datetime
    finished_at: datetime
    plan_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def latency_ms(self) -> int:
        delta = self.finished_at - self.started_at
        return int(delta.total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for logging/export."""
        return {
            "request_id": self.request_id,
            "plan_id": self.plan_id,
            "success": self.success,
            "outcome": self.outcome,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
            "latency_ms": self.latency_ms,
            "metadata": self.metadata,
            "error": self.error,
        }
