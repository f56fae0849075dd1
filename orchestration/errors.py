"""
Orchestration Errors

Only plan-wide conditions are raised. Step-level problems are recorded
on the task list instead (see PlanExecutor).
"""

from typing import List, Sequence


class OrchestrationError(Exception):
    """Base class for orchestration failures."""


class PlanDependencyError(OrchestrationError):
    """
    The plan cannot be ordered: a cycle, or a dependency on a step id
    that does not exist. Raised before any step is dispatched.
    """

    def __init__(self, pending_step_ids: Sequence[str], missing_dependencies: Sequence[str] = ()):
        self.pending_step_ids: List[str] = list(pending_step_ids)
        self.missing_dependencies: List[str] = list(missing_dependencies)
        if self.missing_dependencies:
            reason = f"unknown step ids {self.missing_dependencies}"
        else:
            reason = "circular dependency"
        super().__init__(
            f"Unable to resolve step dependencies ({reason}); stuck steps: {self.pending_step_ids}"
        )


class UnknownAgentError(OrchestrationError):
    """No provider is registered for the requested agent."""

    def __init__(self, agent: str):
        self.agent = agent
        super().__init__(f"No provider registered for agent: {agent}")
