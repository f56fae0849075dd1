from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from schemas.plan import AgentType, StepStatus
from schemas.progress import ProgressEvent, UICommand
from schemas.result import ConfirmationRequest


class TaskRecord(BaseModel):
    """
    Permanent per-step outcome, appended whether the step succeeded or not.
    """
    id: str
    agent: AgentType
    action: str
    status: StepStatus
    input: Dict[str, Any] = Field(default_factory=dict, description="Parameters as the planner wrote them")
    resolved_input: Dict[str, Any] = Field(default_factory=dict, description="Parameters the provider received")
    output: Optional[Any] = None
    error: Optional[str] = None
    tokens_used: int = 0
    unresolved_references: List[str] = Field(default_factory=list)
    started_at: datetime
    completed_at: datetime

    @property
    def duration_ms(self) -> float:
        return (self.completed_at - self.started_at).total_seconds() * 1000


class PlanExecutionResult(BaseModel):
    """
    Final output of one plan run.
    """
    plan_id: str
    tasks: List[TaskRecord] = Field(default_factory=list)
    tokens_used: int = 0
    ui_commands: List[UICommand] = Field(default_factory=list)

    @property
    def completed_count(self) -> int:
        return sum(1 for task in self.tasks if task.status == StepStatus.COMPLETED)

    @property
    def failed_count(self) -> int:
        return sum(1 for task in self.tasks if task.status == StepStatus.FAILED)


class OrchestratorResult(BaseModel):
    """
    Everything the hosting layer needs to answer one request.
    """
    success: bool
    response: str
    tasks: List[TaskRecord] = Field(default_factory=list)
    total_tokens: int = 0
    execution_time_ms: int = 0
    confirmation_required: Optional[ConfirmationRequest] = None
    steps: List[ProgressEvent] = Field(default_factory=list)
    ui_commands: List[UICommand] = Field(default_factory=list)
    plan_id: Optional[str] = None
    error: Optional[str] = None
