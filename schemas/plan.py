from enum import Enum
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from schemas.references import ParamBinding, parse_binding
from schemas.result import StepResult

# --- Taxonomy ---

class AgentType(str, Enum):
    """
    Capability providers a step can be delegated to.
    """
    MANAGER = "manager"
    PRODUCT = "product"
    PHOTOGRAPHER = "photographer"
    MARKETER = "marketer"
    ANALYST = "analyst"
    VIDEO = "video"
    UI_CONTROLLER = "ui_controller"
    BULK_DEALS = "bulk_deals"


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

# --- Plan Schemas ---

class PlanStep(BaseModel):
    """
    A single unit of delegated work in the execution plan.

    Reference tokens inside `params` are parsed into bindings when the
    step is built; `params` itself keeps the planner's raw values.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Step identifier, unique within the plan")
    agent: AgentType = Field(..., description="Provider that handles this step")
    action: str = Field(..., description="Provider-specific operation name")
    params: Dict[str, Any] = Field(default_factory=dict, description="Literal values or reference tokens")
    depends_on: List[str] = Field(default_factory=list, alias="dependsOn", description="Step IDs that must settle first")
    status: StepStatus = StepStatus.PENDING
    result: Optional[StepResult] = None

    _bindings: Dict[str, ParamBinding] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._bindings = {key: parse_binding(value) for key, value in self.params.items()}

    @property
    def bindings(self) -> Dict[str, ParamBinding]:
        return self._bindings


class ExecutionPlan(BaseModel):
    """
    The complete plan produced for one user request.
    """
    plan_id: str = Field(default_factory=lambda: f"plan_{uuid.uuid4().hex[:12]}", description="Unique ID for this plan")
    request: str = Field("", description="Original request text, kept for audit and synthesis")
    steps: List[PlanStep] = Field(default_factory=list, description="Steps in planner order")
    status: StepStatus = StepStatus.PENDING
    started_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _unique_step_ids(self) -> "ExecutionPlan":
        seen = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"Duplicate step id in plan: {step.id}")
            seen.add(step.id)
        return self

    @classmethod
    def from_descriptors(cls, request: str, descriptors: List[Dict[str, Any]]) -> "ExecutionPlan":
        """
        Build a plan from raw planner step descriptors.

        Missing ids default to `step_<n>` (1-based position).
        """
        steps = []
        for index, raw in enumerate(descriptors):
            steps.append(PlanStep(
                id=raw.get("id") or f"step_{index + 1}",
                agent=raw["agent"],
                action=raw["action"],
                params=raw.get("params") or {},
                depends_on=raw.get("dependsOn", raw.get("depends_on")) or [],
            ))
        return cls(request=request, steps=steps)

    def get_step(self, step_id: str) -> Optional[PlanStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None
