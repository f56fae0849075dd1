from typing import Any, Optional
from pydantic import BaseModel, Field


# --- Provider Result Schema ---

class StepResult(BaseModel):
    """
    Uniform outcome of dispatching one step to a provider.

    `data` is what later steps address through `$step:` references.
    """
    success: bool
    message: str = ""
    data: Optional[Any] = None
    error: Optional[str] = None
    tokens_used: int = Field(default=0, ge=0, description="Additive cost accounting")

    @classmethod
    def ok(cls, message: str, data: Any = None, tokens_used: int = 0) -> "StepResult":
        return cls(success=True, message=message, data=data, tokens_used=tokens_used)

    @classmethod
    def fail(cls, error: str, message: str = "Failed to execute action") -> "StepResult":
        return cls(success=False, message=message, error=error)


# --- Confirmation Schema ---

class ConfirmationRequest(BaseModel):
    """
    Returned instead of executing a plan that needs explicit approval.
    """
    action: str = Field(..., description="Action that tripped the gate")
    description: str = Field(..., description="Human-readable description of the step")
    impact: str = Field(..., description="What happens if the user approves")
    requires_confirmation: bool = True
    affected_items: Optional[int] = Field(default=None, description="Number of items touched, when derivable")
    estimated_cost: Optional[float] = Field(default=None, description="Estimated cost in USD for cost-gated steps")
