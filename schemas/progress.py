from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field


class ProgressEventType(str, Enum):
    PLANNING = "planning"
    EXECUTING = "executing"
    SYNTHESIZING = "synthesizing"
    COMPLETE = "complete"


class UICommand(BaseModel):
    """
    Opaque command relayed to the client (navigate, notify, open a modal...).

    Only `type` is known to the core; providers attach whatever else the
    client needs.
    """
    model_config = ConfigDict(extra="allow")

    type: str
    action: Optional[str] = None
    path: Optional[str] = None
    message: Optional[str] = None
    variant: Optional[str] = None
    params: Optional[Dict[str, Any]] = None


class BulkItemProgress(BaseModel):
    id: str
    name: str
    status: Literal["pending", "updating", "done", "failed"]
    error: Optional[str] = None


class BulkProgressUpdate(BaseModel):
    """
    Sub-progress reported by providers running bulk actions.
    """
    type: Literal["bulk_progress"] = "bulk_progress"
    operation_id: str
    operation_label: str
    current: int
    total: int
    item: BulkItemProgress
    completed_items: List[BulkItemProgress] = Field(default_factory=list)

    def status_marker(self) -> str:
        if self.item.status == "done":
            return "✓"
        if self.item.status == "failed":
            return "✗"
        return "⟳"


class ProgressEvent(BaseModel):
    """
    One entry in the progress stream.

    Events carry agent, action and step index so a consumer can attribute
    them without relying on arrival order across concurrent steps.
    """
    type: ProgressEventType
    message: str
    step: Optional[int] = Field(default=None, description="1-based index of the step within the plan run")
    total_steps: Optional[int] = None
    step_id: Optional[str] = None
    agent_name: Optional[str] = None
    action: Optional[str] = None
    data: Optional[Any] = None
    bulk_progress: Optional[BulkProgressUpdate] = None
    ui_command: Optional[UICommand] = None
