from typing import List, Dict, Any, Optional
from pydantic import BaseModel, Field


class ServiceRequest(BaseModel):
    """
    Internal request model for the orchestration layer.

    `context` is the page context the assistant was opened from
    (page name, selected items, available images, ...). `images` holds
    either fully-qualified URLs or base64 payloads awaiting upload.
    """
    query: str
    context: Dict[str, Any] = Field(default_factory=dict)
    conversation_history: List[Dict[str, str]] = Field(default_factory=list)
    images: List[str] = Field(default_factory=list)
    trace_id: Optional[str] = None


class OrchestrateRequest(BaseModel):
    """
    API request model for the /orchestrate endpoint.

    This is the external contract: clients send this.
    """
    query: str = Field(..., description="User's request in natural language")
    context: Dict[str, Any] = Field(default_factory=dict, description="Page context of the admin screen")
    conversation_history: List[Dict[str, str]] = Field(default_factory=list, description="Prior turns as {role, content}")
    images: List[str] = Field(default_factory=list, description="Attached image URLs or base64 payloads")

    def to_service_request(self, trace_id: Optional[str] = None) -> ServiceRequest:
        """Convert to internal ServiceRequest."""
        return ServiceRequest(
            query=self.query,
            context=self.context,
            conversation_history=self.conversation_history,
            images=self.images,
            trace_id=trace_id,
        )
