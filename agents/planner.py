"""
Planner

Turns a merchant's request into an ExecutionPlan, and afterwards turns
the executed task list into a short answer.

The core only depends on the `Planner` contract; `PlannerAgent` is the
LLM-backed implementation (LangChain via llm.langchain_adapter).

DESIGN RULES:
- Planner runs once per request and never executes steps
- A planner failure degrades to "no plan" with an apology, never raises
"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import yaml
from pydantic import BaseModel, Field, ValidationError

from app.core.config import settings
from orchestration.state import TaskRecord
from schemas.plan import ExecutionPlan
from schemas.request import ServiceRequest

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE = "I understand your request. How can I help you further?"
PLANNING_FAILED_RESPONSE = (
    "I apologize, but I had trouble understanding that request. Could you please rephrase it?"
)
SYNTHESIS_FAILED_RESPONSE = "Tasks completed. Please check the results."


class PlannerDecision(BaseModel):
    """
    Planner output: a conversational response, and a plan when work is needed.
    """
    response: str = Field(..., description="Conversational reply for the merchant")
    plan: Optional[ExecutionPlan] = Field(default=None, description="None when no steps are needed")
    tokens_used: int = 0

    @property
    def needs_execution(self) -> bool:
        return self.plan is not None and len(self.plan.steps) > 0


class SynthesisResult(BaseModel):
    response: str
    tokens_used: int = 0


class Planner(ABC):
    """
    Contract the orchestrator relies on.
    """

    @abstractmethod
    async def plan(self, request: ServiceRequest, image_urls: Optional[Sequence[str]] = None) -> PlannerDecision:
        pass

    @abstractmethod
    async def synthesize(self, request: ServiceRequest, tasks: List[TaskRecord]) -> SynthesisResult:
        pass


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse model output that should be one JSON object.

    Tries the whole text first, then the first balanced {...} block
    (models sometimes wrap JSON in prose or emit several objects).
    """
    try:
        parsed = json.loads(text.strip())
        return parsed if isinstance(parsed, dict) else None
    except json.JSONDecodeError:
        pass

    depth = 0
    start = -1
    for index, char in enumerate(text):
        if char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0 and start != -1:
                try:
                    parsed = json.loads(text[start:index + 1])
                except json.JSONDecodeError:
                    return None
                return parsed if isinstance(parsed, dict) else None
    return None


def decision_from_output(request: str, text: str, tokens_used: int = 0) -> PlannerDecision:
    """
    Build a PlannerDecision from raw planner text.

    Non-JSON output becomes a plain response with no plan.
    """
    parsed = extract_json_object(text)
    if parsed is None:
        return PlannerDecision(response=text.strip() or DEFAULT_RESPONSE, tokens_used=tokens_used)

    response = parsed.get("response")
    if not isinstance(response, str) or not response.strip():
        logger.warning("Planner returned empty response, using default")
        response = DEFAULT_RESPONSE

    raw_plan = parsed.get("plan") or {}
    descriptors = raw_plan.get("steps") if isinstance(raw_plan, dict) else None
    if not descriptors:
        return PlannerDecision(response=response, tokens_used=tokens_used)

    try:
        plan = ExecutionPlan.from_descriptors(request, descriptors)
    except (ValidationError, KeyError, TypeError, AttributeError) as e:
        logger.warning(f"Planner produced an invalid plan: {e}")
        return PlannerDecision(response=PLANNING_FAILED_RESPONSE, tokens_used=tokens_used)

    return PlannerDecision(response=response, plan=plan, tokens_used=tokens_used)


def describe_context(context: Dict[str, Any]) -> str:
    """Render page context as prompt lines."""
    if not context:
        return "No page context."

    lines = []
    if context.get("pageName"):
        lines.append(f"Current page: {context['pageName']} ({context.get('pageType', 'unknown')})")
    if context.get("selectedItems"):
        lines.append(f"Selected items: {', '.join(map(str, context['selectedItems']))}")
    if context.get("filters"):
        lines.append(f"Active filters: {json.dumps(context['filters'])}")
    if context.get("capabilities"):
        lines.append(f"Page capabilities: {', '.join(context['capabilities'])}")
    if context.get("availableImages"):
        lines.append(f"Images available on page: {len(context['availableImages'])}")
    if context.get("contextData"):
        lines.append(f"Context data: {json.dumps(context['contextData'], default=str)}")
    return "\n".join(lines) or "No page context."


class PlannerAgent(Planner):
    """
    The Architect.

    Asks the LLM for {"response": ..., "plan": {"steps": [...]} | null}
    and converts it into a PlannerDecision.
    """

    def __init__(self, prompts_path: Optional[str] = None):
        self._prompts_path = prompts_path or f"{settings.prompts_dir}/agents.yaml"
        self._prompts = self._load_prompts()

    def _load_prompts(self) -> Dict[str, Any]:
        with open(self._prompts_path, "r") as f:
            return yaml.safe_load(f) or {}

    def _system_prompt(self, name: str) -> str:
        return self._prompts.get(name, {}).get("system", "")

    async def plan(self, request: ServiceRequest, image_urls: Optional[Sequence[str]] = None) -> PlannerDecision:
        """
        Analyze the request and return a decision.

        Args:
            request: The user request, page context and history
            image_urls: Canonical image URLs attached to the request

        Returns:
            PlannerDecision (plan is None for conversational answers)
        """
        from llm.langchain_adapter import agenerate

        prompt = (
            f"Page context:\n{describe_context(request.context)}\n\n"
            f"Attached images: {len(image_urls or [])}\n\n"
            f"Request: {request.query}"
        )

        try:
            text, metadata = await agenerate(
                prompt,
                system_prompt=self._system_prompt("planner"),
                history=request.conversation_history,
                image_urls=image_urls,
                max_tokens=2000,
            )
        except Exception as e:
            logger.error(f"Planner LLM call failed: {e}")
            return PlannerDecision(response=PLANNING_FAILED_RESPONSE)

        logger.debug(f"Planner raw response: {text}")
        return decision_from_output(request.query, text, metadata.get("tokens_used", 0))

    async def synthesize(self, request: ServiceRequest, tasks: List[TaskRecord]) -> SynthesisResult:
        """
        Summarize executed tasks for the merchant.

        Returns an empty response when nothing ran, so the caller can fall
        back to the planner's own response.
        """
        if not tasks:
            return SynthesisResult(response="")

        from llm.langchain_adapter import agenerate

        summaries = [
            {
                "agent": task.agent.value,
                "action": task.action,
                "status": task.status.value,
                "result": task.output,
                "error": task.error,
            }
            for task in tasks
        ]
        prompt = (
            f"Original request: {request.query}\n\n"
            f"Task results:\n{json.dumps(summaries, indent=2, default=str)}"
        )

        try:
            text, metadata = await agenerate(
                prompt,
                system_prompt=self._system_prompt("synthesizer"),
                max_tokens=500,
            )
        except Exception as e:
            logger.error(f"Synthesis failed: {e}")
            return SynthesisResult(response=SYNTHESIS_FAILED_RESPONSE)

        return SynthesisResult(response=text, tokens_used=metadata.get("tokens_used", 0))
