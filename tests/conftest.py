import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from agents.base import BaseAgent
from agents.planner import Planner, PlannerDecision, SynthesisResult
from agents.ui_controller_agent import UIControllerAgent
from orchestration.dispatcher import CapabilityDispatcher
from schemas.plan import AgentType, ExecutionPlan
from schemas.progress import BulkItemProgress, BulkProgressUpdate
from schemas.result import StepResult

Outcome = Union[StepResult, Exception, Callable[[Dict[str, Any]], StepResult]]


class RecordingAgent(BaseAgent):
    """
    Provider with canned results per action.

    Records every call and the peak number of concurrent calls.
    """

    def __init__(self, agent_type: AgentType, results: Optional[Dict[str, Outcome]] = None, delay: float = 0.0):
        super().__init__()
        self.agent_type = agent_type
        self.results = results or {}
        self.delay = delay
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def execute(self, action: str, params: Dict[str, Any]) -> StepResult:
        self.calls.append((action, dict(params)))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.results.get(action)
            if isinstance(outcome, Exception):
                raise outcome
            if callable(outcome):
                outcome = outcome(params)
            return outcome or StepResult.ok(f"{action} done", data={"action": action}, tokens_used=10)
        finally:
            self.in_flight -= 1


class BulkAgent(RecordingAgent):
    """Provider that reports one progress update per product id."""

    def supports_progress(self) -> bool:
        return True

    async def execute(self, action: str, params: Dict[str, Any]) -> StepResult:
        self.calls.append((action, dict(params)))
        product_ids = list(params.get("productIds") or [])
        done: List[BulkItemProgress] = []
        for index, product_id in enumerate(product_ids):
            item = BulkItemProgress(id=product_id, name=f"Product {product_id}", status="done")
            done.append(item)
            self.report_progress(BulkProgressUpdate(
                operation_id="op_1",
                operation_label="Updating deals",
                current=index + 1,
                total=len(product_ids),
                item=item,
                completed_items=list(done),
            ))
            await asyncio.sleep(0)
        return StepResult.ok(f"Updated {len(product_ids)} products", data={"updated": product_ids})


class StubPlanner(Planner):
    """Planner returning a fixed decision; counts calls."""

    def __init__(self, decision: PlannerDecision, synthesis: str = "All done.", synthesis_tokens: int = 5):
        self.decision = decision
        self.synthesis = synthesis
        self.synthesis_tokens = synthesis_tokens
        self.plan_calls = 0
        self.seen_image_urls = None
        self.synthesized_tasks = None

    async def plan(self, request, image_urls=None) -> PlannerDecision:
        self.plan_calls += 1
        self.seen_image_urls = list(image_urls) if image_urls else None
        return self.decision

    async def synthesize(self, request, tasks) -> SynthesisResult:
        self.synthesized_tasks = list(tasks)
        return SynthesisResult(response=self.synthesis, tokens_used=self.synthesis_tokens)


def make_plan(*descriptors: Dict[str, Any], request: str = "test request") -> ExecutionPlan:
    return ExecutionPlan.from_descriptors(request, list(descriptors))


@pytest.fixture
def photographer():
    return RecordingAgent(AgentType.PHOTOGRAPHER)


@pytest.fixture
def product():
    return RecordingAgent(AgentType.PRODUCT)


@pytest.fixture
def ui_controller():
    return UIControllerAgent()


@pytest.fixture
def dispatcher(photographer, product, ui_controller):
    return CapabilityDispatcher({
        AgentType.PHOTOGRAPHER: photographer,
        AgentType.PRODUCT: product,
        AgentType.UI_CONTROLLER: ui_controller,
    })
