"""
Orchestration Router

The single-direction flow controller for one merchant request.

FLOW GUARANTEES:
1. Planner runs EXACTLY ONCE
2. The confirmation gate sees the whole plan BEFORE anything executes
3. A gated plan is never executed
4. Executor never re-orders or re-plans
5. Synthesis runs AFTER execution (not during)

FLOW:
Request → Images → Planner → ConfirmationGate → PlanExecutor → Synthesis → OrchestratorResult
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from agents.planner import Planner
from observability.collector import TraceCollector
from orchestration.confirmation import ConfirmationGate
from orchestration.dispatcher import CapabilityDispatcher
from orchestration.errors import OrchestrationError
from orchestration.executor import PlanExecutor
from orchestration.progress import ProgressChannel, ProgressSubscriber
from orchestration.state import OrchestratorResult, TaskRecord
from schemas.plan import StepStatus
from schemas.progress import ProgressEvent, ProgressEventType, UICommand
from schemas.request import ServiceRequest
from schemas.result import ConfirmationRequest

logger = logging.getLogger(__name__)

ERROR_RESPONSE = (
    "I apologize, but I encountered an error while processing your request. Please try again."
)
TASKS_DONE_RESPONSE = "Task completed successfully."


class ImageStore(ABC):
    """
    Storage for images attached as raw/base64 payloads.

    Implementations return public URLs for the images they managed to
    store; failed uploads are left out of the result.
    """

    @abstractmethod
    async def upload(self, images: List[str]) -> List[str]:
        pass


def _is_url(image: str) -> bool:
    return image.startswith("http://") or image.startswith("https://")


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


class OrchestrationRouter:
    """
    Entry point for executing a full merchant request.

    This is the glue, not the brain. It coordinates components
    but contains zero business logic.
    """

    def __init__(
        self,
        planner: Planner,
        dispatcher: CapabilityDispatcher,
        executor: Optional[PlanExecutor] = None,
        gate: Optional[ConfirmationGate] = None,
        image_store: Optional[ImageStore] = None,
        trace_collector: Optional[TraceCollector] = None,
    ):
        """
        Initialize the router with injected dependencies.

        Args:
            planner: Creates the plan and synthesizes the final answer
            dispatcher: Provider registry
            executor: Plan executor (built on `dispatcher` if not provided)
            gate: Confirmation gate (default policy if not provided)
            image_store: Uploads non-URL images; without one they are dropped
            trace_collector: Receives one trace per request
        """
        self._planner = planner
        self._dispatcher = dispatcher
        self._executor = executor or PlanExecutor(dispatcher)
        self._gate = gate or ConfirmationGate()
        self._image_store = image_store
        self._trace_collector = trace_collector

    async def handle(
        self,
        *,
        request: ServiceRequest,
        on_progress: Optional[ProgressSubscriber] = None,
    ) -> OrchestratorResult:
        """
        Execute the complete orchestration flow.

        Args:
            request: Validated user request
            on_progress: Called synchronously for every progress event

        Returns:
            OrchestratorResult: response, task records, tokens, progress log

        Raises:
            Exception: anything unexpected, after a failure trace is emitted
        """
        trace_id = request.trace_id or str(uuid.uuid4())
        started_at = datetime.now()
        clock = time.monotonic()
        progress = ProgressChannel()
        if on_progress:
            progress.subscribe(on_progress)

        total_tokens = 0
        plan_id: Optional[str] = None

        def finish(**fields) -> OrchestratorResult:
            result = OrchestratorResult(
                total_tokens=total_tokens,
                execution_time_ms=int((time.monotonic() - clock) * 1000),
                steps=progress.events,
                plan_id=plan_id,
                **fields,
            )
            if self._trace_collector:
                self._trace_collector.capture(trace_id, result, started_at)
            return result

        logger.info(f"[{trace_id}] Starting orchestration flow")

        try:
            image_urls = await self._prepare_images(request, progress)

            # =====================================================
            # STEP 1: PLANNING (runs exactly once)
            # =====================================================
            progress.publish(ProgressEvent(
                type=ProgressEventType.PLANNING,
                message="Analyzing your request and creating execution plan...",
            ))
            decision = await self._planner.plan(request, image_urls)
            total_tokens += decision.tokens_used

            if not decision.needs_execution:
                logger.info(f"[{trace_id}] No execution plan needed, returning direct response")
                progress.publish(ProgressEvent(type=ProgressEventType.COMPLETE, message="✓ Response ready"))
                return finish(success=True, response=decision.response)

            plan = decision.plan
            plan_id = plan.plan_id
            logger.info(f"[{trace_id}] Plan created: {plan_id} ({len(plan.steps)} steps)")
            progress.publish(ProgressEvent(
                type=ProgressEventType.PLANNING,
                message=f"✓ Plan created with {_plural(len(plan.steps), 'step')}",
                data={"planSteps": len(plan.steps)},
            ))

            # =====================================================
            # STEP 2: CONFIRMATION GATE (whole plan, before execution)
            # =====================================================
            confirmation: Optional[ConfirmationRequest] = self._gate.check(plan)
            if confirmation:
                logger.info(f"[{trace_id}] Plan held for confirmation: {confirmation.action}")
                return finish(success=True, response=decision.response, confirmation_required=confirmation)

            # =====================================================
            # STEP 3: EXECUTION
            # =====================================================
            execution = await self._executor.execute(plan, image_urls, request.context, progress)
            total_tokens += execution.tokens_used

            # =====================================================
            # STEP 4: SYNTHESIS
            # =====================================================
            progress.publish(ProgressEvent(
                type=ProgressEventType.SYNTHESIZING,
                message="Preparing final response...",
            ))
            synthesis = await self._planner.synthesize(request, execution.tasks)
            total_tokens += synthesis.tokens_used

            progress.publish(ProgressEvent(
                type=ProgressEventType.COMPLETE,
                message=self._completion_message(execution.tasks),
            ))

            ui_commands: List[UICommand] = execution.ui_commands + self._dispatcher.drain_ui_commands()
            return finish(
                success=True,
                response=synthesis.response or decision.response or TASKS_DONE_RESPONSE,
                tasks=execution.tasks,
                ui_commands=ui_commands,
            )

        except OrchestrationError as e:
            logger.error(f"[{trace_id}] Orchestration failed: {e}")
            progress.publish(ProgressEvent(type=ProgressEventType.COMPLETE, message=f"✗ Error: {e}"))
            return finish(
                success=False,
                response=ERROR_RESPONSE,
                error=str(e),
                ui_commands=self._dispatcher.drain_ui_commands(),
            )

        except Exception as e:
            logger.exception(f"[{trace_id}] Unexpected orchestration error")
            progress.publish(ProgressEvent(type=ProgressEventType.COMPLETE, message=f"✗ Error: {e}"))
            finish(success=False, response=ERROR_RESPONSE, error=str(e))
            raise  # Re-raise - never swallow exceptions

    async def _prepare_images(self, request: ServiceRequest, progress: ProgressChannel) -> Optional[List[str]]:
        """
        Produce the canonical image URL list for the request.

        Request images win over the page's available images.
        """
        if request.images:
            urls = [image for image in request.images if _is_url(image)]
            pending = [image for image in request.images if not _is_url(image)]

            if urls:
                progress.publish(ProgressEvent(
                    type=ProgressEventType.PLANNING,
                    message=f"Using {_plural(len(urls), 'image')} from previous uploads",
                    data={"imageUrls": urls},
                ))

            if pending and self._image_store:
                progress.publish(ProgressEvent(
                    type=ProgressEventType.PLANNING,
                    message=f"Uploading {_plural(len(pending), 'image')} to secure storage...",
                ))
                uploaded = await self._image_store.upload(pending)
                progress.publish(ProgressEvent(
                    type=ProgressEventType.PLANNING,
                    message=f"✓ Uploaded {_plural(len(uploaded), 'image')} successfully",
                    data={"imageUrls": uploaded},
                ))
                urls.extend(uploaded)
            elif pending:
                logger.warning(f"Dropping {len(pending)} non-URL images: no image store configured")

            return urls or None

        available = request.context.get("availableImages") or []
        if available:
            progress.publish(ProgressEvent(
                type=ProgressEventType.PLANNING,
                message=f"Using {_plural(len(available), 'image')} from current page",
                data={"imageUrls": list(available)},
            ))
            return list(available)

        return None

    @staticmethod
    def _completion_message(tasks: List[TaskRecord]) -> str:
        failed = sum(1 for task in tasks if task.status == StepStatus.FAILED)
        if not failed:
            return "✓ All tasks completed successfully"
        return f"✓ Finished: {len(tasks) - failed} completed, {failed} failed"
