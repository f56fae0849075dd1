"""
Plan Executor

Runs an ExecutionPlan level by level.

FLOW:
    levelize(plan.steps)                  ← fatal before any dispatch
    for each level:
        for each sub-batch of max_parallel_agents steps (sequential):
            resolve params → dispatch (with timeout) → progress events
        record results (single writer of prior_results)

GUARANTEES:
- A step never starts before all its dependencies have settled
- Level k+1 never starts before every step of level k has settled
- A failed step never aborts its level or the plan; dependents see the
  failure only through unresolved references (data starvation)
- One TaskRecord per executed step, success or failure
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from agents.base import BaseAgent, capture_ui_commands
from app.core.config import settings
from orchestration.dispatcher import CapabilityDispatcher
from orchestration.errors import UnknownAgentError
from orchestration.levels import levelize
from orchestration.progress import ProgressChannel, describe_action
from orchestration.resolver import ResolvedParams, apply_image_override, resolve_bindings
from orchestration.state import PlanExecutionResult, TaskRecord
from schemas.plan import AgentType, ExecutionPlan, PlanStep, StepStatus
from schemas.progress import BulkProgressUpdate, ProgressEvent, ProgressEventType, UICommand
from schemas.result import StepResult

logger = logging.getLogger(__name__)


@dataclass
class _StepOutcome:
    result: StepResult
    index: int
    resolved: ResolvedParams
    params: Dict[str, Any]
    started_at: datetime
    completed_at: datetime
    ui_commands: List[UICommand] = field(default_factory=list)


@dataclass
class _PlanRun:
    """Mutable state of one plan run (internal use)."""
    plan: ExecutionPlan
    total_steps: int
    uploaded_image_urls: Optional[List[str]]
    context: Optional[Mapping[str, Any]]
    progress: ProgressChannel
    prior_results: Dict[str, StepResult] = field(default_factory=dict)
    tasks: List[TaskRecord] = field(default_factory=list)
    ui_commands: List[UICommand] = field(default_factory=list)
    tokens_used: int = 0
    started_count: int = 0


class PlanExecutor:
    """
    The Engine.

    Stateless between calls: everything about a run lives in _PlanRun,
    so one executor instance can serve concurrent requests.
    """

    def __init__(
        self,
        dispatcher: CapabilityDispatcher,
        max_parallel_agents: Optional[int] = None,
        timeouts: Optional[Dict[str, float]] = None,
        default_timeout: Optional[float] = None,
    ):
        """
        Initialize the executor.

        Args:
            dispatcher: CapabilityDispatcher used to find providers
            max_parallel_agents: Max provider calls in flight per sub-batch
            timeouts: Per-agent step timeout in seconds (agent value → seconds)
            default_timeout: Timeout for agents missing from `timeouts`
        """
        self._dispatcher = dispatcher
        self._max_parallel = max_parallel_agents or settings.max_parallel_agents
        self._timeouts = dict(settings.agent_timeouts_seconds if timeouts is None else timeouts)
        self._default_timeout = (
            settings.default_step_timeout_seconds if default_timeout is None else default_timeout
        )

    @property
    def max_parallel_agents(self) -> int:
        return self._max_parallel

    def timeout_for(self, agent: AgentType) -> float:
        return self._timeouts.get(agent.value, self._default_timeout)

    async def execute(
        self,
        plan: ExecutionPlan,
        uploaded_image_urls: Optional[Sequence[str]] = None,
        context: Optional[Mapping[str, Any]] = None,
        progress: Optional[ProgressChannel] = None,
    ) -> PlanExecutionResult:
        """
        Execute the plan.

        Args:
            plan: Plan to run; only step status/result fields are mutated
            uploaded_image_urls: Canonical image URLs for this request
            context: Ambient page context for `$context:` references
            progress: Channel receiving progress events

        Returns:
            PlanExecutionResult with task records, token total and UI commands

        Raises:
            PlanDependencyError: cycle or dangling dependency (nothing runs)
        """
        levels = levelize(plan.steps)

        run = _PlanRun(
            plan=plan,
            total_steps=len(plan.steps),
            uploaded_image_urls=list(uploaded_image_urls) if uploaded_image_urls else None,
            context=context,
            progress=progress if progress is not None else ProgressChannel(),
        )

        if not levels:
            return PlanExecutionResult(plan_id=plan.plan_id)

        logger.info(f"Starting execution of Plan ID: {plan.plan_id} ({run.total_steps} steps, {len(levels)} levels)")
        plan.status = StepStatus.RUNNING
        run.progress.publish(ProgressEvent(
            type=ProgressEventType.PLANNING,
            message=f"Created execution plan with {run.total_steps} steps across {len(levels)} levels",
            data={"totalSteps": run.total_steps, "levels": len(levels)},
        ))

        for level_index, level in enumerate(levels):
            logger.debug(f"Level {level_index + 1}/{len(levels)}: {[step.id for step in level]}")

            for start in range(0, len(level), self._max_parallel):
                batch = level[start:start + self._max_parallel]
                outcomes = await asyncio.gather(*(self._run_step(step, run) for step in batch))

                for step, outcome in zip(batch, outcomes):
                    await self._record(step, outcome, run)

        plan.completed_at = datetime.now()
        failed = sum(1 for task in run.tasks if task.status == StepStatus.FAILED)
        plan.status = StepStatus.FAILED if failed else StepStatus.COMPLETED
        logger.info(
            f"Plan {plan.plan_id} finished: {len(run.tasks) - failed} completed, {failed} failed, "
            f"{run.tokens_used} tokens"
        )

        return PlanExecutionResult(
            plan_id=plan.plan_id,
            tasks=run.tasks,
            tokens_used=run.tokens_used,
            ui_commands=run.ui_commands,
        )

    async def _run_step(self, step: PlanStep, run: _PlanRun) -> _StepOutcome:
        """
        Resolve, dispatch and report a single step. Never raises.
        """
        run.started_count += 1
        index = run.started_count
        step.status = StepStatus.RUNNING
        description = describe_action(step.action)

        run.progress.publish(ProgressEvent(
            type=ProgressEventType.EXECUTING,
            step=index,
            total_steps=run.total_steps,
            step_id=step.id,
            agent_name=step.agent.value,
            action=step.action,
            message=f"Executing {step.agent.value} agent: {description}",
        ))

        started_at = datetime.now()
        resolved = resolve_bindings(step.bindings, run.prior_results, run.context)
        if resolved.unresolved:
            logger.warning(
                f"Step {step.id}: {len(resolved.unresolved)} unresolved reference(s): "
                f"{[(ref.token, ref.reason) for ref in resolved.unresolved]}"
            )
        params = apply_image_override(step.action, resolved.params, run.uploaded_image_urls)

        with capture_ui_commands() as commands:
            result = await self._dispatch(step, params, index, run)

        completed_at = datetime.now()

        if result.success:
            message = f"✓ {description} completed"
        else:
            message = f"✗ {description} failed: {result.error}"
        run.progress.publish(ProgressEvent(
            type=ProgressEventType.EXECUTING,
            step=index,
            total_steps=run.total_steps,
            step_id=step.id,
            agent_name=step.agent.value,
            action=step.action,
            message=message,
            data=result.data if result.success else None,
            ui_command=commands[-1] if commands else None,
        ))

        return _StepOutcome(
            result=result,
            index=index,
            resolved=resolved,
            params=params,
            started_at=started_at,
            completed_at=completed_at,
            ui_commands=list(commands),
        )

    async def _dispatch(self, step: PlanStep, params: Dict[str, Any], index: int, run: _PlanRun) -> StepResult:
        try:
            provider = self._dispatcher.get(step.agent)
        except UnknownAgentError as e:
            logger.error(f"Step {step.id}: {e}")
            return StepResult.fail(str(e), message="No provider")

        wants_progress = provider.supports_progress()
        if wants_progress:
            provider.set_progress_callback(
                lambda update: self._relay_bulk_progress(step, index, run, update)
            )

        timeout = self.timeout_for(step.agent)
        try:
            result = await asyncio.wait_for(provider.execute(step.action, params), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Step {step.id} ({step.agent.value}.{step.action}) timed out after {timeout:g}s")
            return StepResult.fail(f"Timed out after {timeout:g}s", message=f"Failed to {step.action}")
        except Exception as e:
            logger.error(f"Step {step.id} ({step.agent.value}.{step.action}) raised: {e}")
            return provider.format_error(e, step.action)
        finally:
            if wants_progress:
                provider.set_progress_callback(None)

        if not isinstance(result, StepResult):
            logger.error(
                f"Step {step.id} ({step.agent.value}.{step.action}) returned {type(result).__name__}, expected StepResult"
            )
            return StepResult.fail(
                f"Provider returned {type(result).__name__} instead of a StepResult",
                message=f"Failed to {step.action}",
            )
        return result

    def _relay_bulk_progress(self, step: PlanStep, index: int, run: _PlanRun, update: BulkProgressUpdate) -> None:
        run.progress.publish(ProgressEvent(
            type=ProgressEventType.EXECUTING,
            step=index,
            total_steps=run.total_steps,
            step_id=step.id,
            agent_name=step.agent.value,
            action=step.action,
            message=f"{update.item.name}: {update.status_marker()} ({update.current}/{update.total})",
            bulk_progress=update,
        ))

    async def _record(self, step: PlanStep, outcome: _StepOutcome, run: _PlanRun) -> None:
        result = outcome.result

        # Single writer: each step id is written exactly once, after it settles
        run.prior_results[step.id] = result
        run.tokens_used += result.tokens_used
        run.ui_commands.extend(outcome.ui_commands)

        step.result = result
        step.status = StepStatus.COMPLETED if result.success else StepStatus.FAILED

        run.tasks.append(TaskRecord(
            id=step.id,
            agent=step.agent,
            action=step.action,
            status=step.status,
            input=dict(step.params),
            resolved_input=outcome.params,
            output=result.data,
            error=result.error,
            tokens_used=result.tokens_used,
            unresolved_references=outcome.resolved.unresolved_tokens,
            started_at=outcome.started_at,
            completed_at=outcome.completed_at,
        ))

        if step.action == "batch_process" and result.success:
            await self._relay_processing_results(step, outcome.index, result, run)

    async def _relay_processing_results(self, step: PlanStep, index: int, result: StepResult, run: _PlanRun) -> None:
        """
        Push batch_process results to the UI controller so the client can
        show them immediately.
        """
        data = result.data if isinstance(result.data, dict) else {}
        if not data.get("results") or not self._dispatcher.has(AgentType.UI_CONTROLLER):
            return

        provider: BaseAgent = self._dispatcher.get(AgentType.UI_CONTROLLER)
        with capture_ui_commands() as commands:
            try:
                await provider.execute("update_processing_results", {
                    "results": data["results"],
                    "errors": data.get("errors") or [],
                })
            except Exception as e:
                logger.warning(f"Failed to relay processing results: {e}")

        run.ui_commands.extend(commands)
        if commands:
            run.progress.publish(ProgressEvent(
                type=ProgressEventType.EXECUTING,
                step=index,
                total_steps=run.total_steps,
                step_id=step.id,
                agent_name=AgentType.UI_CONTROLLER.value,
                action="update_processing_results",
                message="Updating processing results in UI",
                ui_command=commands[-1],
            ))
