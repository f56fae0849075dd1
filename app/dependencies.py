"""
FastAPI Dependencies

All object creation happens here, not per request.
This module provides dependency injection for the orchestration layer.

RULE: FastAPI routes call exactly one entry point, OrchestrationRouter.handle()
"""

from functools import lru_cache

from agents.planner import PlannerAgent
from agents.ui_controller_agent import UIControllerAgent
from app.core.config import settings
from observability.collector import TraceCollector
from orchestration.confirmation import ConfirmationGate, ConfirmationPolicy
from orchestration.dispatcher import CapabilityDispatcher
from orchestration.executor import PlanExecutor
from orchestration.router import OrchestrationRouter
from schemas.plan import AgentType


@lru_cache(maxsize=1)
def get_dispatcher() -> CapabilityDispatcher:
    """
    Provider registry shared by every request.

    Only the UI controller ships with the service; domain providers
    (product, photographer, ...) are registered by the deployment.
    """
    dispatcher = CapabilityDispatcher()
    dispatcher.register(AgentType.UI_CONTROLLER, UIControllerAgent())
    return dispatcher


@lru_cache(maxsize=1)
def get_orchestration_router() -> OrchestrationRouter:
    """
    Create and cache the OrchestrationRouter singleton.

    All components are wired here:
    - PlannerAgent: Creates execution plans and synthesizes answers
    - PlanExecutor: Runs plans level by level
    - ConfirmationGate: Holds destructive or costly plans for approval
    - TraceCollector: One trace per request

    Returns:
        OrchestrationRouter: The single entry point for orchestration.
    """
    dispatcher = get_dispatcher()

    return OrchestrationRouter(
        planner=PlannerAgent(),
        dispatcher=dispatcher,
        executor=PlanExecutor(dispatcher),
        gate=ConfirmationGate(ConfirmationPolicy.from_settings()),
        trace_collector=TraceCollector(
            enabled=settings.tracing_enabled,
            model=settings.azure_openai_deployment_name,
        ),
    )
