"""
Confirmation Gate

Decides, before anything runs, whether a plan must go back to the user
for explicit approval.

RULES:
- Whole-plan check, never interleaved with execution
- First matching step wins
- Not an error: a gated plan is simply not executed
"""

import logging
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from cost.estimator import estimate_image_cost
from cost.model_pricing import IMAGE_GENERATION_COST_USD
from schemas.plan import ExecutionPlan, PlanStep
from schemas.result import ConfirmationRequest

logger = logging.getLogger(__name__)


class ConfirmationRule(BaseModel):
    """
    Text shown for one irreversible or high-impact action.

    `description` may contain `{count}`, filled with the affected-item
    count or "multiple".
    """
    description: str
    impact: str


def _default_rules() -> Dict[str, ConfirmationRule]:
    return {
        "delete_product": ConfirmationRule(
            description="Delete a product",
            impact="This action cannot be undone",
        ),
        "delete_products_bulk": ConfirmationRule(
            description="Delete {count} products",
            impact="This action cannot be undone and will remove all associated data",
        ),
        "update_prices_bulk": ConfirmationRule(
            description="Update prices for {count} products",
            impact="This will change prices visible to customers",
        ),
        "publish_campaign": ConfirmationRule(
            description="Publish a marketing campaign",
            impact="This will send content to your audience",
        ),
        "send_notification": ConfirmationRule(
            description="Send a notification to customers",
            impact="This will send messages to customers",
        ),
        "publish_products_bulk": ConfirmationRule(
            description="Publish {count} products",
            impact="Products will become visible in your store",
        ),
    }


class ConfirmationPolicy(BaseModel):
    """
    Deny-list and cost thresholds, passed into the gate so deployments and
    tests can override them.
    """
    rules: Dict[str, ConfirmationRule] = Field(default_factory=_default_rules)
    cost_gated_action: str = "generate_images"
    image_count_threshold: int = 10
    cost_per_image_usd: float = IMAGE_GENERATION_COST_USD

    @classmethod
    def from_settings(cls) -> "ConfirmationPolicy":
        from app.core.config import settings

        return cls(
            image_count_threshold=settings.image_count_threshold,
            cost_per_image_usd=settings.cost_per_image_usd,
        )


def affected_items_count(params: Dict[str, Any]) -> Optional[int]:
    """Item count from `productIds` or `ids`, when present."""
    for key in ("productIds", "ids"):
        value = params.get(key)
        if isinstance(value, (list, tuple)):
            return len(value)
    return None


def _as_count(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class ConfirmationGate:
    """
    Pre-execution check for risky or costly plans.
    """

    def __init__(self, policy: Optional[ConfirmationPolicy] = None):
        self._policy = policy or ConfirmationPolicy()

    @property
    def policy(self) -> ConfirmationPolicy:
        return self._policy

    def check(self, plan: Optional[ExecutionPlan]) -> Optional[ConfirmationRequest]:
        """
        Inspect the plan.

        Returns:
            ConfirmationRequest for the first step that needs approval,
            or None when the plan may run unconditionally
        """
        if plan is None:
            return None

        for step in plan.steps:
            request = self._check_step(step)
            if request:
                logger.info(f"Plan {plan.plan_id} requires confirmation: {step.id} ({step.action})")
                return request

        return None

    def _check_step(self, step: PlanStep) -> Optional[ConfirmationRequest]:
        rule = self._policy.rules.get(step.action)
        if rule:
            count = affected_items_count(step.params)
            return ConfirmationRequest(
                action=step.action,
                description=rule.description.format(count=count if count is not None else "multiple"),
                impact=rule.impact,
                affected_items=count,
            )

        if step.action == self._policy.cost_gated_action:
            count = _as_count(step.params.get("count"))
            if count is not None and count > self._policy.image_count_threshold:
                return ConfirmationRequest(
                    action=step.action,
                    description=f"Generate {count} images",
                    impact=f"This will use {count} image generation credits",
                    estimated_cost=estimate_image_cost(count, self._policy.cost_per_image_usd),
                )

        return None
