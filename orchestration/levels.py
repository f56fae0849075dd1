"""
Dependency Levels

Groups plan steps into levels: every step in level k depends only on
steps in levels < k, and steps inside a level are independent of each
other. Within a level the planner's order is kept.
"""

import logging
from typing import List, Sequence, Set

from orchestration.errors import PlanDependencyError
from schemas.plan import PlanStep

logger = logging.getLogger(__name__)


def levelize(steps: Sequence[PlanStep]) -> List[List[PlanStep]]:
    """
    Split steps into dependency levels.

    Args:
        steps: Plan steps in planner order

    Returns:
        Ordered list of levels

    Raises:
        PlanDependencyError: if a pass finds no eligible step while steps
            remain (cycle or dangling dependency)
    """
    levels: List[List[PlanStep]] = []
    completed: Set[str] = set()
    remaining = list(steps)

    while remaining:
        level = [step for step in remaining if all(dep in completed for dep in step.depends_on)]

        if not level:
            known = {step.id for step in steps}
            missing = sorted({dep for step in remaining for dep in step.depends_on if dep not in known})
            error = PlanDependencyError([step.id for step in remaining], missing)
            logger.error(str(error))
            raise error

        levels.append(level)
        completed.update(step.id for step in level)
        remaining = [step for step in remaining if step.id not in completed]

    return levels
