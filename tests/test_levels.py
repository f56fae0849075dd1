import pytest

from orchestration.errors import PlanDependencyError
from orchestration.levels import levelize
from tests.conftest import make_plan


def _ids(levels):
    return [[step.id for step in level] for level in levels]


def test_independent_steps_share_one_level():
    plan = make_plan(
        {"id": "a", "agent": "product", "action": "search_products"},
        {"id": "b", "agent": "photographer", "action": "remove_background"},
    )
    assert _ids(levelize(plan.steps)) == [["a", "b"]]


def test_levels_follow_dependencies_and_keep_planner_order():
    plan = make_plan(
        {"id": "c", "agent": "marketer", "action": "write_copy", "dependsOn": ["a", "b"]},
        {"id": "a", "agent": "product", "action": "search_products"},
        {"id": "d", "agent": "ui_controller", "action": "show_notification", "dependsOn": ["a"]},
        {"id": "b", "agent": "photographer", "action": "remove_background"},
    )
    assert _ids(levelize(plan.steps)) == [["a", "b"], ["c", "d"]]


def test_chain_gives_one_step_per_level():
    plan = make_plan(
        {"id": "s1", "agent": "product", "action": "a"},
        {"id": "s2", "agent": "product", "action": "b", "dependsOn": ["s1"]},
        {"id": "s3", "agent": "product", "action": "c", "dependsOn": ["s2"]},
    )
    assert _ids(levelize(plan.steps)) == [["s1"], ["s2"], ["s3"]]


def test_empty_plan_has_no_levels():
    assert levelize([]) == []


def test_cycle_raises():
    plan = make_plan(
        {"id": "ok", "agent": "product", "action": "a"},
        {"id": "x", "agent": "product", "action": "b", "dependsOn": ["y"]},
        {"id": "y", "agent": "product", "action": "c", "dependsOn": ["x"]},
    )
    with pytest.raises(PlanDependencyError) as exc_info:
        levelize(plan.steps)

    assert exc_info.value.pending_step_ids == ["x", "y"]
    assert exc_info.value.missing_dependencies == []
    assert "circular" in str(exc_info.value)


def test_dangling_dependency_names_missing_step():
    plan = make_plan(
        {"id": "step_1", "agent": "product", "action": "a", "dependsOn": ["step_9"]},
    )
    with pytest.raises(PlanDependencyError) as exc_info:
        levelize(plan.steps)

    assert exc_info.value.missing_dependencies == ["step_9"]
