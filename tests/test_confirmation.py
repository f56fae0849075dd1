from orchestration.confirmation import ConfirmationGate, ConfirmationPolicy, affected_items_count
from tests.conftest import make_plan


def test_plain_plan_needs_no_confirmation():
    plan = make_plan(
        {"id": "s1", "agent": "product", "action": "search_products"},
        {"id": "s2", "agent": "photographer", "action": "generate_images", "params": {"count": 4}},
    )
    assert ConfirmationGate().check(plan) is None


def test_missing_plan_needs_no_confirmation():
    assert ConfirmationGate().check(None) is None


def test_bulk_delete_reports_affected_items():
    plan = make_plan({
        "id": "s1",
        "agent": "product",
        "action": "delete_products_bulk",
        "params": {"productIds": ["p1", "p2", "p3", "p4", "p5"]},
    })

    request = ConfirmationGate().check(plan)

    assert request is not None
    assert request.action == "delete_products_bulk"
    assert request.affected_items == 5
    assert request.description == "Delete 5 products"
    assert request.requires_confirmation is True
    assert "cannot be undone" in request.impact


def test_unknown_count_is_described_as_multiple():
    plan = make_plan({"id": "s1", "agent": "product", "action": "update_prices_bulk", "params": {}})
    request = ConfirmationGate().check(plan)
    assert request.affected_items is None
    assert request.description == "Update prices for multiple products"


def test_ids_param_is_counted():
    assert affected_items_count({"ids": ["a", "b"]}) == 2
    assert affected_items_count({"productIds": "p1"}) is None


def test_image_generation_above_threshold_is_gated_with_cost():
    plan = make_plan({"id": "s1", "agent": "photographer", "action": "generate_images", "params": {"count": 25}})

    request = ConfirmationGate().check(plan)

    assert request is not None
    assert request.action == "generate_images"
    assert request.estimated_cost == 0.25
    assert request.affected_items is None


def test_image_generation_at_threshold_is_not_gated():
    plan = make_plan({"id": "s1", "agent": "photographer", "action": "generate_images", "params": {"count": 10}})
    assert ConfirmationGate().check(plan) is None


def test_first_matching_step_wins():
    plan = make_plan(
        {"id": "s1", "agent": "product", "action": "search_products"},
        {"id": "s2", "agent": "marketer", "action": "publish_campaign"},
        {"id": "s3", "agent": "product", "action": "delete_product"},
    )
    assert ConfirmationGate().check(plan).action == "publish_campaign"


def test_policy_is_configurable():
    policy = ConfirmationPolicy(rules={}, image_count_threshold=2, cost_per_image_usd=0.5)
    gate = ConfirmationGate(policy)

    assert gate.check(make_plan({"id": "s1", "agent": "product", "action": "delete_product"})) is None
    request = gate.check(make_plan({"id": "s1", "agent": "photographer", "action": "generate_images", "params": {"count": 3}}))
    assert request.estimated_cost == 1.5
