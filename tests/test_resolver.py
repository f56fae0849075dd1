from orchestration.resolver import (
    apply_image_override,
    lookup_path,
    needs_images,
    resolve_bindings,
    resolve_params,
)
from schemas.references import (
    ArrayBinding,
    ContextRef,
    LiteralValue,
    MalformedRef,
    StepRef,
    is_reference,
    parse_binding,
)
from schemas.result import StepResult
from tests.conftest import make_plan


GENERATED = StepResult.ok(
    "Generated 2 images",
    data={"images": [{"url": "https://cdn.example.com/a.png"}, {"generatedUrl": "https://cdn.example.com/b.png"}]},
)


def test_parse_binding_variants():
    assert parse_binding("$step:step_1.images.0.url") == StepRef(
        step_id="step_1", path=("images", "0", "url"), token="$step:step_1.images.0.url"
    )
    assert parse_binding("$context:selectedItems") == ContextRef(path=("selectedItems",), token="$context:selectedItems")
    assert parse_binding("plain") == LiteralValue("plain")
    assert parse_binding(3) == LiteralValue(3)

    array = parse_binding(["x", "$step:s1.id"])
    assert isinstance(array, ArrayBinding)
    assert array.has_references


def test_token_like_strings_outside_the_grammar_are_malformed():
    assert parse_binding("$step:step_1") == MalformedRef("$step:step_1")
    assert parse_binding("$step:step-1.url") == MalformedRef("$step:step-1.url")
    assert parse_binding("$context:") == MalformedRef("$context:")
    assert not is_reference(parse_binding("$step:step-1.url"))
    assert is_reference(parse_binding("$context:selectedItems"))


def test_malformed_tokens_pass_through_and_are_reported():
    resolved = resolve_params(
        {"u": "$step:step-1.url", "ids": ["$context:", "p1"]},
        {"step_1": GENERATED},
        {"selectedItems": ["p1"]},
    )

    assert resolved.params == {"u": "$step:step-1.url", "ids": ["$context:", "p1"]}
    assert [(ref.key, ref.reason) for ref in resolved.unresolved] == [("u", "malformed"), ("ids", "malformed")]
    assert resolved.unresolved_tokens == ["$step:step-1.url", "$context:"]


def test_bindings_are_parsed_when_the_step_is_built():
    plan = make_plan({"id": "s", "agent": "photographer", "action": "x", "params": {"u": "$step:a.b"}})
    assert plan.steps[0].bindings == {"u": StepRef(step_id="a", path=("b",), token="$step:a.b")}
    assert plan.steps[0].params == {"u": "$step:a.b"}


def test_lookup_path_indexes_lists():
    data = {"images": [{"url": "u0"}, {"url": "u1"}]}
    assert lookup_path(data, ("images", "1", "url")) == "u1"


def test_resolves_nested_step_reference():
    resolved = resolve_params(
        {"imageUrl": "$step:step_1.images.0.url", "style": "studio"},
        {"step_1": GENERATED},
    )
    assert resolved.params == {"imageUrl": "https://cdn.example.com/a.png", "style": "studio"}
    assert resolved.unresolved == []


def test_unknown_step_reference_is_left_in_place():
    resolved = resolve_params({"x": "$step:step_9.foo"}, {"step_1": GENERATED})

    assert resolved.params == {"x": "$step:step_9.foo"}
    assert [(ref.key, ref.reason) for ref in resolved.unresolved] == [("x", "unknown_step")]
    assert resolved.unresolved_tokens == ["$step:step_9.foo"]


def test_failed_step_reference_is_reported_as_failed():
    resolved = resolve_params({"x": "$step:s1.images"}, {"s1": StepResult.fail("boom")})
    assert resolved.params == {"x": "$step:s1.images"}
    assert resolved.unresolved[0].reason == "step_failed"


def test_missing_path_is_reported():
    resolved = resolve_params({"x": "$step:step_1.videos.0"}, {"step_1": GENERATED})
    assert resolved.params["x"] == "$step:step_1.videos.0"
    assert resolved.unresolved[0].reason == "path_not_found"


def test_negative_index_is_not_a_valid_path():
    resolved = resolve_params({"u": "$step:step_1.images.-1.url"}, {"step_1": GENERATED})

    assert resolved.params == {"u": "$step:step_1.images.-1.url"}
    assert resolved.unresolved[0].reason == "path_not_found"


def test_array_elements_resolve_independently():
    resolved = resolve_params(
        {"imageUrls": ["https://cdn.example.com/raw.png", "$step:step_1.images.1.generatedUrl", "$step:nope.x"]},
        {"step_1": GENERATED},
    )
    assert resolved.params["imageUrls"] == [
        "https://cdn.example.com/raw.png",
        "https://cdn.example.com/b.png",
        "$step:nope.x",
    ]
    assert len(resolved.unresolved) == 1


def test_images_key_unwraps_image_records():
    resolved = resolve_params({"images": "$step:step_1.images"}, {"step_1": GENERATED})
    assert resolved.params["images"] == ["https://cdn.example.com/a.png", "https://cdn.example.com/b.png"]


def test_literal_images_are_not_unwrapped():
    literal = [{"url": "https://cdn.example.com/a.png"}]
    resolved = resolve_params({"images": literal}, {})
    assert resolved.params["images"] == literal


def test_resolving_literals_is_idempotent():
    params = {"name": "Red shoe", "tags": ["summer", "sale"], "price": 19.5}
    once = resolve_params(params, {}).params
    twice = resolve_params(once, {}).params
    assert once == params
    assert twice == once


def test_resolve_does_not_mutate_input():
    plan = make_plan({"id": "s2", "agent": "product", "action": "x", "params": {"a": "$step:step_1.images.0.url"}})
    step = plan.steps[0]
    resolve_bindings(step.bindings, {"step_1": GENERATED})
    assert step.params == {"a": "$step:step_1.images.0.url"}


def test_context_references():
    context = {"selectedItems": ["p1", "p2"], "contextData": {"product": {"id": "p1"}}}
    resolved = resolve_params(
        {"ids": "$context:selectedItems", "productId": "$context:contextData.product.id", "x": "$context:nothing"},
        {},
        context,
    )
    assert resolved.params["ids"] == ["p1", "p2"]
    assert resolved.params["productId"] == "p1"
    assert resolved.params["x"] == "$context:nothing"
    assert resolved.unresolved[0].reason == "path_not_found"


def test_context_reference_without_context():
    resolved = resolve_params({"ids": "$context:selectedItems"}, {}, None)
    assert resolved.unresolved[0].reason == "missing_context"


def test_needs_images():
    assert needs_images("generate_showcase")
    assert needs_images("remove_background")
    assert needs_images("bulk_update_deals")
    assert not needs_images("search_products")


def test_image_override_replaces_placeholders():
    uploaded = ["https://cdn.example.com/u1.png"]
    params = apply_image_override("generate_showcase", {"imageUrls": ["PLACEHOLDER"], "style": "x"}, uploaded)
    assert params == {"imageUrls": uploaded, "sourceImages": uploaded, "style": "x"}


def test_image_override_keeps_qualified_urls():
    mine = ["https://cdn.example.com/mine.png"]
    params = apply_image_override("remove_background", {"imageUrls": mine}, ["https://cdn.example.com/u1.png"])
    assert params["imageUrls"] == mine
    assert params["sourceImages"] == mine


def test_image_override_skips_unrelated_actions_and_empty_uploads():
    assert apply_image_override("search_products", {"q": "shoe"}, ["https://x/a.png"]) == {"q": "shoe"}
    assert apply_image_override("generate_image", {"prompt": "p"}, None) == {"prompt": "p"}
