"""
Parameter Resolver

Turns a step's parameter bindings into concrete values, drawing on the
output of earlier steps and on the ambient page context.

RULES:
- Pure: no I/O, never mutates its inputs
- Soft-fail: an unresolvable reference keeps its literal token, and is
  reported in the diagnostics list instead of raising
- Arrays are resolved one level deep; nested objects are left alone
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from schemas.references import (
    ArrayBinding,
    ContextRef,
    LiteralValue,
    MalformedRef,
    ParamBinding,
    ScalarBinding,
    StepRef,
    is_reference,
    parse_binding,
)
from schemas.result import StepResult


# Substrings marking an action as image-relevant
IMAGE_ACTION_MARKERS = (
    "image",
    "analyze",
    "generate",
    "process",
    "background",
    "lifestyle",
    "bulk",
    "social",
)

IMAGE_URL_PARAMS = ("imageUrls", "sourceImages")

# Keys providers use for the URL of a generated-image record
IMAGE_URL_FIELDS = ("url", "generatedUrl", "generated_url")

_QUALIFIED_URL = re.compile(r"^https?://")

_MISSING = object()


@dataclass(frozen=True)
class UnresolvedReference:
    """A reference token that was left in place."""
    key: str
    token: str
    reason: str  # unknown_step | step_failed | path_not_found | missing_context | malformed


@dataclass
class ResolvedParams:
    params: Dict[str, Any]
    unresolved: List[UnresolvedReference] = field(default_factory=list)

    @property
    def unresolved_tokens(self) -> List[str]:
        return [ref.token for ref in self.unresolved]


def lookup_path(source: Any, path: Sequence[str]) -> Any:
    """
    Walk a dot-path through nested mappings and lists.

    Numeric segments index into lists. Returns the module sentinel when
    any segment does not resolve.
    """
    current = source
    for segment in path:
        if isinstance(current, Mapping):
            if segment not in current:
                return _MISSING
            current = current[segment]
        elif isinstance(current, (list, tuple)):
            try:
                index = int(segment)
            except ValueError:
                return _MISSING
            if not 0 <= index < len(current):
                return _MISSING
            current = current[index]
        else:
            return _MISSING
    return current


def _unwrap_image(item: Any) -> Any:
    if isinstance(item, Mapping):
        for url_field in IMAGE_URL_FIELDS:
            if item.get(url_field):
                return item[url_field]
    return item


def _resolve_scalar(
    key: str,
    binding: ScalarBinding,
    prior_results: Mapping[str, StepResult],
    context: Optional[Mapping[str, Any]],
) -> Tuple[Any, Optional[UnresolvedReference]]:
    if isinstance(binding, LiteralValue):
        return binding.value, None

    if isinstance(binding, MalformedRef):
        return binding.token, UnresolvedReference(key, binding.token, "malformed")

    if isinstance(binding, ContextRef):
        if context is None:
            return binding.token, UnresolvedReference(key, binding.token, "missing_context")
        value = lookup_path(context, binding.path)
        if value is _MISSING:
            return binding.token, UnresolvedReference(key, binding.token, "path_not_found")
        return value, None

    # StepRef
    prior = prior_results.get(binding.step_id)
    if prior is None:
        return binding.token, UnresolvedReference(key, binding.token, "unknown_step")
    if not prior.success:
        return binding.token, UnresolvedReference(key, binding.token, "step_failed")
    value = lookup_path(prior.data, binding.path)
    if value is _MISSING:
        return binding.token, UnresolvedReference(key, binding.token, "path_not_found")
    return value, None


def resolve_bindings(
    bindings: Mapping[str, ParamBinding],
    prior_results: Mapping[str, StepResult],
    context: Optional[Mapping[str, Any]] = None,
) -> ResolvedParams:
    """
    Resolve pre-parsed bindings.

    Args:
        bindings: Parameter name → binding, as built by PlanStep
        prior_results: Step id → settled StepResult of earlier levels
        context: Ambient page context (may be None)

    Returns:
        ResolvedParams with a fresh parameter dict and diagnostics
    """
    resolved: Dict[str, Any] = {}
    unresolved: List[UnresolvedReference] = []

    for key, binding in bindings.items():
        if isinstance(binding, ArrayBinding):
            items = []
            for item in binding.items:
                value, problem = _resolve_scalar(key, item, prior_results, context)
                if problem:
                    unresolved.append(problem)
                elif key == "images" and is_reference(item):
                    value = _unwrap_image(value)
                items.append(value)
            resolved[key] = items
            continue

        value, problem = _resolve_scalar(key, binding, prior_results, context)
        if problem:
            unresolved.append(problem)
        elif key == "images" and isinstance(value, list) and is_reference(binding):
            value = [_unwrap_image(item) for item in value]
        resolved[key] = value

    return ResolvedParams(params=resolved, unresolved=unresolved)


def resolve_params(
    params: Mapping[str, Any],
    prior_results: Mapping[str, StepResult],
    context: Optional[Mapping[str, Any]] = None,
) -> ResolvedParams:
    """Resolve a raw parameter map (tokens not yet parsed)."""
    bindings = {key: parse_binding(value) for key, value in params.items()}
    return resolve_bindings(bindings, prior_results, context)


def _is_qualified_url_list(value: Any) -> bool:
    return (
        isinstance(value, list)
        and len(value) > 0
        and all(isinstance(url, str) and _QUALIFIED_URL.match(url) for url in value)
    )


def needs_images(action: str) -> bool:
    return any(marker in action for marker in IMAGE_ACTION_MARKERS)


def apply_image_override(
    action: str,
    params: Mapping[str, Any],
    uploaded_image_urls: Optional[Sequence[str]],
) -> Dict[str, Any]:
    """
    Force the request's uploaded images onto image-relevant steps.

    Planner output often carries placeholders ("PLACEHOLDER", "image_1")
    in `imageUrls`. Unless `imageUrls` already holds fully-qualified URLs,
    both `imageUrls` and `sourceImages` are replaced with the uploaded list.
    """
    result = dict(params)
    if not uploaded_image_urls or not needs_images(action):
        return result

    existing = result.get("imageUrls")
    urls = list(existing) if _is_qualified_url_list(existing) else list(uploaded_image_urls)
    for name in IMAGE_URL_PARAMS:
        result[name] = list(urls)
    return result
