"""
Parameter Bindings

Closed set of variants a step parameter can take once a plan is built.
Reference tokens are parsed ONCE, when the step is constructed, so the
resolver only ever matches over these types.

TOKEN FORMS:
    "$step:<step_id>.<dot.path>"   → StepRef
    "$context:<dot.path>"          → ContextRef
    "$step:" / "$context:" that does
    not match the grammar          → MalformedRef (kept as-is, reported)
    anything else                  → LiteralValue
    list at the top of a value     → ArrayBinding (one level deep)
"""

import re
from dataclasses import dataclass
from typing import Any, Tuple, Union


STEP_PREFIX = "$step:"
CONTEXT_PREFIX = "$context:"

_STEP_TOKEN = re.compile(r"^\$step:(\w+)\.(.+)$")


@dataclass(frozen=True)
class LiteralValue:
    """A value used exactly as the planner wrote it."""
    value: Any


@dataclass(frozen=True)
class StepRef:
    """Reference into the output data of an earlier step."""
    step_id: str
    path: Tuple[str, ...]
    token: str


@dataclass(frozen=True)
class ContextRef:
    """Reference into the ambient page context."""
    path: Tuple[str, ...]
    token: str


@dataclass(frozen=True)
class MalformedRef:
    """A token-like string that does not follow the token grammar."""
    token: str


ScalarBinding = Union[LiteralValue, StepRef, ContextRef, MalformedRef]


@dataclass(frozen=True)
class ArrayBinding:
    """A list value whose elements are bound independently."""
    items: Tuple[ScalarBinding, ...]

    @property
    def has_references(self) -> bool:
        return any(isinstance(item, (StepRef, ContextRef)) for item in self.items)


ParamBinding = Union[LiteralValue, StepRef, ContextRef, MalformedRef, ArrayBinding]


def _split_path(path: str) -> Tuple[str, ...]:
    return tuple(segment for segment in path.split(".") if segment)


def parse_scalar(value: Any) -> ScalarBinding:
    """
    Parse a single value into a binding.

    Strings with a token prefix that do not match the token grammar
    (e.g. "$step:step_1" with no path, "$step:step-1.url") become
    MalformedRef.
    """
    if isinstance(value, str):
        if value.startswith(CONTEXT_PREFIX):
            path = _split_path(value[len(CONTEXT_PREFIX):])
            if path:
                return ContextRef(path=path, token=value)
            return MalformedRef(token=value)
        if value.startswith(STEP_PREFIX):
            match = _STEP_TOKEN.match(value)
            if match:
                step_id, path = match.groups()
                segments = _split_path(path)
                if segments:
                    return StepRef(step_id=step_id, path=segments, token=value)
            return MalformedRef(token=value)
    return LiteralValue(value)


def parse_binding(value: Any) -> ParamBinding:
    """Parse a top-level parameter value."""
    if isinstance(value, list):
        return ArrayBinding(items=tuple(parse_scalar(item) for item in value))
    return parse_scalar(value)


def is_reference(binding: ParamBinding) -> bool:
    """True if the binding depends on step output or context."""
    if isinstance(binding, ArrayBinding):
        return binding.has_references
    return isinstance(binding, (StepRef, ContextRef))
