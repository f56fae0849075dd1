"""
Cost Estimator

Computes request cost estimates from token counts and image counts.

DESIGN RULES:
- Pure functions, no side effects
- estimate_cost never throws (returns 0.0 on error)
"""

from typing import Dict, Any, Optional

from cost.model_pricing import IMAGE_GENERATION_COST_USD, get_pricing


def estimate_cost(
    metadata: Dict[str, Any],
    input_tokens: Optional[int] = None,
    output_tokens: Optional[int] = None,
) -> float:
    """
    Estimate the text-generation cost of a request.

    Args:
        metadata: Metadata containing model and tokens_used
        input_tokens: Override input token count (optional)
        output_tokens: Override output token count (optional)

    Returns:
        Estimated cost in USD (0.0 on error or missing data)
    """
    try:
        model = metadata.get("model", "unknown")
        pricing = get_pricing(model)
        total_tokens = metadata.get("tokens_used", 0)

        # tokens_used is a total; assume a 70/30 input/output split
        if input_tokens is None or output_tokens is None:
            input_tokens = input_tokens or int(total_tokens * 0.7)
            output_tokens = output_tokens or int(total_tokens * 0.3)

        input_cost = (input_tokens / 1000) * pricing["input_per_1k"]
        output_cost = (output_tokens / 1000) * pricing["output_per_1k"]

        return round(input_cost + output_cost, 8)

    except Exception:
        return 0.0


def estimate_image_cost(count: int, cost_per_image: float = IMAGE_GENERATION_COST_USD) -> float:
    """Linear estimate for generating `count` images."""
    return round(count * cost_per_image, 8)
