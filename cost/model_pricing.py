"""
Model Pricing Table

Static pricing configuration for cost estimation.
Text prices are in USD per 1K tokens; image prices are per generated image.

DESIGN RULES:
- Configuration only, no logic
- Easy to update when prices change
"""

from typing import Dict


# Azure OpenAI / OpenAI pricing (USD per 1K tokens)
MODEL_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4o-mini": {
        "input_per_1k": 0.00015,
        "output_per_1k": 0.0006,
    },
    "gpt-4o": {
        "input_per_1k": 0.0025,
        "output_per_1k": 0.01,
    },
    "gpt-4-turbo": {
        "input_per_1k": 0.01,
        "output_per_1k": 0.03,
    },
}

# Default pricing for unknown models (conservative estimate)
DEFAULT_PRICING = {
    "input_per_1k": 0.001,
    "output_per_1k": 0.002,
}

# Flat estimate per generated product image
IMAGE_GENERATION_COST_USD = 0.01


def get_pricing(model: str) -> Dict[str, float]:
    """
    Get pricing for a model.

    Args:
        model: Model name (e.g., 'gpt-4o-mini')

    Returns:
        Dict with input_per_1k and output_per_1k prices
    """
    if model in MODEL_PRICING:
        return MODEL_PRICING[model]

    # Fuzzy match (handle deployment name variations), longest name first
    model_lower = model.lower()
    for known_model in sorted(MODEL_PRICING, key=len, reverse=True):
        if known_model in model_lower:
            return MODEL_PRICING[known_model]

    return DEFAULT_PRICING
