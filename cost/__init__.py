# Cost Package
from cost.model_pricing import MODEL_PRICING, IMAGE_GENERATION_COST_USD
from cost.estimator import estimate_cost, estimate_image_cost

__all__ = ["MODEL_PRICING", "IMAGE_GENERATION_COST_USD", "estimate_cost", "estimate_image_cost"]
