"""
Distribution Planning

Decides how a deposit is spread across a concentrated-liquidity bucket range:
- BucketRange / LiquidityShape / AllocationPlan: the planner's vocabulary
- plan_distribution: per-bucket allocation for Spot, Curve and BidAsk
- resolve_range: concentrated / wide / custom range presets
- split_deposit: single-asset deposit → target amounts of both pool assets
"""

from .models import AllocationPlan, BucketRange, LiquidityShape, Side
from .planner import (
    RangePreset,
    linear_weights,
    plan_distribution,
    replan,
    resolve_range,
    split_sides,
)
from .split import AssetPrice, DepositSplit, split_deposit, x_share_for_range

__all__ = [
    "AllocationPlan",
    "BucketRange",
    "LiquidityShape",
    "Side",
    "RangePreset",
    "linear_weights",
    "plan_distribution",
    "replan",
    "resolve_range",
    "split_sides",
    "AssetPrice",
    "DepositSplit",
    "split_deposit",
    "x_share_for_range",
]
