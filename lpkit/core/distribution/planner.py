"""
Distribution Planner

Spreads a deposit's value across a bucket range according to a liquidity shape.

Side ownership: buckets strictly below the active bucket hold asset Y, the
active bucket and everything above it hold asset X. The boundary follows the
active bucket, so a plan is always rebuilt from scratch when it moves.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .models import AllocationPlan, BucketRange, LiquidityShape, Side

logger = logging.getLogger(__name__)


class RangePreset(str, Enum):
    """Bucket range presets relative to the active bucket."""

    CONCENTRATED = "concentrated"
    WIDE = "wide"
    CUSTOM = "custom"


PRESET_HALF_WIDTH: Dict[RangePreset, int] = {
    RangePreset.CONCENTRATED: 5,
    RangePreset.WIDE: 20,
}


def resolve_range(
    active_bucket_id: int,
    preset: "RangePreset | str" = RangePreset.CONCENTRATED,
    min_offset: Optional[int] = None,
    max_offset: Optional[int] = None,
) -> BucketRange:
    """
    Turn a preset (or custom offsets) into an absolute bucket range.

    Args:
        active_bucket_id: The pool's current bucket
        preset: concentrated (±5), wide (±20) or custom
        min_offset: Lower offset from the active bucket (custom only)
        max_offset: Upper offset from the active bucket (custom only)
    """
    preset = RangePreset(preset)

    if preset is RangePreset.CUSTOM:
        if min_offset is None or max_offset is None:
            raise ValueError("Custom range requires both min_offset and max_offset")
        if min_offset > max_offset:
            raise ValueError("min_offset must not exceed max_offset")
        return BucketRange(
            lower_bucket_id=active_bucket_id + min_offset,
            upper_bucket_id=active_bucket_id + max_offset,
            active_bucket_id=active_bucket_id,
        )

    half_width = PRESET_HALF_WIDTH[preset]
    return BucketRange(
        lower_bucket_id=active_bucket_id - half_width,
        upper_bucket_id=active_bucket_id + half_width,
        active_bucket_id=active_bucket_id,
    )


def split_sides(bucket_range: BucketRange) -> Tuple[List[int], List[int]]:
    """Return (y_bucket_ids, x_bucket_ids), each ascending."""
    y_ids: List[int] = []
    x_ids: List[int] = []
    for bucket_id in bucket_range.bucket_ids:
        if bucket_range.side_of(bucket_id) is Side.Y:
            y_ids.append(bucket_id)
        else:
            x_ids.append(bucket_id)
    return y_ids, x_ids


def linear_weights(n: int, total: float) -> List[float]:
    """
    Arithmetic sequence step*1, step*2, ..., step*n summing to ``total``.

    step = 2T / (n(n+1)). Strictly increasing for T > 0.
    """
    if n <= 0:
        return []
    step = 2 * total / (n * (n + 1))
    return [step * i for i in range(1, n + 1)]


def _side_weights(shape: LiquidityShape, n: int, total: float, toward_active_ascending: bool) -> List[float]:
    """
    Weights for one side in ascending bucket-id order.

    ``toward_active_ascending`` is True when bucket ids increase toward the
    active bucket (the Y side) and False when they increase away from it.
    """
    if n == 0:
        return []

    if shape is LiquidityShape.SPOT:
        return [total / n] * n

    # Curve: heaviest next to the active bucket
    weights = linear_weights(n, total)
    if not toward_active_ascending:
        weights.reverse()

    if shape is LiquidityShape.BID_ASK:
        weights.reverse()

    return weights


def plan_distribution(
    total_x: float,
    total_y: float,
    bucket_range: BucketRange,
    shape: "LiquidityShape | str" = LiquidityShape.SPOT,
) -> AllocationPlan:
    """
    Compute how much of each asset goes into every bucket of the range.

    Args:
        total_x: Value to place on the X side (active bucket and above)
        total_y: Value to place on the Y side (strictly below active)
        bucket_range: Range bounds and current active bucket
        shape: Spot, Curve or BidAsk

    Returns:
        A fresh AllocationPlan. Nothing from any previous plan is reused.
    """
    if total_x < 0 or total_y < 0:
        raise ValueError("Side totals cannot be negative")

    shape = LiquidityShape.parse(shape)
    y_ids, x_ids = split_sides(bucket_range)

    side_x, side_y = total_x, total_y
    if not x_ids and y_ids:
        # Active bucket above the range: only Y buckets exist
        side_x, side_y = 0.0, total_x + total_y
    elif not y_ids and x_ids:
        # Active bucket at or below the lower bound: only X buckets exist
        side_x, side_y = total_x + total_y, 0.0

    y_weights = _side_weights(shape, len(y_ids), side_y, toward_active_ascending=True)
    x_weights = _side_weights(shape, len(x_ids), side_x, toward_active_ascending=False)

    plan = AllocationPlan(
        bucket_range=bucket_range,
        shape=shape,
        input_x=total_x,
        input_y=total_y,
        x=dict(zip(x_ids, x_weights)),
        y=dict(zip(y_ids, y_weights)),
    )

    logger.debug(
        "Planned %s distribution over buckets %d..%d (active %d): %d X buckets, %d Y buckets",
        shape.value,
        bucket_range.lower_bucket_id,
        bucket_range.upper_bucket_id,
        bucket_range.active_bucket_id,
        len(x_ids),
        len(y_ids),
    )
    return plan


def replan(plan: AllocationPlan, active_bucket_id: int) -> AllocationPlan:
    """Rebuild a plan for a moved active bucket, keeping bounds, shape and inputs."""
    return plan_distribution(
        plan.input_x,
        plan.input_y,
        plan.bucket_range.with_active(active_bucket_id),
        plan.shape,
    )


__all__ = [
    "RangePreset",
    "resolve_range",
    "split_sides",
    "linear_weights",
    "plan_distribution",
    "replan",
]
