"""Typed models used by the distribution planner."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Tuple


class LiquidityShape(str, Enum):
    """Weighting function applied to each side of the active bucket."""

    SPOT = "spot"
    CURVE = "curve"
    BID_ASK = "bidask"

    @classmethod
    def parse(cls, value: "str | LiquidityShape") -> "LiquidityShape":
        """Accept the spellings callers use: ``Spot``, ``Bid-Ask``, ``bid_ask``..."""
        if isinstance(value, LiquidityShape):
            return value
        normalized = value.strip().lower().replace("-", "").replace("_", "").replace(" ", "")
        for shape in cls:
            if shape.value == normalized:
                return shape
        raise ValueError(f"Unknown liquidity shape: {value}")


class Side(str, Enum):
    """Which pool asset a bucket holds."""

    X = "x"  # buckets at or above the active bucket
    Y = "y"  # buckets strictly below the active bucket


@dataclass(frozen=True)
class BucketRange:
    """
    A contiguous range of buckets plus the pool's active bucket.

    The active bucket may sit inside, on an edge of, or outside the range.
    """

    lower_bucket_id: int
    upper_bucket_id: int
    active_bucket_id: int

    def __post_init__(self):
        if self.lower_bucket_id > self.upper_bucket_id:
            raise ValueError(
                f"lower_bucket_id ({self.lower_bucket_id}) must not exceed "
                f"upper_bucket_id ({self.upper_bucket_id})"
            )

    @property
    def bucket_count(self) -> int:
        return self.upper_bucket_id - self.lower_bucket_id + 1

    @property
    def bucket_ids(self) -> List[int]:
        return list(range(self.lower_bucket_id, self.upper_bucket_id + 1))

    @property
    def active_in_range(self) -> bool:
        return self.lower_bucket_id <= self.active_bucket_id <= self.upper_bucket_id

    def side_of(self, bucket_id: int) -> Side:
        return Side.Y if bucket_id < self.active_bucket_id else Side.X

    def with_active(self, active_bucket_id: int) -> "BucketRange":
        """Same bounds, new active bucket."""
        return replace(self, active_bucket_id=active_bucket_id)

    def to_dict(self) -> Dict[str, int]:
        return {
            "lowerBucketId": self.lower_bucket_id,
            "upperBucketId": self.upper_bucket_id,
            "activeBucketId": self.active_bucket_id,
        }


@dataclass(frozen=True)
class AllocationPlan:
    """
    Per-bucket value for each pool asset.

    ``x`` and ``y`` are keyed by bucket id in ascending order. The values on a
    side sum to that side's total (``total_x`` / ``total_y``). When the active
    bucket lies outside the range, one side has no buckets and the value given
    for it is routed to the other side, so the totals can differ from the inputs.
    """

    bucket_range: BucketRange
    shape: LiquidityShape
    input_x: float
    input_y: float
    x: Dict[int, float] = field(default_factory=dict)
    y: Dict[int, float] = field(default_factory=dict)

    @property
    def total_x(self) -> float:
        return sum(self.x.values())

    @property
    def total_y(self) -> float:
        return sum(self.y.values())

    @property
    def x_bucket_count(self) -> int:
        return len(self.x)

    @property
    def y_bucket_count(self) -> int:
        return len(self.y)

    @property
    def is_empty(self) -> bool:
        return self.input_x == 0 and self.input_y == 0

    def amounts_for(self, bucket_id: int) -> Tuple[float, float]:
        """(x, y) value placed in ``bucket_id``; zero for buckets outside the plan."""
        return self.x.get(bucket_id, 0.0), self.y.get(bucket_id, 0.0)

    def rows(self) -> Iterator[Tuple[int, float, float]]:
        for bucket_id in self.bucket_range.bucket_ids:
            x, y = self.amounts_for(bucket_id)
            yield bucket_id, x, y

    def to_dict(self) -> Dict[str, Any]:
        return {
            "range": self.bucket_range.to_dict(),
            "shape": self.shape.value,
            "totalX": self.total_x,
            "totalY": self.total_y,
            "buckets": [
                {"bucketId": bucket_id, "x": x, "y": y}
                for bucket_id, x, y in self.rows()
            ],
        }
