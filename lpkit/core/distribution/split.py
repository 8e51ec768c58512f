"""
Deposit Value Split

Converts a single-asset deposit into target amounts of the pool's two assets
at current USD prices.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from .models import BucketRange


@dataclass(frozen=True)
class AssetPrice:
    """Identity, precision and USD price of one asset."""

    mint: str
    decimals: int
    price_usd: float

    def to_base_units(self, usd_value: float) -> int:
        if self.price_usd <= 0:
            raise ValueError(f"Price for {self.mint} must be positive")
        return math.floor(usd_value / self.price_usd * 10 ** self.decimals)

    def to_usd(self, base_units: float) -> float:
        return base_units / 10 ** self.decimals * self.price_usd


@dataclass(frozen=True)
class DepositSplit:
    """
    Target pool amounts for a deposit.

    ``convert_to_x`` / ``convert_to_y`` are the collateral base units to route
    through a conversion; zero when that pool asset is the collateral itself or
    receives no share.
    """

    collateral_usd: float
    x_share: float
    target_x: int
    target_y: int
    convert_to_x: int
    convert_to_y: int

    @property
    def needs_conversion(self) -> bool:
        return self.convert_to_x > 0 or self.convert_to_y > 0


def x_share_for_range(bucket_range: BucketRange, default: float = 0.5) -> float:
    """Force a one-sided deposit when the active bucket is outside the range."""
    if bucket_range.active_bucket_id > bucket_range.upper_bucket_id:
        return 0.0
    if bucket_range.active_bucket_id <= bucket_range.lower_bucket_id:
        # every bucket is at or above the active bucket
        return 1.0
    return default


def split_deposit(
    collateral_amount: int,
    collateral: AssetPrice,
    asset_x: AssetPrice,
    asset_y: AssetPrice,
    x_share: Optional[float] = None,
) -> DepositSplit:
    """
    Split a collateral deposit into X and Y targets.

    Args:
        collateral_amount: Deposit in collateral base units
        collateral: Collateral asset and price
        asset_x: Pool asset X and price
        asset_y: Pool asset Y and price
        x_share: Fraction of value that becomes X (default 0.5)
    """
    share = 0.5 if x_share is None else x_share
    if not 0.0 <= share <= 1.0:
        raise ValueError("x_share must be within [0, 1]")
    if collateral_amount < 0:
        raise ValueError("collateral_amount cannot be negative")

    collateral_usd = collateral.to_usd(collateral_amount)
    usd_x = collateral_usd * share
    usd_y = collateral_usd - usd_x

    convert_x = math.floor(collateral_amount * share)
    convert_y = math.floor(collateral_amount * (1 - share))

    if asset_x.mint == collateral.mint:
        target_x, convert_x = convert_x, 0
    else:
        target_x = asset_x.to_base_units(usd_x) if share > 0 else 0

    if asset_y.mint == collateral.mint:
        target_y, convert_y = convert_y, 0
    else:
        target_y = asset_y.to_base_units(usd_y) if share < 1 else 0

    return DepositSplit(
        collateral_usd=collateral_usd,
        x_share=share,
        target_x=target_x,
        target_y=target_y,
        convert_to_x=convert_x,
        convert_to_y=convert_y,
    )


__all__ = [
    "AssetPrice",
    "DepositSplit",
    "split_deposit",
    "x_share_for_range",
]
