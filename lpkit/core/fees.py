"""
Protocol Fee Calculator

Computes the protocol fee owed on a gross deposit. Pure and deterministic:
no I/O, no clock, no global state beyond the config passed in.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..config import Settings


@dataclass(frozen=True)
class FeeConfig:
    """Fee parameters. Owned externally, read-only once built."""

    fee_bps: int = 100
    min_fee_absolute: float = 10_000
    treasury_address: str = "BNQnCszvPwYfjBMUmFgmCooMSRrdkC7LncMQBExDakLp"
    exempt_threshold_usd: float = 1.0

    def __post_init__(self):
        if not 0 <= self.fee_bps <= 10_000:
            raise ValueError(f"fee_bps must be within 0..10000, got {self.fee_bps}")
        if self.min_fee_absolute < 0:
            raise ValueError("min_fee_absolute cannot be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeeConfig":
        return cls(
            fee_bps=settings.fee_bps,
            min_fee_absolute=settings.min_fee_absolute,
            treasury_address=settings.treasury_address,
            exempt_threshold_usd=settings.exempt_threshold_usd,
        )


@dataclass(frozen=True)
class ProtocolFee:
    amount: float
    bps: int
    recipient: str


@dataclass(frozen=True)
class FeeTotals:
    gross_amount: float
    net_amount: float


@dataclass(frozen=True)
class FeeBreakdown:
    """Derived fee annotation for a gross amount. Never persisted."""

    protocol: ProtocolFee
    total: FeeTotals
    exempt: bool = False

    @property
    def fee_amount(self) -> float:
        return self.protocol.amount

    def to_dict(self) -> Dict[str, Any]:
        return {
            "protocol": {
                "amount": self.protocol.amount,
                "bps": self.protocol.bps,
                "recipient": self.protocol.recipient,
            },
            "total": {
                "grossAmount": self.total.gross_amount,
                "netAmount": self.total.net_amount,
            },
            "exempt": self.exempt,
        }


def compute_fee(
    gross_amount: float,
    usd_price: float,
    config: Optional[FeeConfig] = None,
) -> FeeBreakdown:
    """
    Compute the protocol fee for a gross deposit.

    fee = max(gross * bps / 10000, min_fee_absolute), or 0 when the deposit is
    worth less than the exemption threshold. net = gross - fee.

    Args:
        gross_amount: Deposit size in base units
        usd_price: USD value of one base unit
        config: Fee parameters (defaults to the built-in schedule)
    """
    if gross_amount < 0:
        raise ValueError("gross_amount cannot be negative")

    config = config or FeeConfig()

    exempt = gross_amount * usd_price < config.exempt_threshold_usd
    if exempt:
        fee = 0.0
    else:
        fee = max(gross_amount * config.fee_bps / 10_000, config.min_fee_absolute)

    return FeeBreakdown(
        protocol=ProtocolFee(amount=fee, bps=config.fee_bps, recipient=config.treasury_address),
        total=FeeTotals(gross_amount=gross_amount, net_amount=gross_amount - fee),
        exempt=exempt,
    )


def format_fee(breakdown: FeeBreakdown, symbol: str = "") -> str:
    """Render a fee for display, e.g. ``10,000 SOL (1.00% protocol fee)``."""
    amount = breakdown.protocol.amount
    amount_str = f"{amount:,.0f}" if float(amount).is_integer() else f"{amount:,}"
    pct = breakdown.protocol.bps / 100
    return f"{amount_str} {symbol} ({pct:.2f}% protocol fee)".replace("  ", " ").strip()


__all__ = [
    "FeeConfig",
    "FeeBreakdown",
    "ProtocolFee",
    "FeeTotals",
    "compute_fee",
    "format_fee",
]
