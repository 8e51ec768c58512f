"""Relay tip tiers and tip transaction building."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from solders.pubkey import Pubkey
from solders.system_program import TransferParams, transfer

from .transactions import build_unsigned_transaction

LAMPORTS_PER_SOL = 1_000_000_000

# Relay tip recipients. Any one of them credits the bundle.
TIP_ACCOUNTS: Tuple[str, ...] = (
    "96gYZGLnJYVFmbjzopPSU6QiEV5fGqZNyN9nmNhvrZU5",
    "HFqU5x63VTqvQss8hp11i4wVV8bD44PvwucfZ2bU7gRe",
    "Cw8CFyM9FkoMi7K7Crf6HNQqf4uEMzpKw6QNghXLvLkY",
    "ADaUMid9yfUytqMBgopwjb2DTLSokTSzL1zt6iGPaS49",
    "DfXygSm4jCyNCybVYYK6DwvWqjKee8pbDmJGcLWNDXjh",
    "ADuUkR4vqLUMWXxW9gh6D6L8pMSawimctcNZ5pGwDcEt",
    "DttWaMuVvTiduZRnguLF7jNxTgiMBZ1hyAumKUiL2KRL",
    "3AVi9Tg9Uo68tJfuvoKvqKNWKkC5wPdSSdeBnizKZ6jT",
)


class TipSpeed(str, Enum):
    """Inclusion speed tiers."""
    LOW = "low"
    MEDIUM = "medium"
    FAST = "fast"
    EXTRA_FAST = "extraFast"

    @classmethod
    def parse(cls, value: "str | TipSpeed") -> "TipSpeed":
        if isinstance(value, TipSpeed):
            return value
        normalized = value.replace("_", "").replace("-", "").lower()
        for speed in cls:
            if speed.value.lower() == normalized:
                return speed
        raise ValueError(f"Unknown tip speed: {value}")


TIP_LAMPORTS: Dict[TipSpeed, int] = {
    TipSpeed.LOW: 500_000,          # 0.0005 SOL
    TipSpeed.MEDIUM: 1_000_000,     # 0.001 SOL
    TipSpeed.FAST: 2_500_000,       # 0.0025 SOL
    TipSpeed.EXTRA_FAST: 5_000_000, # 0.005 SOL
}


@dataclass(frozen=True)
class TipTransaction:
    payload: str
    lamports: int
    recipient: str


def choose_tip_account(rng: Optional[random.Random] = None) -> str:
    return (rng or random).choice(TIP_ACCOUNTS)


def build_tip_transaction(
    payer_address: str,
    recent_blockhash: str,
    speed: "TipSpeed | str" = TipSpeed.FAST,
    rng: Optional[random.Random] = None,
) -> TipTransaction:
    """
    Build an unsigned system transfer paying a random tip account.

    Args:
        payer_address: Fee payer and tip source (base58)
        recent_blockhash: Reference block marker shared with the rest of the bundle
        speed: Tip tier
        rng: Random source for the recipient choice
    """
    lamports = TIP_LAMPORTS[TipSpeed.parse(speed)]
    recipient = choose_tip_account(rng)
    payer = Pubkey.from_string(payer_address)

    ix = transfer(TransferParams(
        from_pubkey=payer,
        to_pubkey=Pubkey.from_string(recipient),
        lamports=lamports,
    ))

    return TipTransaction(
        payload=build_unsigned_transaction(payer, [ix], recent_blockhash),
        lamports=lamports,
        recipient=recipient,
    )


__all__ = [
    "LAMPORTS_PER_SOL",
    "TIP_ACCOUNTS",
    "TIP_LAMPORTS",
    "TipSpeed",
    "TipTransaction",
    "choose_tip_account",
    "build_tip_transaction",
]
