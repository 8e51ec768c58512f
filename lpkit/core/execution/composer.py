"""
Transaction Composer

Builds the ordered, role-tagged transaction set for one bundle:

    [conversion, conversion?] -> deposit | withdraw -> tip

Pool-program instruction encoding belongs to a ``PoolTransactionBuilder``
collaborator. Aggregator swaps come from the quote provider. The composer only
decides order, signs ephemeral position accounts, and enforces the bundle
size ceiling before anything touches the network.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence

from solders.keypair import Keypair

from ...config import Settings
from ...providers.jupiter import ConversionQuote
from ..distribution import AllocationPlan, BucketRange, LiquidityShape, plan_distribution
from ..errors import BundleSizeExceeded
from .models import (
    MAX_BUNDLE_TRANSACTIONS,
    ComposedBundle,
    TaggedTransaction,
    TransactionRole,
    UnsignedTransactionSet,
)
from .tips import TipSpeed, build_tip_transaction
from .transactions import apply_signature

logger = logging.getLogger(__name__)

MAX_CONVERSIONS = 2


@dataclass(frozen=True)
class DepositBuildRequest:
    """What the pool builder needs to encode a deposit."""
    owner_address: str
    pool_address: str
    position_address: str
    new_position: bool
    amount_x: int
    amount_y: int
    plan: AllocationPlan
    recent_blockhash: str
    slippage_bps: int


@dataclass(frozen=True)
class WithdrawBuildRequest:
    owner_address: str
    pool_address: str
    position_address: str
    bucket_range: Optional[BucketRange]
    basis_points: int
    close_position: bool
    recent_blockhash: str


@dataclass(frozen=True)
class WithdrawBuild:
    """Encoded withdraw transaction and the amounts it is predicted to release."""
    payload: str
    expected_x: int = 0
    expected_y: int = 0


class PoolTransactionBuilder(Protocol):
    """Encodes pool-program deposit and withdraw transactions (unsigned, base64)."""

    async def build_deposit(self, request: DepositBuildRequest) -> str:
        ...

    async def build_withdraw(self, request: WithdrawBuildRequest) -> WithdrawBuild:
        ...


class ConversionBuilder(Protocol):
    async def build_conversion_transaction(self, quote: ConversionQuote, caller_address: str) -> str:
        ...


@dataclass
class DepositRequest:
    """
    A deposit into a pool position.

    ``amount_x``/``amount_y`` are what lands in the position, after any
    conversions in the same bundle. Leave ``position_address`` empty to open
    a new position.
    """
    owner_address: str
    pool_address: str
    amount_x: int
    amount_y: int
    bucket_range: BucketRange
    shape: LiquidityShape = LiquidityShape.SPOT
    plan: Optional[AllocationPlan] = None
    position_address: Optional[str] = None
    slippage_bps: int = 100


@dataclass
class WithdrawRequest:
    owner_address: str
    pool_address: str
    position_address: str
    bucket_range: Optional[BucketRange] = None
    basis_points: int = 10_000          # 10_000 = everything
    close_position: bool = True
    asset_x: Optional[str] = None       # Mints of the released assets, for follow-up conversions
    asset_y: Optional[str] = None

    def __post_init__(self):
        if not 0 < self.basis_points <= 10_000:
            raise ValueError("basis_points must be in (0, 10000]")


def check_bundle_size(count: int) -> None:
    if count > MAX_BUNDLE_TRANSACTIONS:
        raise BundleSizeExceeded(count, MAX_BUNDLE_TRANSACTIONS)


class TransactionComposer:
    """
    Composes unsigned bundles.

    Usage:
        composer = TransactionComposer.from_settings(jupiter, pool_builder, settings)
        bundle = await composer.compose_deposit(request, blockhash, quotes=[quote])
    """

    def __init__(
        self,
        conversions: ConversionBuilder,
        pool_builder: PoolTransactionBuilder,
        default_tip_speed: "TipSpeed | str" = TipSpeed.FAST,
        rng: Optional[random.Random] = None,
    ):
        self._conversions = conversions
        self._pool_builder = pool_builder
        self._default_tip_speed = TipSpeed.parse(default_tip_speed)
        self._rng = rng

    @classmethod
    def from_settings(
        cls,
        conversions: ConversionBuilder,
        pool_builder: PoolTransactionBuilder,
        settings: Settings,
        rng: Optional[random.Random] = None,
    ) -> "TransactionComposer":
        """Composer whose default tip tier comes from ``DEFAULT_TIP_SPEED``."""
        return cls(conversions, pool_builder, default_tip_speed=settings.default_tip_speed, rng=rng)

    @property
    def default_tip_speed(self) -> TipSpeed:
        return self._default_tip_speed

    async def compose_deposit(
        self,
        request: DepositRequest,
        recent_blockhash: str,
        quotes: Sequence[ConversionQuote] = (),
        tip_speed: "TipSpeed | str | None" = None,
    ) -> ComposedBundle:
        """
        Compose conversions, the deposit and the tip.

        Raises:
            BundleSizeExceeded: too many transactions, before any network call
            QuoteUnavailable: a conversion quote is stale or could not be built
        """
        check_bundle_size(len(quotes) + 2)
        if len(quotes) > MAX_CONVERSIONS:
            raise ValueError(f"At most {MAX_CONVERSIONS} conversions per deposit, got {len(quotes)}")

        plan = request.plan or plan_distribution(
            request.amount_x,
            request.amount_y,
            request.bucket_range,
            request.shape,
        )

        transactions: List[TaggedTransaction] = []
        for quote in quotes:
            payload = await self._conversions.build_conversion_transaction(quote, request.owner_address)
            transactions.append(TaggedTransaction(
                role=TransactionRole.CONVERSION,
                payload=payload,
                label=f"{quote.input_asset}->{quote.output_asset}",
            ))

        position_keypair: Optional[Keypair] = None
        position_address = request.position_address
        if position_address is None:
            position_keypair = Keypair()
            position_address = str(position_keypair.pubkey())

        deposit = await self._pool_builder.build_deposit(DepositBuildRequest(
            owner_address=request.owner_address,
            pool_address=request.pool_address,
            position_address=position_address,
            new_position=position_keypair is not None,
            amount_x=request.amount_x,
            amount_y=request.amount_y,
            plan=plan,
            recent_blockhash=recent_blockhash,
            slippage_bps=request.slippage_bps,
        ))
        if position_keypair is not None:
            # New position accounts must co-sign their own creation
            deposit = apply_signature(deposit, position_keypair)
        transactions.append(TaggedTransaction(role=TransactionRole.DEPOSIT, payload=deposit))

        return self._finish(
            transactions,
            request.owner_address,
            recent_blockhash,
            tip_speed,
            bucket_range=plan.bucket_range,
            plan=plan,
            position_keypair=position_keypair,
            position_address=position_address,
            expected_x=request.amount_x,
            expected_y=request.amount_y,
        )

    async def compose_withdraw(
        self,
        request: WithdrawRequest,
        recent_blockhash: str,
        tip_speed: "TipSpeed | str | None" = None,
    ) -> ComposedBundle:
        """Compose the withdraw and the tip. Converting the proceeds is a follow-up, not part of the bundle."""
        check_bundle_size(2)

        build = await self._pool_builder.build_withdraw(WithdrawBuildRequest(
            owner_address=request.owner_address,
            pool_address=request.pool_address,
            position_address=request.position_address,
            bucket_range=request.bucket_range,
            basis_points=request.basis_points,
            close_position=request.close_position,
            recent_blockhash=recent_blockhash,
        ))

        return self._finish(
            [TaggedTransaction(role=TransactionRole.WITHDRAW, payload=build.payload)],
            request.owner_address,
            recent_blockhash,
            tip_speed,
            bucket_range=request.bucket_range,
            position_address=request.position_address,
            expected_x=build.expected_x,
            expected_y=build.expected_y,
        )

    async def compose_conversion(
        self,
        quote: ConversionQuote,
        owner_address: str,
        recent_blockhash: str,
        tip_speed: "TipSpeed | str | None" = None,
    ) -> ComposedBundle:
        """A standalone conversion bundle, used for follow-ups after a landed withdraw."""
        payload = await self._conversions.build_conversion_transaction(quote, owner_address)
        return self._finish(
            [TaggedTransaction(
                role=TransactionRole.CONVERSION,
                payload=payload,
                label=f"{quote.input_asset}->{quote.output_asset}",
            )],
            owner_address,
            recent_blockhash,
            tip_speed,
            expected_x=quote.min_output_amount,
        )

    def _finish(
        self,
        transactions: List[TaggedTransaction],
        owner_address: str,
        recent_blockhash: str,
        tip_speed: "TipSpeed | str | None",
        **extra,
    ) -> ComposedBundle:
        speed = TipSpeed.parse(tip_speed) if tip_speed is not None else self._default_tip_speed
        tip = build_tip_transaction(owner_address, recent_blockhash, speed, rng=self._rng)
        transactions.append(TaggedTransaction(role=TransactionRole.TIP, payload=tip.payload))
        check_bundle_size(len(transactions))

        tx_set = UnsignedTransactionSet(tuple(transactions))
        logger.info(
            "Composed bundle: %s, tip %s (%d lamports) to %s",
            [role.value for role in tx_set.roles],
            speed.value,
            tip.lamports,
            tip.recipient,
        )
        return ComposedBundle(
            transactions=tx_set,
            tip_lamports=tip.lamports,
            tip_account=tip.recipient,
            **extra,
        )


__all__ = [
    "MAX_CONVERSIONS",
    "DepositBuildRequest",
    "WithdrawBuildRequest",
    "WithdrawBuild",
    "PoolTransactionBuilder",
    "ConversionBuilder",
    "DepositRequest",
    "WithdrawRequest",
    "TransactionComposer",
    "check_bundle_size",
]
