"""
Liquidity Deployment Pipeline

End-to-end flow for one caller request:

    fee -> split -> quotes -> plan -> compose -> sign -> coordinate

Each stage's taxonomy failure ends the request with a failed
``DeploymentResult``; nothing taxonomy-level is raised to the caller.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx
import structlog

from ..config import Settings
from ..providers.errors import SolanaRpcError
from ..providers.jupiter import ConversionQuote, resolve_asset_mint
from .distribution import (
    AllocationPlan,
    AssetPrice,
    BucketRange,
    DepositSplit,
    LiquidityShape,
    split_deposit,
    x_share_for_range,
)
from .errors import DeploymentError, FollowUpFailed, SubmissionRejected
from .execution import (
    BundleCoordinator,
    BundleExecution,
    ComposedBundle,
    DepositRequest,
    Signer,
    TimedOut,
    TransactionComposer,
    WithdrawRequest,
    sign_sequentially,
)
from .fees import FeeBreakdown, FeeConfig, compute_fee

logger = logging.getLogger(__name__)


class QuoteSource(Protocol):
    async def get_quote(
        self,
        input_asset: str,
        output_asset: str,
        amount: int,
        slippage_bps: Optional[int] = None,
    ) -> ConversionQuote:
        ...


class BlockhashSource(Protocol):
    async def get_latest_blockhash(self) -> str:
        ...


@dataclass
class DeploymentRequest:
    """
    Deploy a single collateral asset into a pool.

    ``collateral_amount`` is the gross deposit in collateral base units; the
    protocol fee is taken off before the split.
    """
    owner_address: str
    pool_address: str
    collateral: AssetPrice
    collateral_amount: int
    asset_x: AssetPrice
    asset_y: AssetPrice
    bucket_range: BucketRange
    shape: LiquidityShape = LiquidityShape.SPOT
    x_share: Optional[float] = None
    slippage_bps: Optional[int] = None
    tip_speed: Optional[str] = None
    position_address: Optional[str] = None


@dataclass
class FollowUpResult:
    """One best-effort action after a landed bundle."""
    action: str
    success: bool
    bundle_id: Optional[str] = None
    transaction_ids: Dict[str, List[str]] = field(default_factory=dict)
    error: Optional[DeploymentError] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "success": self.success,
            "bundleId": self.bundle_id,
            "transactionIds": self.transaction_ids,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass
class DeploymentResult:
    """Outcome of a deploy or withdraw request."""
    success: bool
    execution: Optional[BundleExecution] = None
    transaction_ids: Dict[str, List[str]] = field(default_factory=dict)
    position_address: Optional[str] = None
    fee: Optional[FeeBreakdown] = None
    split: Optional[DepositSplit] = None
    plan: Optional[AllocationPlan] = None
    expected_x: int = 0
    expected_y: int = 0
    error: Optional[DeploymentError] = None
    follow_ups: List[FollowUpResult] = field(default_factory=list)

    @property
    def bundle_id(self) -> Optional[str]:
        return self.execution.bundle_id if self.execution else None

    @property
    def slot(self) -> Optional[int]:
        return self.execution.slot if self.execution else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "bundleId": self.bundle_id,
            "slot": self.slot,
            "state": self.execution.state.value if self.execution else None,
            "transactionIds": self.transaction_ids,
            "positionAddress": self.position_address,
            "expected": {"x": self.expected_x, "y": self.expected_y},
            "fee": self.fee.to_dict() if self.fee else None,
            "plan": self.plan.to_dict() if self.plan else None,
            "error": self.error.to_dict() if self.error else None,
            "followUps": [f.to_dict() for f in self.follow_ups],
        }


class LiquidityDeployer:
    """
    Wires the quote resolver, planner, composer, signer and coordinator together.

    Usage:
        deployer = LiquidityDeployer.from_settings(jupiter, rpc, composer, coordinator, settings)
        result = await deployer.deploy(request, signer)
        if not result.success:
            print(result.error.to_dict())
    """

    def __init__(
        self,
        quotes: QuoteSource,
        blockhashes: BlockhashSource,
        composer: TransactionComposer,
        coordinator: BundleCoordinator,
        fee_config: Optional[FeeConfig] = None,
        reconcile_timed_out: bool = False,
    ):
        self._quotes = quotes
        self._blockhashes = blockhashes
        self._composer = composer
        self._coordinator = coordinator
        self._fee_config = fee_config or FeeConfig()
        self._reconcile_timed_out = reconcile_timed_out

    @classmethod
    def from_settings(
        cls,
        quotes: QuoteSource,
        blockhashes: BlockhashSource,
        composer: TransactionComposer,
        coordinator: BundleCoordinator,
        settings: Settings,
    ) -> "LiquidityDeployer":
        return cls(
            quotes,
            blockhashes,
            composer,
            coordinator,
            fee_config=FeeConfig.from_settings(settings),
            reconcile_timed_out=settings.reconcile_timed_out_bundles,
        )

    async def deploy(self, request: DeploymentRequest, signer: Signer) -> DeploymentResult:
        with structlog.contextvars.bound_contextvars(pool=request.pool_address, operation="deploy"):
            unit_price = request.collateral.price_usd / 10 ** request.collateral.decimals
            fee = compute_fee(request.collateral_amount, unit_price, self._fee_config)
            net_amount = int(fee.total.net_amount)
            if net_amount <= 0:
                raise ValueError(
                    f"Deposit of {request.collateral_amount} does not cover the protocol fee "
                    f"of {fee.fee_amount:g}"
                )

            # a range on one side of the active bucket only accepts one asset
            requested = request.x_share if request.x_share is not None else 0.5
            share = x_share_for_range(request.bucket_range, default=requested)
            if request.x_share is not None and share != request.x_share:
                logger.info("Range is one-sided, using x share %g instead of %g", share, request.x_share)
            split = split_deposit(net_amount, request.collateral, request.asset_x, request.asset_y, share)
            logger.info(
                "Deploying %d (fee %g) into %s: target x=%d y=%d",
                net_amount,
                fee.fee_amount,
                request.pool_address,
                split.target_x,
                split.target_y,
            )

            result = DeploymentResult(success=False, fee=fee, split=split)

            try:
                quotes: List[ConversionQuote] = []
                amount_x, amount_y = split.target_x, split.target_y
                if split.convert_to_x > 0:
                    quote = await self._quotes.get_quote(
                        request.collateral.mint, request.asset_x.mint, split.convert_to_x, request.slippage_bps
                    )
                    quotes.append(quote)
                    amount_x = quote.min_output_amount
                if split.convert_to_y > 0:
                    quote = await self._quotes.get_quote(
                        request.collateral.mint, request.asset_y.mint, split.convert_to_y, request.slippage_bps
                    )
                    quotes.append(quote)
                    amount_y = quote.min_output_amount

                blockhash = await self._latest_blockhash()
                bundle = await self._composer.compose_deposit(
                    DepositRequest(
                        owner_address=request.owner_address,
                        pool_address=request.pool_address,
                        amount_x=amount_x,
                        amount_y=amount_y,
                        bucket_range=request.bucket_range,
                        shape=request.shape,
                        position_address=request.position_address,
                    ),
                    blockhash,
                    quotes=quotes,
                    tip_speed=request.tip_speed,
                )
            except DeploymentError as e:
                logger.warning("Deployment stopped before submission: %s", e.message)
                result.error = e
                return result

            return await self._land(bundle, signer, result)

    async def withdraw(
        self,
        request: WithdrawRequest,
        signer: Signer,
        target_asset: Optional[str] = None,
        tip_speed: Optional[str] = None,
        slippage_bps: Optional[int] = None,
    ) -> DeploymentResult:
        """
        Withdraw from a position, then convert what was released into
        ``target_asset`` if one is given.

        Follow-up conversions run one by one, each on its own. Their failures
        are recorded on the result and never undo the landed withdraw.
        """
        with structlog.contextvars.bound_contextvars(pool=request.pool_address, operation="withdraw"):
            result = DeploymentResult(success=False)
            try:
                blockhash = await self._latest_blockhash()
                bundle = await self._composer.compose_withdraw(request, blockhash, tip_speed=tip_speed)
            except DeploymentError as e:
                logger.warning("Withdraw stopped before submission: %s", e.message)
                result.error = e
                return result

            result = await self._land(bundle, signer, result)
            if not result.success or target_asset is None:
                return result

            target_mint = resolve_asset_mint(target_asset)
            released = [
                (request.asset_x, bundle.expected_x),
                (request.asset_y, bundle.expected_y),
            ]
            for mint, amount in released:
                if not mint or amount <= 0 or resolve_asset_mint(mint) == target_mint:
                    continue
                result.follow_ups.append(
                    await self._follow_up_conversion(
                        mint, target_mint, amount, request.owner_address, signer, tip_speed, slippage_bps
                    )
                )
            return result

    async def _land(self, bundle: ComposedBundle, signer: Signer, result: DeploymentResult) -> DeploymentResult:
        """
        Sign, submit and record the outcome.

        Signer faults are not mapped to a failed result. They propagate to the
        caller untouched, and nothing has been submitted when they do.
        """
        result.position_address = bundle.position_address
        result.plan = bundle.plan
        result.expected_x = bundle.expected_x
        result.expected_y = bundle.expected_y

        signed = await sign_sequentially(bundle.transactions, signer)
        result.transaction_ids = signed.ids_by_role()

        execution = await self._coordinator.execute(signed)
        if isinstance(execution.outcome, TimedOut) and self._reconcile_timed_out:
            execution = await self._coordinator.reconcile(execution)

        result.execution = execution
        result.success = execution.landed
        result.error = execution.error
        return result

    async def _follow_up_conversion(
        self,
        input_mint: str,
        output_mint: str,
        amount: int,
        owner_address: str,
        signer: Signer,
        tip_speed: Optional[str],
        slippage_bps: Optional[int],
    ) -> FollowUpResult:
        action = f"convert {input_mint} -> {output_mint}"
        try:
            quote = await self._quotes.get_quote(input_mint, output_mint, amount, slippage_bps)
            blockhash = await self._latest_blockhash()
            bundle = await self._composer.compose_conversion(quote, owner_address, blockhash, tip_speed)
            signed = await sign_sequentially(bundle.transactions, signer)
            execution = await self._coordinator.execute(signed)
        except DeploymentError as e:
            logger.warning("Follow-up %s failed: %s", action, e.message)
            return FollowUpResult(
                action=action,
                success=False,
                error=FollowUpFailed(action, e.message, raw_error=e.to_dict()),
            )

        if not execution.landed:
            message = execution.error.message if execution.error else execution.state.value
            logger.warning("Follow-up %s did not land: %s", action, message)
            return FollowUpResult(
                action=action,
                success=False,
                bundle_id=execution.bundle_id,
                transaction_ids=signed.ids_by_role(),
                error=FollowUpFailed(
                    action,
                    message,
                    raw_error=execution.error.to_dict() if execution.error else None,
                ),
            )

        return FollowUpResult(
            action=action,
            success=True,
            bundle_id=execution.bundle_id,
            transaction_ids=signed.ids_by_role(),
        )

    async def _latest_blockhash(self) -> str:
        try:
            return await self._blockhashes.get_latest_blockhash()
        except (SolanaRpcError, httpx.HTTPError) as e:
            raise SubmissionRejected(f"Could not fetch a recent blockhash: {e}", raw_error=str(e)) from e


__all__ = [
    "DeploymentRequest",
    "DeploymentResult",
    "FollowUpResult",
    "LiquidityDeployer",
]
