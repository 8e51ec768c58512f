"""
Tests for the Transaction Composer

Ordering, role tags, ephemeral position signing, tip tiers and the bundle
size ceiling.
"""

from typing import List

import pytest
from solders.pubkey import Pubkey

from lpkit.config import Settings
from lpkit.core.distribution import BucketRange, LiquidityShape
from lpkit.core.errors import BundleSizeExceeded
from lpkit.core.execution import (
    TIP_ACCOUNTS,
    DepositBuildRequest,
    DepositRequest,
    TipSpeed,
    TransactionComposer,
    TransactionRole,
    WithdrawBuild,
    WithdrawBuildRequest,
    WithdrawRequest,
)
from lpkit.core.execution.transactions import missing_signers
from lpkit.providers.jupiter import ConversionQuote


POOL = "ARwi1S4DaiTG5DX7S4M4ZsrXqpMD1MrTmbu9ue2tpmEq"


class FakeConversions:
    def __init__(self, make_transfer):
        self.make_transfer = make_transfer
        self.quotes: List[ConversionQuote] = []

    async def build_conversion_transaction(self, quote, caller_address):
        self.quotes.append(quote)
        return self.make_transfer(quote.input_amount)


class FakePoolBuilder:
    """Deposits create the position account, so they need the position's signature too."""

    def __init__(self, make_transfer, make_create_account):
        self.make_transfer = make_transfer
        self.make_create_account = make_create_account
        self.deposits: List[DepositBuildRequest] = []
        self.withdrawals: List[WithdrawBuildRequest] = []

    async def build_deposit(self, request):
        self.deposits.append(request)
        if request.new_position:
            return self.make_create_account(Pubkey.from_string(request.position_address))
        return self.make_transfer()

    async def build_withdraw(self, request):
        self.withdrawals.append(request)
        return WithdrawBuild(
            payload=self.make_transfer(),
            expected_x=4_000,
            expected_y=7_000,
        )


def _quote(output_asset: str, amount: int = 500_000) -> ConversionQuote:
    return ConversionQuote(
        input_asset="EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
        output_asset=output_asset,
        input_amount=amount,
        output_amount=amount * 2,
        price_impact=0.01,
        min_output_amount=amount * 2 - 10,
    )


@pytest.fixture
def conversions(make_transfer):
    return FakeConversions(make_transfer)


@pytest.fixture
def pool_builder(make_transfer, make_create_account):
    return FakePoolBuilder(make_transfer, make_create_account)


@pytest.fixture
def composer(conversions, pool_builder):
    return TransactionComposer(conversions, pool_builder)


@pytest.fixture
def deposit_request(payer):
    return DepositRequest(
        owner_address=str(payer.pubkey()),
        pool_address=POOL,
        amount_x=600,
        amount_y=500,
        bucket_range=BucketRange(95, 105, 100),
        shape=LiquidityShape.CURVE,
    )


# =============================================================================
# Deposits
# =============================================================================

class TestComposeDeposit:
    @pytest.mark.asyncio
    async def test_order_and_roles(self, composer, deposit_request, blockhash):
        bundle = await composer.compose_deposit(
            deposit_request, blockhash, quotes=[_quote("X-mint"), _quote("Y-mint")]
        )

        assert bundle.transactions.roles == [
            TransactionRole.CONVERSION,
            TransactionRole.CONVERSION,
            TransactionRole.DEPOSIT,
            TransactionRole.TIP,
        ]
        labels = [tx.label for tx in bundle.transactions.of_role(TransactionRole.CONVERSION)]
        assert labels[0].endswith("->X-mint")
        assert labels[1].endswith("->Y-mint")

    @pytest.mark.asyncio
    async def test_new_position_is_signed_by_its_keypair(self, composer, pool_builder, deposit_request, blockhash, payer):
        bundle = await composer.compose_deposit(deposit_request, blockhash)

        assert bundle.position_keypair is not None
        assert bundle.position_address == str(bundle.position_keypair.pubkey())
        assert pool_builder.deposits[0].new_position is True

        deposit = bundle.transactions.of_role(TransactionRole.DEPOSIT)[0]
        # only the owner's signature is still outstanding
        assert missing_signers(deposit.payload) == [payer.pubkey()]

    @pytest.mark.asyncio
    async def test_existing_position(self, composer, pool_builder, deposit_request, blockhash):
        deposit_request.position_address = "PositionAddress1111111111111111111111111111"

        bundle = await composer.compose_deposit(deposit_request, blockhash)

        assert bundle.position_keypair is None
        assert bundle.position_address == deposit_request.position_address
        assert pool_builder.deposits[0].new_position is False

    @pytest.mark.asyncio
    async def test_plan_and_expected_amounts(self, composer, pool_builder, deposit_request, blockhash):
        bundle = await composer.compose_deposit(deposit_request, blockhash)

        assert bundle.plan.shape is LiquidityShape.CURVE
        assert bundle.plan.total_x == pytest.approx(600)
        assert bundle.plan.total_y == pytest.approx(500)
        assert pool_builder.deposits[0].plan is bundle.plan
        assert (bundle.expected_x, bundle.expected_y) == (600, 500)

    @pytest.mark.asyncio
    async def test_tip_is_last_with_default_and_override_speed(self, composer, deposit_request, blockhash):
        default = await composer.compose_deposit(deposit_request, blockhash)
        fastest = await composer.compose_deposit(deposit_request, blockhash, tip_speed="extraFast")

        assert default.tip_lamports == 2_500_000
        assert fastest.tip_lamports == 5_000_000
        assert default.tip_account in TIP_ACCOUNTS
        assert default.transactions.roles[-1] is TransactionRole.TIP

    @pytest.mark.asyncio
    async def test_default_speed_from_settings(
        self, monkeypatch, conversions, pool_builder, deposit_request, blockhash
    ):
        monkeypatch.setenv("DEFAULT_TIP_SPEED", " medium ")
        composer = TransactionComposer.from_settings(conversions, pool_builder, Settings())

        bundle = await composer.compose_deposit(deposit_request, blockhash)

        assert composer.default_tip_speed is TipSpeed.MEDIUM
        assert bundle.tip_lamports == 1_000_000

    def test_unknown_speed_in_settings_rejected(self, monkeypatch, conversions, pool_builder):
        monkeypatch.setenv("DEFAULT_TIP_SPEED", "ludicrous")

        with pytest.raises(ValueError):
            TransactionComposer.from_settings(conversions, pool_builder, Settings())

    @pytest.mark.asyncio
    async def test_too_many_transactions_fails_before_building(self, composer, conversions, pool_builder, deposit_request, blockhash):
        quotes = [_quote(f"mint-{i}") for i in range(4)]

        with pytest.raises(BundleSizeExceeded) as exc_info:
            await composer.compose_deposit(deposit_request, blockhash, quotes=quotes)

        assert exc_info.value.count == 6
        assert exc_info.value.limit == 5
        assert conversions.quotes == []
        assert pool_builder.deposits == []

    @pytest.mark.asyncio
    async def test_at_most_two_conversions(self, composer, deposit_request, blockhash):
        with pytest.raises(ValueError):
            await composer.compose_deposit(
                deposit_request, blockhash, quotes=[_quote("a"), _quote("b"), _quote("c")]
            )


# =============================================================================
# Withdrawals and standalone conversions
# =============================================================================

class TestComposeWithdraw:
    @pytest.mark.asyncio
    async def test_withdraw_and_tip(self, composer, pool_builder, payer, blockhash):
        request = WithdrawRequest(
            owner_address=str(payer.pubkey()),
            pool_address=POOL,
            position_address="PositionAddress1111111111111111111111111111",
            basis_points=5_000,
            close_position=False,
        )

        bundle = await composer.compose_withdraw(request, blockhash)

        assert bundle.transactions.roles == [TransactionRole.WITHDRAW, TransactionRole.TIP]
        assert (bundle.expected_x, bundle.expected_y) == (4_000, 7_000)
        assert pool_builder.withdrawals[0].basis_points == 5_000
        assert pool_builder.withdrawals[0].close_position is False

    def test_basis_points_validated(self):
        with pytest.raises(ValueError):
            WithdrawRequest("owner", POOL, "position", basis_points=0)
        with pytest.raises(ValueError):
            WithdrawRequest("owner", POOL, "position", basis_points=10_001)

    @pytest.mark.asyncio
    async def test_standalone_conversion(self, composer, payer, blockhash):
        quote = _quote("So11111111111111111111111111111111111111112")

        bundle = await composer.compose_conversion(quote, str(payer.pubkey()), blockhash, tip_speed="low")

        assert bundle.transactions.roles == [TransactionRole.CONVERSION, TransactionRole.TIP]
        assert bundle.expected_x == quote.min_output_amount
        assert bundle.tip_lamports == 500_000
