"""Tests for the protocol fee calculator."""

import pytest

from lpkit.core.fees import FeeConfig, compute_fee, format_fee


SOL_UNIT_PRICE = 150.0 / 10 ** 9   # USD per lamport


class TestComputeFee:
    def test_bps_fee_when_above_minimum(self):
        breakdown = compute_fee(10_000_000, SOL_UNIT_PRICE)

        assert breakdown.fee_amount == 100_000
        assert breakdown.total.gross_amount == 10_000_000
        assert breakdown.total.net_amount == 9_900_000
        assert breakdown.protocol.bps == 100
        assert not breakdown.exempt

    def test_minimum_fee_applies_to_small_deposits(self):
        # $2 deposit, 1% would be 2_000 base units
        breakdown = compute_fee(200_000, 1e-5)

        assert breakdown.fee_amount == 10_000
        assert breakdown.total.net_amount == 190_000

    def test_deposit_below_threshold_is_exempt(self):
        breakdown = compute_fee(500_000, SOL_UNIT_PRICE)   # $0.075

        assert breakdown.exempt
        assert breakdown.fee_amount == 0
        assert breakdown.total.net_amount == 500_000

    def test_net_plus_fee_equals_gross(self):
        for gross in (0, 1, 9_999, 1_000_000, 123_456_789):
            breakdown = compute_fee(gross, 1.0)
            assert breakdown.total.net_amount + breakdown.fee_amount == pytest.approx(gross)

    def test_custom_config(self):
        config = FeeConfig(fee_bps=50, min_fee_absolute=0, treasury_address="Treasury111", exempt_threshold_usd=0)
        breakdown = compute_fee(1_000_000, 1e-6, config)

        assert breakdown.fee_amount == 5_000
        assert breakdown.protocol.recipient == "Treasury111"

    def test_is_deterministic(self):
        assert compute_fee(42_000_000, SOL_UNIT_PRICE) == compute_fee(42_000_000, SOL_UNIT_PRICE)

    def test_invalid_inputs(self):
        with pytest.raises(ValueError):
            compute_fee(-1, 1.0)
        with pytest.raises(ValueError):
            FeeConfig(fee_bps=20_000)
        with pytest.raises(ValueError):
            FeeConfig(min_fee_absolute=-5)


class TestFormatting:
    def test_format_fee(self):
        breakdown = compute_fee(10_000_000, SOL_UNIT_PRICE)

        assert format_fee(breakdown, "SOL") == "100,000 SOL (1.00% protocol fee)"
        assert format_fee(breakdown) == "100,000 (1.00% protocol fee)"

    def test_to_dict(self):
        data = compute_fee(10_000_000, SOL_UNIT_PRICE).to_dict()

        assert data["protocol"]["amount"] == 100_000
        assert data["total"] == {"grossAmount": 10_000_000, "netAmount": 9_900_000}
        assert data["exempt"] is False
