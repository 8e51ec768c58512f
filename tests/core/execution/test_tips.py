"""Tests for relay tip tiers and tip transactions."""

import random

import pytest
from solders.pubkey import Pubkey

from lpkit.core.execution import TIP_ACCOUNTS, TIP_LAMPORTS, TipSpeed, build_tip_transaction
from lpkit.core.execution.transactions import decode_transaction, missing_signers


@pytest.mark.parametrize(
    "value, expected",
    [
        ("low", TipSpeed.LOW),
        ("Medium", TipSpeed.MEDIUM),
        (TipSpeed.FAST, TipSpeed.FAST),
        ("extraFast", TipSpeed.EXTRA_FAST),
        ("extra_fast", TipSpeed.EXTRA_FAST),
        ("EXTRA-FAST", TipSpeed.EXTRA_FAST),
    ],
)
def test_parse_tip_speed(value, expected):
    assert TipSpeed.parse(value) is expected


def test_unknown_tip_speed():
    with pytest.raises(ValueError):
        TipSpeed.parse("warp")


def test_tiers_increase():
    amounts = [TIP_LAMPORTS[s] for s in (TipSpeed.LOW, TipSpeed.MEDIUM, TipSpeed.FAST, TipSpeed.EXTRA_FAST)]

    assert amounts == sorted(amounts)
    assert len(set(amounts)) == 4


def test_tip_transaction_pays_a_tip_account(payer, blockhash):
    tip = build_tip_transaction(str(payer.pubkey()), blockhash, "medium")
    tx = decode_transaction(tip.payload)

    assert tip.lamports == 1_000_000
    assert tip.recipient in TIP_ACCOUNTS
    assert Pubkey.from_string(tip.recipient) in tx.message.account_keys
    assert str(tx.message.recent_blockhash) == blockhash
    assert missing_signers(tip.payload) == [payer.pubkey()]


def test_recipient_choice_follows_rng(payer, blockhash):
    first = build_tip_transaction(str(payer.pubkey()), blockhash, rng=random.Random(7))
    second = build_tip_transaction(str(payer.pubkey()), blockhash, rng=random.Random(7))

    assert first.recipient == second.recipient
