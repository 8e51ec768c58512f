"""Tests for sequential signing."""

import asyncio

import pytest
from solders.keypair import Keypair

from lpkit.core.execution import (
    TaggedTransaction,
    TransactionRole,
    UnsignedTransactionSet,
    sign_sequentially,
    transaction_id,
)
from lpkit.core.execution.transactions import apply_signature, decode_transaction, missing_signers


def _unsigned(payloads):
    roles = [TransactionRole.CONVERSION] * (len(payloads) - 1) + [TransactionRole.TIP]
    return UnsignedTransactionSet(tuple(
        TaggedTransaction(role=role, payload=payload, label=f"#{i}")
        for i, (role, payload) in enumerate(zip(roles, payloads))
    ))


class SlowSigner:
    """Yields to the event loop mid-signature to expose any concurrent calls."""

    def __init__(self, keypair):
        self.keypair = keypair
        self.in_flight = 0
        self.max_in_flight = 0

    async def sign_transaction(self, transaction):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        return apply_signature(transaction, self.keypair)


@pytest.mark.asyncio
async def test_signs_in_order(make_transfers, signer):
    payloads = make_transfers(4)

    signed = await sign_sequentially(_unsigned(payloads), signer)

    assert signer.calls == list(payloads)
    assert len(signed) == 4
    assert signed.roles[-1] is TransactionRole.TIP
    assert [tx.label for tx in signed.transactions] == ["#0", "#1", "#2", "#3"]
    assert all(missing_signers(p) == [] for p in signed.payloads)


@pytest.mark.asyncio
async def test_one_signature_in_flight_at_a_time(make_transfers, payer):
    signer = SlowSigner(payer)

    await sign_sequentially(_unsigned(make_transfers(5)), signer)

    assert signer.max_in_flight == 1


@pytest.mark.asyncio
async def test_transaction_ids_are_fee_payer_signatures(make_transfers, signer):
    signed = await sign_sequentially(_unsigned(make_transfers(2)), signer)

    for payload, tx_id in zip(signed.payloads, signed.transaction_ids):
        assert tx_id == str(decode_transaction(payload).signatures[0])
        assert tx_id == transaction_id(payload)
    assert signed.ids_by_role() == {
        "conversion": [signed.transaction_ids[0]],
        "tip": [signed.transaction_ids[1]],
    }


@pytest.mark.asyncio
async def test_signer_failure_propagates(make_transfers):
    class RefusingSigner:
        async def sign_transaction(self, transaction):
            raise PermissionError("custody refused")

    with pytest.raises(PermissionError):
        await sign_sequentially(_unsigned(make_transfers(2)), RefusingSigner())


def test_apply_signature_rejects_unrelated_keypair(make_transfer):
    with pytest.raises(ValueError):
        apply_signature(make_transfer(), Keypair())
