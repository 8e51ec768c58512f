"""Shared fixtures: real solders transactions, a recording signer and a fake clock."""

from typing import List, Optional, Sequence

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import CreateAccountParams, TransferParams, create_account, transfer

from lpkit.core.execution.transactions import apply_signature, build_unsigned_transaction


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is awaited."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class RecordingSigner:
    """Signs with a local keypair and records the order of every call."""

    def __init__(self, keypair: Keypair):
        self.keypair = keypair
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def sign_transaction(self, transaction: str) -> str:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            self.calls.append(transaction)
            return apply_signature(transaction, self.keypair)
        finally:
            self.in_flight -= 1


def unsigned_transfer(
    payer: Keypair,
    blockhash: str,
    lamports: int = 1_000,
    to: Optional[Pubkey] = None,
) -> str:
    ix = transfer(TransferParams(
        from_pubkey=payer.pubkey(),
        to_pubkey=to or Keypair().pubkey(),
        lamports=lamports,
    ))
    return build_unsigned_transaction(payer.pubkey(), [ix], blockhash)


def unsigned_create_account(payer: Keypair, new_account: Pubkey, blockhash: str) -> str:
    """A transaction that needs both the payer and the new account to sign."""
    ix = create_account(CreateAccountParams(
        from_pubkey=payer.pubkey(),
        to_pubkey=new_account,
        lamports=1_000_000,
        space=0,
        owner=Pubkey.default(),
    ))
    return build_unsigned_transaction(payer.pubkey(), [ix], blockhash)


@pytest.fixture
def payer() -> Keypair:
    return Keypair()


@pytest.fixture
def blockhash() -> str:
    return str(Hash.new_unique())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def signer(payer) -> RecordingSigner:
    return RecordingSigner(payer)


@pytest.fixture
def make_transfer(payer, blockhash):
    def _make(lamports: int = 1_000) -> str:
        return unsigned_transfer(payer, blockhash, lamports)
    return _make


@pytest.fixture
def make_transfers(make_transfer):
    def _make(count: int) -> Sequence[str]:
        return [make_transfer(1_000 + i) for i in range(count)]
    return _make


@pytest.fixture
def make_create_account(payer, blockhash):
    def _make(new_account: Pubkey) -> str:
        return unsigned_create_account(payer, new_account, blockhash)
    return _make
