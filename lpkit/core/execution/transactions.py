"""
Helpers for base64 serialized Solana transactions.
"""

from __future__ import annotations

import base64
from typing import List, Sequence

from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0, to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction


def decode_transaction(payload: str) -> VersionedTransaction:
    """Parse a base64 encoded versioned (or legacy) transaction."""
    return VersionedTransaction.from_bytes(base64.b64decode(payload))


def encode_transaction(tx: VersionedTransaction) -> str:
    return base64.b64encode(bytes(tx)).decode("ascii")


def build_unsigned_transaction(
    payer: Pubkey,
    instructions: Sequence[Instruction],
    recent_blockhash: str,
) -> str:
    """Compile a v0 message with empty signature slots for every required signer."""
    message = MessageV0.try_compile(
        payer=payer,
        instructions=list(instructions),
        address_lookup_table_accounts=[],
        recent_blockhash=Hash.from_string(recent_blockhash),
    )
    signatures = [Signature.default()] * message.header.num_required_signatures
    return encode_transaction(VersionedTransaction.populate(message, signatures))


def required_signers(tx: VersionedTransaction) -> List[Pubkey]:
    message = tx.message
    return list(message.account_keys[: message.header.num_required_signatures])


def apply_signature(payload: str, keypair: Keypair) -> str:
    """
    Add ``keypair``'s signature to its slot, keeping every other signature.

    Raises:
        ValueError: keypair is not a required signer of the transaction
    """
    tx = decode_transaction(payload)
    signers = required_signers(tx)
    pubkey = keypair.pubkey()
    if pubkey not in signers:
        raise ValueError(f"{pubkey} is not a required signer of this transaction")

    signatures = list(tx.signatures)
    signatures[signers.index(pubkey)] = keypair.sign_message(to_bytes_versioned(tx.message))
    return encode_transaction(VersionedTransaction.populate(tx.message, signatures))


def missing_signers(payload: str) -> List[Pubkey]:
    tx = decode_transaction(payload)
    blank = Signature.default()
    return [
        signer
        for signer, signature in zip(required_signers(tx), tx.signatures)
        if signature == blank
    ]


def transaction_id(payload: str) -> str:
    """The fee payer's signature (base58), which is the transaction's id on-chain."""
    return str(decode_transaction(payload).signatures[0])


__all__ = [
    "decode_transaction",
    "encode_transaction",
    "build_unsigned_transaction",
    "required_signers",
    "apply_signature",
    "missing_signers",
    "transaction_id",
]
