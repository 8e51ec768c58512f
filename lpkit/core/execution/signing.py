"""Sequential signing of a composed transaction set."""

from __future__ import annotations

import logging
from typing import List, Protocol

from .models import SignedTransactionSet, TaggedTransaction, UnsignedTransactionSet
from .transactions import transaction_id

logger = logging.getLogger(__name__)


class Signer(Protocol):
    """External custody collaborator. One call per transaction."""

    async def sign_transaction(self, transaction: str) -> str:
        """Sign a base64 transaction and return the base64 signed transaction."""
        ...


async def sign_sequentially(transactions: UnsignedTransactionSet, signer: Signer) -> SignedTransactionSet:
    """
    Sign every transaction in order.

    Transaction ``i + 1`` is handed to the signer only after the signature for
    transaction ``i`` has come back. Roles travel with each transaction.
    """
    signed: List[TaggedTransaction] = []
    ids: List[str] = []

    for index, tx in enumerate(transactions):
        payload = await signer.sign_transaction(tx.payload)
        signed.append(TaggedTransaction(role=tx.role, payload=payload, label=tx.label))
        ids.append(transaction_id(payload))
        logger.debug("Signed transaction %d/%d (%s)", index + 1, len(transactions), tx.role.value)

    return SignedTransactionSet(transactions=tuple(signed), transaction_ids=tuple(ids))


__all__ = ["Signer", "sign_sequentially"]
