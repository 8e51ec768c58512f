"""
Bundle execution models and types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from solders.keypair import Keypair

from ..distribution.models import AllocationPlan, BucketRange
from ..errors import DeploymentError


MAX_BUNDLE_TRANSACTIONS = 5


class TransactionRole(str, Enum):
    """What a transaction in a bundle does."""
    CONVERSION = "conversion"   # Aggregator swap into a pool asset
    DEPOSIT = "deposit"         # Open position / add liquidity
    WITHDRAW = "withdraw"       # Remove liquidity / close position
    TIP = "tip"                 # Relay tip, always last


@dataclass(frozen=True)
class TaggedTransaction:
    """A base64 serialized transaction with an explicit role."""
    role: TransactionRole
    payload: str
    label: Optional[str] = None


@dataclass(frozen=True)
class UnsignedTransactionSet:
    """
    Ordered, role-tagged transactions. Order is execution order: a later
    transaction may spend balances produced by an earlier one.
    """
    transactions: Tuple[TaggedTransaction, ...] = ()

    def __len__(self) -> int:
        return len(self.transactions)

    def __iter__(self) -> Iterator[TaggedTransaction]:
        return iter(self.transactions)

    @property
    def roles(self) -> List[TransactionRole]:
        return [tx.role for tx in self.transactions]

    @property
    def payloads(self) -> List[str]:
        return [tx.payload for tx in self.transactions]

    def of_role(self, role: TransactionRole) -> List[TaggedTransaction]:
        return [tx for tx in self.transactions if tx.role is role]


@dataclass(frozen=True)
class SignedTransactionSet:
    """Fully signed transactions, same order and roles as the unsigned set."""
    transactions: Tuple[TaggedTransaction, ...]
    transaction_ids: Tuple[str, ...]

    def __len__(self) -> int:
        return len(self.transactions)

    @property
    def payloads(self) -> List[str]:
        return [tx.payload for tx in self.transactions]

    @property
    def roles(self) -> List[TransactionRole]:
        return [tx.role for tx in self.transactions]

    def ids_by_role(self) -> Dict[str, List[str]]:
        ids: Dict[str, List[str]] = {}
        for tx, tx_id in zip(self.transactions, self.transaction_ids):
            ids.setdefault(tx.role.value, []).append(tx_id)
        return ids


@dataclass
class ComposedBundle:
    """Composer output: the transactions plus what the caller needs after landing."""
    transactions: UnsignedTransactionSet
    tip_lamports: int
    tip_account: str
    bucket_range: Optional[BucketRange] = None
    plan: Optional[AllocationPlan] = None
    position_keypair: Optional[Keypair] = None
    position_address: Optional[str] = None
    expected_x: int = 0
    expected_y: int = 0

    def __len__(self) -> int:
        return len(self.transactions)


class BundleState(str, Enum):
    """Bundle lifecycle."""
    BUILT = "built"             # Composed and partially signed
    SIMULATED = "simulated"     # Dry run accepted
    SUBMITTED = "submitted"     # Relay returned a bundle id
    LANDED = "landed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (BundleState.LANDED, BundleState.FAILED, BundleState.TIMED_OUT)


@dataclass(frozen=True)
class Landed:
    slot: int
    reconciled: bool = False


@dataclass(frozen=True)
class Failed:
    reason: str
    raw_error: Any = None


@dataclass(frozen=True)
class TimedOut:
    timeout_seconds: float


BundleOutcome = Union[Landed, Failed, TimedOut]


@dataclass
class StateTransition:
    from_state: Optional[BundleState]
    to_state: BundleState
    reason: Optional[str] = None
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class BundleExecution:
    """Everything the coordinator knows about one bundle once it stops."""
    state: BundleState
    outcome: BundleOutcome
    bundle_id: Optional[str] = None
    error: Optional[DeploymentError] = None
    transaction_ids: Tuple[str, ...] = ()
    polls: int = 0
    history: List[StateTransition] = field(default_factory=list)

    @property
    def landed(self) -> bool:
        return isinstance(self.outcome, Landed)

    @property
    def slot(self) -> Optional[int]:
        return self.outcome.slot if isinstance(self.outcome, Landed) else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "bundleId": self.bundle_id,
            "slot": self.slot,
            "transactionIds": list(self.transaction_ids),
            "polls": self.polls,
            "error": self.error.to_dict() if self.error else None,
        }


__all__ = [
    "MAX_BUNDLE_TRANSACTIONS",
    "TransactionRole",
    "TaggedTransaction",
    "UnsignedTransactionSet",
    "SignedTransactionSet",
    "ComposedBundle",
    "BundleState",
    "Landed",
    "Failed",
    "TimedOut",
    "BundleOutcome",
    "StateTransition",
    "BundleExecution",
]
