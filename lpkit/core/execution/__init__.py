"""
Bundle Execution Layer

Composes, signs and lands multi-transaction bundles through an inclusion relay:
- TransactionComposer: ordered conversion / deposit / withdraw / tip transactions
- sign_sequentially: one signer call per transaction, strictly in order
- BundleCoordinator: simulate -> submit -> poll -> Landed | Failed | TimedOut

Usage:
    from lpkit.core.execution import (
        TransactionComposer,
        BundleCoordinator,
        sign_sequentially,
    )

    bundle = await composer.compose_deposit(request, blockhash, quotes=quotes)
    signed = await sign_sequentially(bundle.transactions, signer)
    execution = await coordinator.execute(signed)
"""

from .models import (
    MAX_BUNDLE_TRANSACTIONS,
    BundleExecution,
    BundleOutcome,
    BundleState,
    ComposedBundle,
    Failed,
    Landed,
    SignedTransactionSet,
    StateTransition,
    TaggedTransaction,
    TimedOut,
    TransactionRole,
    UnsignedTransactionSet,
)
from .simulation import (
    SimulationErrorCategory,
    SimulationResult,
    SimulationVerdict,
    classify_simulation_error,
    interpret_simulation,
)
from .relay_status import (
    RelayFailed,
    RelayLanded,
    RelayPending,
    RelayStatus,
    parse_bundle_status,
)
from .tips import TIP_ACCOUNTS, TIP_LAMPORTS, TipSpeed, build_tip_transaction
from .transactions import apply_signature, decode_transaction, transaction_id
from .signing import Signer, sign_sequentially
from .composer import (
    DepositBuildRequest,
    DepositRequest,
    PoolTransactionBuilder,
    TransactionComposer,
    WithdrawBuild,
    WithdrawBuildRequest,
    WithdrawRequest,
)
from .coordinator import BundleCoordinator, CoordinatorConfig

__all__ = [
    # Models
    "MAX_BUNDLE_TRANSACTIONS",
    "BundleExecution",
    "BundleOutcome",
    "BundleState",
    "ComposedBundle",
    "Failed",
    "Landed",
    "SignedTransactionSet",
    "StateTransition",
    "TaggedTransaction",
    "TimedOut",
    "TransactionRole",
    "UnsignedTransactionSet",
    # Simulation
    "SimulationErrorCategory",
    "SimulationResult",
    "SimulationVerdict",
    "classify_simulation_error",
    "interpret_simulation",
    # Relay status
    "RelayFailed",
    "RelayLanded",
    "RelayPending",
    "RelayStatus",
    "parse_bundle_status",
    # Tips and transactions
    "TIP_ACCOUNTS",
    "TIP_LAMPORTS",
    "TipSpeed",
    "build_tip_transaction",
    "apply_signature",
    "decode_transaction",
    "transaction_id",
    # Signing
    "Signer",
    "sign_sequentially",
    # Composer
    "DepositBuildRequest",
    "DepositRequest",
    "PoolTransactionBuilder",
    "TransactionComposer",
    "WithdrawBuild",
    "WithdrawBuildRequest",
    "WithdrawRequest",
    # Coordinator
    "BundleCoordinator",
    "CoordinatorConfig",
]
