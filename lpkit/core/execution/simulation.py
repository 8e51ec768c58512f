"""
Bundle Simulation Interpreter

Each transaction of a bundle is dry-run on its own, against current chain
state. A later transaction often spends what an earlier one produces, which
the isolated dry run cannot see, so a balance-type failure after the first
transaction proves nothing. Everything else is taken at face value.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Sequence, Tuple

from ..errors import SimulationRejected

logger = logging.getLogger(__name__)


class SimulationErrorCategory(str, Enum):
    INSUFFICIENT_BALANCE = "insufficient_balance"
    OTHER = "other"


@dataclass(frozen=True)
class SimulationResult:
    """Outcome of one ``simulateTransaction`` call."""
    error: Any = None
    logs: List[str] = field(default_factory=list)
    units_consumed: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class SimulationVerdict:
    accepted: bool
    inconclusive: Tuple[int, ...] = ()          # Indices whose failure was ignored
    rejection: Optional[SimulationRejected] = None


# Runtime errors that mean "a balance the transaction needs is not there yet"
BALANCE_ERROR_NAMES = frozenset({
    "InsufficientFundsForFee",
    "InsufficientFundsForRent",
    "InsufficientFunds",
    "AccountNotFound",
    "ProgramAccountNotFound",
})

BALANCE_PATTERNS = (
    "insufficient",
    "not enough",
)

# SPL Token (and system program) error code 1 is "insufficient funds"
BALANCE_CUSTOM_CODES = frozenset({1})
CUSTOM_BALANCE_LOG = re.compile(r"custom program error: 0x1\b")


def _instruction_error_detail(err: Any) -> Any:
    """``{"InstructionError": [idx, detail]}`` -> ``detail``, anything else unchanged."""
    if isinstance(err, dict) and "InstructionError" in err:
        inner = err["InstructionError"]
        if isinstance(inner, (list, tuple)) and len(inner) == 2:
            return inner[1]
    return err


def classify_simulation_error(err: Any, logs: Optional[Sequence[str]] = None) -> SimulationErrorCategory:
    """
    Classify a raw simulation error payload.

    Checks the structured error first, then falls back to message patterns
    in the error text and program logs.
    """
    detail = _instruction_error_detail(err)

    if isinstance(detail, str) and detail in BALANCE_ERROR_NAMES:
        return SimulationErrorCategory.INSUFFICIENT_BALANCE

    if isinstance(detail, dict):
        if any(name in detail for name in BALANCE_ERROR_NAMES):
            return SimulationErrorCategory.INSUFFICIENT_BALANCE
        if detail.get("Custom") in BALANCE_CUSTOM_CODES:
            return SimulationErrorCategory.INSUFFICIENT_BALANCE

    text = err if isinstance(err, str) else json.dumps(err, default=str)
    haystack = " ".join([text, *(logs or [])]).lower()

    if CUSTOM_BALANCE_LOG.search(haystack):
        return SimulationErrorCategory.INSUFFICIENT_BALANCE

    if any(p in haystack for p in BALANCE_PATTERNS):
        return SimulationErrorCategory.INSUFFICIENT_BALANCE

    return SimulationErrorCategory.OTHER


def interpret_simulation(results: Sequence[SimulationResult]) -> SimulationVerdict:
    """
    Decide whether a bundle may be submitted from its per-transaction dry runs.

    - Transaction 0 failing rejects the bundle.
    - A later transaction failing with an insufficient-balance-class error is
      inconclusive and does not reject.
    - Any other failure rejects.
    """
    inconclusive: List[int] = []

    for index, result in enumerate(results):
        if result.ok:
            continue

        category = classify_simulation_error(result.error, result.logs)

        if index > 0 and category is SimulationErrorCategory.INSUFFICIENT_BALANCE:
            logger.info(
                "Simulation of transaction %d failed with a balance error, "
                "treating as inconclusive: %s",
                index,
                result.error,
            )
            inconclusive.append(index)
            continue

        reason = "first transaction" if index == 0 else f"transaction {index}"
        rejection = SimulationRejected(
            f"Simulation failed on {reason}: {result.error}",
            index=index,
            raw_error=result.error,
            logs=result.logs,
        )
        logger.warning("Simulation rejected bundle at transaction %d: %s", index, result.error)
        return SimulationVerdict(accepted=False, inconclusive=tuple(inconclusive), rejection=rejection)

    return SimulationVerdict(accepted=True, inconclusive=tuple(inconclusive))


__all__ = [
    "SimulationErrorCategory",
    "SimulationResult",
    "SimulationVerdict",
    "classify_simulation_error",
    "interpret_simulation",
]
