"""
Bundle Coordinator

Drives one signed bundle through its lifecycle:

    Built -> Simulated -> Submitted -> Landed | Failed | TimedOut

A submitted bundle cannot be recalled. The coordinator can stop polling and
report TimedOut, but the relay keeps processing the bundle regardless.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Set

import httpx
import structlog

from ...config import Settings
from ...providers.errors import RelayError, SolanaRpcError
from ..errors import BundleFailed, BundleTimedOut, DeploymentError, SimulationRejected, SubmissionRejected
from .models import (
    BundleExecution,
    BundleOutcome,
    BundleState,
    Failed,
    Landed,
    SignedTransactionSet,
    StateTransition,
    TimedOut,
)
from .composer import check_bundle_size
from .relay_status import RelayFailed, RelayLanded, parse_bundle_status
from .simulation import SimulationResult, interpret_simulation

logger = logging.getLogger(__name__)


class RelayClient(Protocol):
    async def send_bundle(self, transactions: Sequence[str]) -> str:
        ...

    async def get_bundle_statuses(self, bundle_id: str) -> Optional[Dict[str, Any]]:
        ...


class ChainRpc(Protocol):
    async def simulate_transaction(self, transaction: str) -> SimulationResult:
        ...

    async def get_signature_statuses(self, signatures: Sequence[str]) -> List[Optional[Dict[str, Any]]]:
        ...


class InvalidTransitionError(Exception):
    """Raised when the coordinator attempts an invalid state transition."""

    def __init__(self, from_state: Optional[BundleState], to_state: BundleState):
        super().__init__(
            f"Invalid transition from {from_state.value if from_state else None} to {to_state.value}"
        )
        self.from_state = from_state
        self.to_state = to_state


@dataclass(frozen=True)
class CoordinatorConfig:
    poll_interval_seconds: float = 1.0
    timeout_seconds: float = 30.0
    simulate_before_submit: bool = True

    def __post_init__(self):
        if self.poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

    @classmethod
    def from_settings(cls, settings: Settings) -> "CoordinatorConfig":
        return cls(
            poll_interval_seconds=settings.bundle_poll_interval_seconds,
            timeout_seconds=settings.bundle_timeout_seconds,
            simulate_before_submit=settings.simulate_before_submit,
        )


# Errors a status poll may raise that only mean "ask again later"
POLL_RETRY_ERRORS = (RelayError, httpx.HTTPError, ValueError, asyncio.TimeoutError)

# Errors that mean a simulation or chain lookup could not be performed
RPC_ERRORS = (SolanaRpcError, httpx.HTTPError)


class _Tracker:
    """Validated state bookkeeping for a single bundle."""

    TRANSITIONS: Dict[Optional[BundleState], Set[BundleState]] = {
        None: {BundleState.BUILT},
        BundleState.BUILT: {
            BundleState.SIMULATED,
            BundleState.SUBMITTED,  # Simulation disabled
            BundleState.FAILED,     # Simulation rejected / submission rejected
        },
        BundleState.SIMULATED: {
            BundleState.SUBMITTED,
            BundleState.FAILED,     # Submission rejected
        },
        BundleState.SUBMITTED: {
            BundleState.LANDED,
            BundleState.FAILED,
            BundleState.TIMED_OUT,
        },
    }

    def __init__(self):
        self.state: Optional[BundleState] = None
        self.history: List[StateTransition] = []

    def to(self, state: BundleState, reason: Optional[str] = None) -> None:
        if state not in self.TRANSITIONS.get(self.state, set()):
            raise InvalidTransitionError(self.state, state)
        self.history.append(StateTransition(from_state=self.state, to_state=state, reason=reason))
        logger.debug(
            "Bundle %s -> %s%s",
            self.state.value if self.state else "new",
            state.value,
            f" ({reason})" if reason else "",
        )
        self.state = state


class BundleCoordinator:
    """
    Simulates, submits and polls signed bundles.

    Every taxonomy failure is reported in the returned ``BundleExecution``
    rather than raised. The clock and sleep are injectable so the polling loop
    can be driven without real time passing.

    Usage:
        coordinator = BundleCoordinator(relay, rpc, CoordinatorConfig.from_settings(settings))
        execution = await coordinator.execute(signed)
        if execution.landed:
            ...
    """

    def __init__(
        self,
        relay: RelayClient,
        rpc: ChainRpc,
        config: Optional[CoordinatorConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._relay = relay
        self._rpc = rpc
        self._config = config or CoordinatorConfig()
        self._sleep = sleep
        self._clock = clock

    async def execute(self, signed: SignedTransactionSet) -> BundleExecution:
        """
        Run a signed bundle to a terminal outcome.

        Raises:
            BundleSizeExceeded: too many transactions, before any network call
        """
        check_bundle_size(len(signed))
        tracker = _Tracker()
        tracker.to(BundleState.BUILT)
        tx_ids = tuple(signed.transaction_ids)

        if self._config.simulate_before_submit:
            rejection = await self._simulate(signed)
            if rejection is not None:
                tracker.to(BundleState.FAILED, "simulation rejected")
                return self._finish(tracker, Failed(rejection.message, rejection.raw_error), rejection, tx_ids)
            tracker.to(BundleState.SIMULATED)

        try:
            bundle_id = await self._relay.send_bundle(signed.payloads)
        except SubmissionRejected as e:
            logger.warning("Relay rejected bundle: %s", e.message)
            tracker.to(BundleState.FAILED, "submission rejected")
            return self._finish(tracker, Failed(e.message, e.raw_error), e, tx_ids)

        tracker.to(BundleState.SUBMITTED, bundle_id)

        with structlog.contextvars.bound_contextvars(bundle_id=bundle_id):
            return await self._poll(tracker, bundle_id, tx_ids)

    async def _simulate(self, signed: SignedTransactionSet) -> Optional[SimulationRejected]:
        results: List[SimulationResult] = []
        for index, payload in enumerate(signed.payloads):
            try:
                results.append(await self._rpc.simulate_transaction(payload))
            except RPC_ERRORS as e:
                logger.warning("Simulation of transaction %d could not run: %s", index, e)
                return SimulationRejected(
                    f"Simulation of transaction {index} could not run: {e}",
                    index=index,
                    raw_error=str(e),
                )

        verdict = interpret_simulation(results)
        if verdict.accepted:
            logger.info(
                "Simulation accepted %d transactions (inconclusive: %s)",
                len(results),
                list(verdict.inconclusive) or "none",
            )
            return None
        return verdict.rejection

    async def _poll(self, tracker: _Tracker, bundle_id: str, tx_ids: tuple) -> BundleExecution:
        deadline = self._clock() + self._config.timeout_seconds
        polls = 0

        while True:
            polls += 1
            # the poll on the deadline itself gets one interval to answer
            budget = deadline - self._clock()
            if budget <= 0:
                budget = self._config.poll_interval_seconds
            try:
                raw = await asyncio.wait_for(self._relay.get_bundle_statuses(bundle_id), timeout=budget)
                status = parse_bundle_status(raw)
            except POLL_RETRY_ERRORS as e:
                logger.debug("Status poll %d failed, retrying: %s", polls, e)
                status = None

            if isinstance(status, RelayLanded):
                tracker.to(BundleState.LANDED, f"slot {status.slot}")
                logger.info("Bundle %s landed in slot %d", bundle_id, status.slot)
                return self._finish(tracker, Landed(slot=status.slot), None, tx_ids, bundle_id, polls)

            if isinstance(status, RelayFailed):
                error = BundleFailed(bundle_id, status.raw_error)
                tracker.to(BundleState.FAILED, "relay reported error")
                logger.warning("Bundle %s failed: %s", bundle_id, status.raw_error)
                return self._finish(
                    tracker, Failed(error.message, status.raw_error), error, tx_ids, bundle_id, polls
                )

            logger.debug("Bundle %s not final after poll %d", bundle_id, polls)

            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            await self._sleep(min(self._config.poll_interval_seconds, remaining))

        timeout = self._config.timeout_seconds
        tracker.to(BundleState.TIMED_OUT, f"no terminal status after {timeout:g}s")
        logger.warning("Bundle %s timed out after %d polls", bundle_id, polls)
        return self._finish(
            tracker, TimedOut(timeout), BundleTimedOut(bundle_id, timeout), tx_ids, bundle_id, polls
        )

    def _finish(
        self,
        tracker: _Tracker,
        outcome: BundleOutcome,
        error: Optional[DeploymentError],
        tx_ids: tuple,
        bundle_id: Optional[str] = None,
        polls: int = 0,
    ) -> BundleExecution:
        return BundleExecution(
            state=tracker.state,
            outcome=outcome,
            bundle_id=bundle_id,
            error=error,
            transaction_ids=tx_ids,
            polls=polls,
            history=list(tracker.history),
        )

    async def reconcile(self, execution: BundleExecution, rpc: Optional[ChainRpc] = None) -> BundleExecution:
        """
        Look a timed-out bundle up on-chain, out-of-band from the relay.

        If every transaction of the bundle is confirmed without error, returns
        a new execution with a ``Landed(slot, reconciled=True)`` outcome.
        Otherwise the original execution is returned unchanged. The input is
        never mutated.
        """
        if not isinstance(execution.outcome, TimedOut) or not execution.transaction_ids:
            return execution

        rpc = rpc or self._rpc
        try:
            statuses = await rpc.get_signature_statuses(list(execution.transaction_ids))
        except RPC_ERRORS as e:
            logger.warning("Reconciliation of bundle %s failed: %s", execution.bundle_id, e)
            return execution

        slots: List[int] = []
        for status in statuses:
            if not status or status.get("err") is not None:
                return execution
            if status.get("confirmationStatus") not in ("confirmed", "finalized"):
                return execution
            slots.append(int(status.get("slot", 0)))

        if len(set(slots)) != 1:
            # A bundle lands in a single slot; anything else is not this bundle
            return execution

        slot = slots[0]
        logger.info("Bundle %s reconciled as landed in slot %d", execution.bundle_id, slot)
        history = list(execution.history)
        history.append(StateTransition(
            from_state=BundleState.TIMED_OUT,
            to_state=BundleState.LANDED,
            reason="reconciled from chain state",
        ))
        return BundleExecution(
            state=BundleState.LANDED,
            outcome=Landed(slot=slot, reconciled=True),
            bundle_id=execution.bundle_id,
            error=None,
            transaction_ids=execution.transaction_ids,
            polls=execution.polls,
            history=history,
        )


__all__ = [
    "RelayClient",
    "ChainRpc",
    "InvalidTransitionError",
    "CoordinatorConfig",
    "BundleCoordinator",
]
