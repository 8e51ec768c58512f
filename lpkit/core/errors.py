"""
Deployment Error Taxonomy

Every failure the deployment pipeline can report maps to exactly one kind.
Errors carry the raw relay/aggregator payload verbatim in ``details`` so the
original text survives for debugging.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Kinds of deployment failure."""

    QUOTE_UNAVAILABLE = "quote_unavailable"
    BUNDLE_SIZE_EXCEEDED = "bundle_size_exceeded"
    SIMULATION_REJECTED = "simulation_rejected"
    SUBMISSION_REJECTED = "submission_rejected"
    BUNDLE_FAILED = "bundle_failed"
    BUNDLE_TIMED_OUT = "bundle_timed_out"
    FOLLOW_UP_FAILED = "follow_up_failed"


class DeploymentError(Exception):
    """
    Base class for all taxonomy errors.

    Attributes:
        kind: Which taxonomy bucket this error belongs to
        message: Human readable description
        retryable: Whether retrying the same request can reasonably succeed
        details: Raw payloads and identifiers useful for diagnosis
    """

    kind: ErrorKind
    retryable: bool = False
    suggested_action: Optional[str] = None

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "retryable": self.retryable,
            "suggestedAction": self.suggested_action,
            "details": self.details,
        }


class QuoteUnavailable(DeploymentError):
    """The aggregator reported no viable route (or the quote went stale)."""

    kind = ErrorKind.QUOTE_UNAVAILABLE
    retryable = True
    suggested_action = "Retry with a different amount or slippage tolerance"


class BundleSizeExceeded(DeploymentError):
    """More transactions were composed than a bundle may carry."""

    kind = ErrorKind.BUNDLE_SIZE_EXCEEDED
    suggested_action = "Restructure the request so it needs fewer transactions"

    def __init__(self, count: int, limit: int):
        super().__init__(
            f"Bundle would contain {count} transactions, limit is {limit}",
            details={"count": count, "limit": limit},
        )
        self.count = count
        self.limit = limit


class SimulationRejected(DeploymentError):
    """A dry run showed the bundle cannot land; it was never submitted."""

    kind = ErrorKind.SIMULATION_REJECTED

    def __init__(
        self,
        message: str,
        index: Optional[int] = None,
        raw_error: Any = None,
        logs: Optional[list] = None,
    ):
        super().__init__(
            message,
            details={"index": index, "error": raw_error, "logs": logs or []},
        )
        self.index = index
        self.raw_error = raw_error
        self.logs = logs or []


class SubmissionRejected(DeploymentError):
    """The relay refused the bundle outright."""

    kind = ErrorKind.SUBMISSION_REJECTED
    retryable = True

    def __init__(self, message: str, raw_error: Any = None):
        super().__init__(message, details={"error": raw_error})
        self.raw_error = raw_error


class BundleFailed(DeploymentError):
    """The relay reported a terminal on-chain error for the bundle."""

    kind = ErrorKind.BUNDLE_FAILED

    def __init__(self, bundle_id: str, raw_error: Any):
        super().__init__(
            f"Bundle {bundle_id} failed: {raw_error}",
            details={"bundleId": bundle_id, "error": raw_error},
        )
        self.bundle_id = bundle_id
        self.raw_error = raw_error


class BundleTimedOut(DeploymentError):
    """No terminal status was observed before the polling deadline."""

    kind = ErrorKind.BUNDLE_TIMED_OUT
    suggested_action = (
        "Verify the transactions on-chain before retrying; a blind retry may duplicate the deposit"
    )

    def __init__(self, bundle_id: str, timeout_seconds: float):
        super().__init__(
            f"Bundle {bundle_id} did not reach a terminal status within {timeout_seconds:g}s",
            details={"bundleId": bundle_id, "timeoutSeconds": timeout_seconds},
        )
        self.bundle_id = bundle_id
        self.timeout_seconds = timeout_seconds


class FollowUpFailed(DeploymentError):
    """A best-effort action after landing failed. The landed bundle stands."""

    kind = ErrorKind.FOLLOW_UP_FAILED
    retryable = True

    def __init__(self, action: str, message: str, raw_error: Any = None):
        super().__init__(
            f"Follow-up '{action}' failed: {message}",
            details={"action": action, "error": raw_error},
        )
        self.action = action


__all__ = [
    "ErrorKind",
    "DeploymentError",
    "QuoteUnavailable",
    "BundleSizeExceeded",
    "SimulationRejected",
    "SubmissionRejected",
    "BundleFailed",
    "BundleTimedOut",
    "FollowUpFailed",
]
